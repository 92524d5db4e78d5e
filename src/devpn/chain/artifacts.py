"""
Artifact Loader - Loads contract ABIs and bytecode from Hardhat build output.

Single source of truth: artifacts/contracts/<Name>.sol/<Name>.json
(written by `npx hardhat compile`).
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Sequence

from eth_abi import encode


class ArtifactError(FileNotFoundError):
    """Raised when a compiled artifact is missing or malformed."""


@dataclass(frozen=True)
class Artifact:
    name: str
    abi: list[dict[str, Any]]
    bytecode: str


def find_artifacts_dir(start: Optional[Path] = None) -> Path:
    """
    Locate the artifacts/contracts/ directory.

    Searches from ``start`` (default: cwd) upward to find the project root.
    """
    current = (start or Path.cwd()).resolve()
    for parent in [current, *current.parents]:
        candidate = parent / "artifacts" / "contracts"
        if candidate.is_dir():
            return candidate
    raise ArtifactError(
        "Cannot find artifacts/contracts/. Run 'npx hardhat compile' first."
    )


def list_artifacts(artifacts_dir: Path) -> list[Path]:
    return sorted(p for p in artifacts_dir.rglob("*.json") if not p.name.endswith(".dbg.json"))


def load_artifact(contract_name: str, artifacts_dir: Optional[Path] = None) -> Artifact:
    """
    Load ABI and bytecode for a contract from Hardhat output.

    Args:
        contract_name: Contract name (e.g., "DEVPNToken", "Vesting")
        artifacts_dir: artifacts/contracts directory (default: searched)

    Raises:
        ArtifactError: If the file is missing or lacks abi / bytecode
    """
    out_dir = artifacts_dir or find_artifacts_dir()
    path = out_dir / f"{contract_name}.sol" / f"{contract_name}.json"

    if not path.exists():
        raise ArtifactError(
            f"Contract artifact not found: {path}. Run 'npx hardhat compile'."
        )

    with path.open("r", encoding="utf-8") as f:
        artifact = json.load(f)

    bytecode = artifact.get("bytecode")
    # Foundry nests bytecode under "object"
    if isinstance(bytecode, dict):
        bytecode = bytecode.get("object")
    abi = artifact.get("abi")
    if not bytecode or bytecode == "0x" or abi is None:
        raise ArtifactError(f"Invalid artifact format (missing bytecode or ABI): {path}")

    return Artifact(name=contract_name, abi=abi, bytecode=bytecode)


def constructor_types(abi: list[dict[str, Any]]) -> list[str]:
    for entry in abi:
        if entry.get("type") == "constructor":
            return [inp["type"] for inp in entry.get("inputs", [])]
    return []


def encode_constructor_args(abi: list[dict[str, Any]], args: Sequence[Any]) -> str:
    """
    ABI-encode constructor arguments.

    Returns:
        Hex string (no 0x prefix) to append to the creation bytecode
    """
    types = constructor_types(abi)
    if len(types) != len(args):
        raise ValueError(
            f"Constructor expects {len(types)} argument(s), got {len(args)}"
        )
    if not types:
        return ""
    return encode(types, list(args)).hex()
