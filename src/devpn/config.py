"""
Configuration for the DEVPN deployment tools.

Values come from a project-local .env file (loaded with python-dotenv) and
the process environment. Deployment writes contract addresses back into the
same .env file.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .chain.rpc import DEFAULT_RPC_URL, POLYGON_AMOY_CHAIN_ID, RpcClient, RpcEndpoint

DEFAULT_EXPLORER = "https://amoy.polygonscan.com"
ENV_FILE_VAR = "DEVPN_ENV_FILE"


class ConfigError(ValueError):
    """Raised when a required setting is missing or malformed."""


def default_env_path() -> Path:
    return Path(os.environ.get(ENV_FILE_VAR, Path.cwd() / ".env"))


@dataclass(frozen=True)
class Settings:
    rpc_url: str = DEFAULT_RPC_URL
    api_key: Optional[str] = None
    private_key: Optional[str] = None
    chain_id: int = POLYGON_AMOY_CHAIN_ID
    token_address: Optional[str] = None
    node_registry_address: Optional[str] = None
    reward_address: Optional[str] = None
    vesting_address: Optional[str] = None
    wallet_address: Optional[str] = None
    explorer_base: str = DEFAULT_EXPLORER
    env_path: Optional[Path] = None

    def require(self, name: str) -> str:
        """Return a setting or raise ConfigError naming its env variable."""
        value = getattr(self, name)
        if not value:
            env_name = _ENV_NAMES.get(name, name.upper())
            raise ConfigError(f"{env_name} not found. Set it in {self.env_path or '.env'}")
        return value

    @property
    def project_dir(self) -> Path:
        return self.env_path.parent if self.env_path is not None else Path.cwd()

    def endpoint(self) -> RpcEndpoint:
        return RpcEndpoint(url=self.rpc_url, api_key=self.api_key)

    def rpc_client(self) -> RpcClient:
        return RpcClient(self.endpoint())

    def tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_base}/tx/{tx_hash}"

    def address_url(self, address: str) -> str:
        return f"{self.explorer_base}/address/{address}"


_ENV_NAMES: dict[str, str] = {
    "rpc_url": "TATUM_POLYGON_AMOY_URL",
    "api_key": "TATUM_API_KEY",
    "private_key": "PRIVATE_KEY",
    "chain_id": "CHAIN_ID",
    "token_address": "DEVPN_TOKEN_ADDRESS",
    "node_registry_address": "NODE_REGISTRY_ADDRESS",
    "reward_address": "REWARD_ADDRESS",
    "vesting_address": "VESTING_ADDRESS",
    "wallet_address": "WALLET_ADDRESS",
    "explorer_base": "EXPLORER_BASE",
}


def load_settings(env_path: Optional[Path] = None, override: bool = False) -> Settings:
    """
    Load settings from .env and the environment.

    Args:
        env_path: Path to .env file (default: ./.env or $DEVPN_ENV_FILE)
        override: Whether .env values replace existing environment values
    """
    env_path = env_path or default_env_path()
    if env_path.exists():
        load_dotenv(env_path, override=override)

    values: dict[str, str] = {}
    for field_name, env_name in _ENV_NAMES.items():
        value = os.environ.get(env_name, "").strip()
        if value:
            values[field_name] = value

    chain_id = values.pop("chain_id", None)
    try:
        parsed_chain_id = int(chain_id, 0) if chain_id else POLYGON_AMOY_CHAIN_ID
    except ValueError:
        raise ConfigError(f"CHAIN_ID must be an integer, got {chain_id!r}") from None

    return Settings(chain_id=parsed_chain_id, env_path=env_path, **values)


def update_env_file(env_path: Path, values: Mapping[str, str]) -> Path:
    """
    Write KEY=VALUE pairs into a .env file.

    Existing keys are replaced in place, new keys are appended, and every
    other line (comments included) is preserved.

    Returns:
        Path to the written .env file
    """
    content = env_path.read_text(encoding="utf-8") if env_path.exists() else ""
    lines = content.splitlines()

    for key, value in values.items():
        pattern = re.compile(rf"^\s*{re.escape(key)}\s*=")
        for i, line in enumerate(lines):
            if pattern.match(line):
                lines[i] = f"{key}={value}"
                break
        else:
            lines.append(f"{key}={value}")

    env_path.parent.mkdir(parents=True, exist_ok=True)
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    # Set secure permissions on Unix
    if os.name != "nt":
        env_path.chmod(0o600)

    return env_path
