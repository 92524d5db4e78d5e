"""
ECDSA / secp256k1 key management for the DEVPN tools.

The deployer key is read from PRIVATE_KEY (.env or environment). New
wallets are written to wallet.json and, when a .env already exists, to
WALLET_ADDRESS / WALLET_PRIVATE_KEY.

Dependencies: eth-account (no full web3.py needed)
"""

from __future__ import annotations

import json
import os
import secrets
from pathlib import Path
from typing import Optional

from eth_account import Account
from eth_account.signers.local import LocalAccount

from ..config import update_env_file
from ..utils import utc_now_rfc3339


def generate_eoa() -> tuple[str, str]:
    """
    Generate a new ECDSA/secp256k1 keypair (EOA).

    Returns:
        Tuple of (private_key_hex, address)
        - private_key_hex: 0x-prefixed hex private key (66 chars)
        - address: 0x-prefixed checksummed Ethereum address (42 chars)
    """
    private_key = "0x" + secrets.token_hex(32)
    account = Account.from_key(private_key)
    return private_key, account.address


def normalize_private_key(private_key: str) -> str:
    private_key = private_key.strip()
    if not private_key.startswith("0x"):
        private_key = "0x" + private_key
    return private_key


def get_account(private_key: str) -> LocalAccount:
    return Account.from_key(normalize_private_key(private_key))


def get_address(private_key: str) -> str:
    """
    Get the Ethereum address for a private key.

    Returns:
        0x-prefixed checksummed Ethereum address
    """
    return get_account(private_key).address


def save_wallet(
    private_key: str,
    address: str,
    wallet_path: Path,
    env_path: Optional[Path] = None,
) -> Path:
    """
    Save a generated wallet.

    Writes wallet.json (address, private key, creation time). If ``env_path``
    exists, WALLET_ADDRESS and WALLET_PRIVATE_KEY are updated in it too.

    Returns:
        Path to wallet.json
    """
    wallet_path.parent.mkdir(parents=True, exist_ok=True)
    wallet_data = {
        "address": address,
        "private_key": private_key,
        "created_at": utc_now_rfc3339(),
    }
    wallet_path.write_text(json.dumps(wallet_data, indent=2) + "\n", encoding="utf-8")

    # Set secure permissions on Unix
    if os.name != "nt":
        wallet_path.chmod(0o600)

    if env_path is not None and env_path.exists():
        update_env_file(
            env_path,
            {"WALLET_ADDRESS": address, "WALLET_PRIVATE_KEY": private_key},
        )

    return wallet_path


def load_wallet_address(wallet_path: Path) -> Optional[str]:
    """Read the address from a wallet.json, or None if there is none."""
    if not wallet_path.exists():
        return None
    data = json.loads(wallet_path.read_text(encoding="utf-8"))
    return data.get("address")
