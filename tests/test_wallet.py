"""Tests for key generation and wallet.json handling."""

from __future__ import annotations

import json
from pathlib import Path

from eth_account import Account

from devpn.wallet.eth import (
    generate_eoa,
    get_address,
    load_wallet_address,
    normalize_private_key,
    save_wallet,
)


class TestKeys:
    def test_generate_eoa(self) -> None:
        private_key, address = generate_eoa()
        assert private_key.startswith("0x") and len(private_key) == 66
        assert address.startswith("0x") and len(address) == 42
        assert Account.from_key(private_key).address == address

    def test_get_address_accepts_unprefixed_key(self) -> None:
        private_key, address = generate_eoa()
        assert get_address(private_key[2:]) == address

    def test_normalize(self) -> None:
        assert normalize_private_key("  abcd \n") == "0xabcd"
        assert normalize_private_key("0xabcd") == "0xabcd"


class TestSaveWallet:
    def test_writes_wallet_json(self, tmp_path: Path) -> None:
        private_key, address = generate_eoa()
        path = save_wallet(private_key, address, tmp_path / "wallet.json")

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["address"] == address
        assert data["private_key"] == private_key
        assert data["created_at"].endswith("Z")
        assert load_wallet_address(path) == address

    def test_updates_existing_env(self, tmp_path: Path) -> None:
        env_path = tmp_path / ".env"
        env_path.write_text("TATUM_API_KEY=k\n", encoding="utf-8")
        private_key, address = generate_eoa()
        save_wallet(private_key, address, tmp_path / "wallet.json", env_path=env_path)

        content = env_path.read_text(encoding="utf-8")
        assert "TATUM_API_KEY=k" in content
        assert f"WALLET_ADDRESS={address}" in content
        assert f"WALLET_PRIVATE_KEY={private_key}" in content

    def test_does_not_create_env(self, tmp_path: Path) -> None:
        private_key, address = generate_eoa()
        save_wallet(private_key, address, tmp_path / "wallet.json", env_path=tmp_path / ".env")
        assert not (tmp_path / ".env").exists()

    def test_load_missing(self, tmp_path: Path) -> None:
        assert load_wallet_address(tmp_path / "wallet.json") is None
