"""
CLI integration tests using Click's test runner.

Tests verify that the CLI commands work end-to-end via the Click
CliRunner, without requiring network access: RPC traffic goes through
httpx.MockTransport.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Iterator
from unittest.mock import patch

import httpx
import pytest
from click.testing import CliRunner

from devpn.chain.abi import encode_address, encode_uint256
from devpn.chain.rpc import RateLimiter, RpcClient, RpcEndpoint
from devpn.cli import VERSION, cli
from devpn.wallet.eth import generate_eoa

TOKEN = "0x" + "10" * 20
REWARD = "0x" + "20" * 20
VESTING = "0x" + "30" * 20


@pytest.fixture(autouse=True)
def clean_environ() -> Iterator[None]:
    """Keep .env loading from leaking between tests."""
    with patch.dict(os.environ, {}, clear=True):
        yield


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def wallet() -> tuple[str, str]:
    return generate_eoa()


def write_env(tmp_path: Path, **values: str) -> Path:
    env_path = tmp_path / ".env"
    env_path.write_text("".join(f"{k}={v}\n" for k, v in values.items()), encoding="utf-8")
    return env_path


def mock_rpc(handler) -> RpcClient:
    return RpcClient(
        RpcEndpoint("https://rpc.test/", api_key="k"),
        rate_limiter=RateLimiter(interval=0.0),
        http_client=httpx.Client(transport=httpx.MockTransport(handler)),
        sleep=lambda s: None,
    )


def eth_call_handler(results: dict[str, str]):
    """Answer eth_call by selector (first 4 bytes of call data)."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body["method"] == "eth_call"
        selector = body["params"][0]["data"][2:10]
        return httpx.Response(
            200, json={"jsonrpc": "2.0", "id": body["id"], "result": results.get(selector, "0x")}
        )

    return handler


class TestVersionAndInfo:
    """Test basic CLI commands that don't touch the network."""

    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert VERSION in result.output

    def test_info(self, runner: CliRunner, tmp_path: Path) -> None:
        env_path = write_env(tmp_path, DEVPN_TOKEN_ADDRESS=TOKEN)
        result = runner.invoke(cli, ["--env-file", str(env_path), "info"])
        assert result.exit_code == 0
        assert "80002" in result.output
        assert TOKEN in result.output
        assert "not deployed" in result.output
        assert "not configured" in result.output

    def test_bad_chain_id(self, runner: CliRunner, tmp_path: Path) -> None:
        env_path = write_env(tmp_path, CHAIN_ID="amoy")
        result = runner.invoke(cli, ["--env-file", str(env_path), "info"])
        assert result.exit_code == 1
        assert "CHAIN_ID" in result.output


class TestWhoami:
    def test_whoami_with_key(self, runner: CliRunner, tmp_path: Path, wallet: tuple[str, str]) -> None:
        env_path = write_env(tmp_path, PRIVATE_KEY=wallet[0])
        result = runner.invoke(cli, ["--env-file", str(env_path), "whoami"])
        assert result.exit_code == 0
        assert f"Address: {wallet[1]}" in result.output

    def test_whoami_without_key(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["--env-file", str(tmp_path / ".env"), "whoami"])
        assert result.exit_code == 1
        assert "No signer key found" in result.output


class TestWalletCreate:
    def test_creates_wallet_and_updates_env(self, runner: CliRunner, tmp_path: Path) -> None:
        env_path = write_env(tmp_path, TATUM_API_KEY="k")
        result = runner.invoke(cli, ["--env-file", str(env_path), "wallet", "create"])

        assert result.exit_code == 0, result.output
        assert "Wallet created successfully!" in result.output
        data = json.loads((tmp_path / "wallet.json").read_text(encoding="utf-8"))
        assert f"WALLET_ADDRESS={data['address']}" in env_path.read_text(encoding="utf-8")

    def test_refuses_to_overwrite(self, runner: CliRunner, tmp_path: Path) -> None:
        env_path = write_env(tmp_path)
        args = ["--env-file", str(env_path), "wallet", "create"]
        assert runner.invoke(cli, args).exit_code == 0

        second = runner.invoke(cli, args)
        assert second.exit_code == 1
        assert "already exists" in second.output

        assert runner.invoke(cli, args + ["--force"]).exit_code == 0


class TestMissingConfiguration:
    """Commands fail fast, before any RPC call, when .env is incomplete."""

    def test_setup_requires_token(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["--env-file", str(tmp_path / ".env"), "setup"])
        assert result.exit_code == 1
        assert "DEVPN_TOKEN_ADDRESS not found" in result.output

    def test_vest_requires_vesting(self, runner: CliRunner, tmp_path: Path) -> None:
        env_path = write_env(tmp_path, DEVPN_TOKEN_ADDRESS=TOKEN)
        result = runner.invoke(cli, ["--env-file", str(env_path), "vest"])
        assert result.exit_code == 1
        assert "VESTING_ADDRESS not found" in result.output

    def test_vest_rejects_bad_amount(self, runner: CliRunner, tmp_path: Path) -> None:
        env_path = write_env(
            tmp_path, DEVPN_TOKEN_ADDRESS=TOKEN, VESTING_ADDRESS=VESTING, WALLET_ADDRESS=REWARD
        )
        result = runner.invoke(cli, ["--env-file", str(env_path), "vest", "--amount", "lots"])
        assert result.exit_code == 1

    def test_transfer_requires_recipient(self, runner: CliRunner, tmp_path: Path) -> None:
        env_path = write_env(tmp_path, DEVPN_TOKEN_ADDRESS=TOKEN)
        result = runner.invoke(cli, ["--env-file", str(env_path), "token", "transfer"])
        assert result.exit_code == 1
        assert "Recipient not found" in result.output

    def test_deploy_requires_artifacts(self, runner: CliRunner, tmp_path: Path) -> None:
        empty = tmp_path / "artifacts" / "contracts"
        empty.mkdir(parents=True)
        result = runner.invoke(
            cli, ["--env-file", str(tmp_path / ".env"), "deploy", "--artifacts", str(empty)]
        )
        assert result.exit_code == 1
        assert "No artifact files found" in result.output

    def test_owner_requires_contracts(self, runner: CliRunner, tmp_path: Path, wallet: tuple[str, str]) -> None:
        env_path = write_env(tmp_path, PRIVATE_KEY=wallet[0])
        result = runner.invoke(cli, ["--env-file", str(env_path), "owner"])
        assert result.exit_code == 1
        assert "No contract addresses found" in result.output


class TestReadCommands:
    """Read-only commands against a mocked gateway."""

    def test_token_balance(self, runner: CliRunner, tmp_path: Path) -> None:
        holder = "0x" + "99" * 20
        env_path = write_env(tmp_path, DEVPN_TOKEN_ADDRESS=TOKEN, TATUM_API_KEY="k")
        client = mock_rpc(eth_call_handler({"70a08231": "0x" + encode_uint256(200 * 10**18)}))

        with patch("devpn.config.Settings.rpc_client", return_value=client):
            result = runner.invoke(
                cli, ["--env-file", str(env_path), "token", "balance", "--address", holder]
            )

        assert result.exit_code == 0, result.output
        assert "200 DEVPN" in result.output
        assert holder in result.output

    def test_owner_reports_ownership(self, runner: CliRunner, tmp_path: Path, wallet: tuple[str, str]) -> None:
        private_key, address = wallet
        env_path = write_env(
            tmp_path,
            PRIVATE_KEY=private_key,
            TATUM_API_KEY="k",
            DEVPN_TOKEN_ADDRESS=TOKEN,
            REWARD_ADDRESS=REWARD,
            VESTING_ADDRESS=VESTING,
        )
        client = mock_rpc(
            eth_call_handler(
                {
                    "8da5cb5b": "0x" + encode_address(address),
                    "fc0c546a": "0x" + encode_address(TOKEN),
                }
            )
        )

        with patch("devpn.config.Settings.rpc_client", return_value=client):
            result = runner.invoke(cli, ["--env-file", str(env_path), "owner"])

        assert result.exit_code == 0, result.output
        assert result.output.count("You ARE the owner") == 3
        assert "Token does not match" not in result.output
        assert "The deployer owns every configured contract" in result.output
