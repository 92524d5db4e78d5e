"""Tests for the command-level workflows (deploy suite, token transfer, vesting top-up)."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional
from unittest.mock import MagicMock

import pytest
from eth_abi import encode

from devpn.chain.abi import encode_uint256
from devpn.chain.tx import InsufficientBalance, Receipt, SubmissionResult, TransactionError, TxState
from devpn.commands.deploy import CONTRACTS_TO_DEPLOY, DeploymentError, deploy_suite
from devpn.commands.token import TRANSFER_DEFAULT_GAS, TRANSFER_GAS_MULTIPLIER, transfer_tokens
from devpn.commands.vesting import VESTING_GAS_LIMIT, top_up_vesting

TOKEN = "0x" + "10" * 20
VESTING = "0x" + "20" * 20
SENDER = "0x" + "30" * 20
RECIPIENT = "0x" + "40" * 20
TX_HASH = "0x" + "12" * 32
E18 = 10**18

ADDRESS_CONSTRUCTOR = [{"type": "constructor", "inputs": [{"name": "token", "type": "address"}]}]


def confirmed(contract_address: Optional[str] = None) -> SubmissionResult:
    receipt = Receipt(status=1, gas_used=50_000, block_number=1, contract_address=contract_address)
    return SubmissionResult(tx_hash=TX_HASH, state=TxState.CONFIRMED, receipt=receipt)


def reverted() -> SubmissionResult:
    receipt = Receipt(status=0, gas_used=50_000, block_number=1)
    return SubmissionResult(tx_hash=TX_HASH, state=TxState.REVERTED, receipt=receipt)


def word(value: int) -> str:
    return "0x" + encode_uint256(value)


# ============ Deploy ============


class FakeDeployer:
    def __init__(self, fail_at: Optional[int] = None) -> None:
        self.fail_at = fail_at
        self.calls: list[tuple[str, str]] = []

    def deploy(self, bytecode: str, constructor_data: str = "") -> SubmissionResult:
        self.calls.append((bytecode, constructor_data))
        index = len(self.calls)
        if index == self.fail_at:
            return reverted()
        return confirmed("0x" + f"{index:040x}")


@pytest.fixture()
def artifacts_dir(tmp_path: Path) -> Path:
    root = tmp_path / "artifacts" / "contracts"
    for spec in CONTRACTS_TO_DEPLOY:
        folder = root / f"{spec.name}.sol"
        folder.mkdir(parents=True)
        abi: list[dict[str, Any]] = ADDRESS_CONSTRUCTOR if spec.constructor_refs else []
        payload = {"abi": abi, "bytecode": f"0x60{len(spec.name):02x}"}
        (folder / f"{spec.name}.json").write_text(json.dumps(payload), encoding="utf-8")
    return root


class TestDeploySuite:
    def test_deploys_in_order_and_wires_token(self, artifacts_dir: Path) -> None:
        deployer = FakeDeployer()
        sleeps: list[float] = []
        deployed = deploy_suite(deployer, artifacts_dir, sleep=sleeps.append)  # type: ignore[arg-type]

        token = "0x" + f"{1:040x}"
        assert deployed == {
            "DEVPN_TOKEN_ADDRESS": token,
            "NODE_REGISTRY_ADDRESS": "0x" + f"{2:040x}",
            "REWARD_ADDRESS": "0x" + f"{3:040x}",
            "VESTING_ADDRESS": "0x" + f"{4:040x}",
        }
        token_arg = encode(["address"], [token]).hex()
        assert [data for _, data in deployer.calls] == ["", "", token_arg, token_arg]
        assert sleeps == [2.0, 2.0, 2.0]

    def test_stops_on_first_failure(self, artifacts_dir: Path) -> None:
        deployer = FakeDeployer(fail_at=2)
        with pytest.raises(DeploymentError, match="NodeRegistry"):
            deploy_suite(deployer, artifacts_dir, sleep=lambda s: None)  # type: ignore[arg-type]
        assert len(deployer.calls) == 2


# ============ Token transfer ============


def token_submitter(*balances: int) -> MagicMock:
    submitter = MagicMock()
    submitter.address = SENDER
    submitter.rpc.eth_call.side_effect = [word(b) for b in balances]
    submitter.estimate_gas.return_value = 60_000
    submitter.call_function.return_value = confirmed()
    return submitter


class TestTransferTokens:
    def test_estimates_with_headroom_and_sends(self) -> None:
        submitter = token_submitter(1000 * E18)
        result = transfer_tokens(submitter, TOKEN, RECIPIENT, 200 * E18)

        assert result.succeeded
        _, kwargs = submitter.estimate_gas.call_args
        assert kwargs["multiplier"] == TRANSFER_GAS_MULTIPLIER
        assert kwargs["default"] == TRANSFER_DEFAULT_GAS
        submitter.call_function.assert_called_once_with(
            TOKEN, "transfer(address,uint256)", [RECIPIENT, 200 * E18], gas_limit=60_000
        )

    def test_explicit_gas_limit_skips_estimate(self) -> None:
        submitter = token_submitter(1000 * E18)
        transfer_tokens(submitter, TOKEN, RECIPIENT, E18, gas_limit=90_000)
        submitter.estimate_gas.assert_not_called()
        assert submitter.call_function.call_args.kwargs["gas_limit"] == 90_000

    def test_insufficient_token_balance(self) -> None:
        submitter = token_submitter(100 * E18)
        with pytest.raises(InsufficientBalance) as excinfo:
            transfer_tokens(submitter, TOKEN, RECIPIENT, 200 * E18)
        assert excinfo.value.available == 100 * E18
        assert excinfo.value.required == 200 * E18
        submitter.call_function.assert_not_called()

    def test_rejects_non_positive_amount(self) -> None:
        with pytest.raises(ValueError):
            transfer_tokens(token_submitter(), TOKEN, RECIPIENT, 0)


# ============ Vesting top-up ============


class TestTopUpVesting:
    def test_no_transfer_when_funded(self) -> None:
        submitter = token_submitter(150 * E18)
        assert top_up_vesting(submitter, TOKEN, VESTING, 100 * E18, sleep=lambda s: None) == 0
        submitter.call_function.assert_not_called()

    def test_transfers_shortfall(self) -> None:
        submitter = token_submitter(40 * E18, 1000 * E18)
        sleeps: list[float] = []
        moved = top_up_vesting(submitter, TOKEN, VESTING, 100 * E18, sleep=sleeps.append)

        assert moved == 60 * E18
        submitter.call_function.assert_called_once_with(
            TOKEN, "transfer(address,uint256)", [VESTING, 60 * E18], gas_limit=VESTING_GAS_LIMIT
        )
        assert sleeps == [5.0]

    def test_sender_cannot_cover_shortfall(self) -> None:
        submitter = token_submitter(0, 10 * E18)
        with pytest.raises(InsufficientBalance):
            top_up_vesting(submitter, TOKEN, VESTING, 100 * E18, sleep=lambda s: None)
        submitter.call_function.assert_not_called()

    def test_failed_top_up(self) -> None:
        submitter = token_submitter(0, 1000 * E18)
        submitter.call_function.return_value = reverted()
        with pytest.raises(TransactionError):
            top_up_vesting(submitter, TOKEN, VESTING, 100 * E18, sleep=lambda s: None)
