"""
Token - DEVPN ERC-20 operations from the signer wallet.

Commands:
- balance:  Show DEVPN balance for an address (default: signer)
- transfer: Send DEVPN from the signer to a recipient
"""

from __future__ import annotations

from typing import Optional

import click

from ..chain.abi import ParamType, encode_call
from ..chain.rpc import RpcClient, RpcClientError, read_contract
from ..chain.tx import InsufficientBalance, SubmissionResult, TransactionError, TransactionSubmitter
from ..config import ConfigError, Settings
from ..utils import format_units, to_base_units
from ..wallet.eth import get_address, load_wallet_address
from .common import connect, fail, open_submitter, report, rule

TRANSFER_GAS_MULTIPLIER = 1.2
TRANSFER_DEFAULT_GAS = 100_000


def token_balance(rpc: RpcClient, token_address: str, holder: str) -> int:
    """ERC-20 balanceOf(holder) in base units (0 when the call returns nothing)."""
    value = read_contract(
        rpc, token_address, "balanceOf(address)", [holder], returns=(ParamType.UINT256,)
    )
    return value or 0


def transfer_tokens(
    submitter: TransactionSubmitter,
    token_address: str,
    recipient: str,
    amount: int,
    gas_limit: Optional[int] = None,
) -> SubmissionResult:
    """
    Transfer tokens from the signer after checking its token balance.

    Raises:
        InsufficientBalance: If the signer holds fewer than ``amount`` tokens
    """
    if amount <= 0:
        raise ValueError("Amount must be positive")

    available = token_balance(submitter.rpc, token_address, submitter.address)
    if available < amount:
        raise InsufficientBalance(
            f"Insufficient balance! Need {format_units(amount)} DEVPN, "
            f"but only have {format_units(available)} DEVPN",
            available=available,
            required=amount,
        )

    if gas_limit is None:
        gas_limit = submitter.estimate_gas(
            encode_call("transfer(address,uint256)", [recipient, amount]),
            to=token_address,
            multiplier=TRANSFER_GAS_MULTIPLIER,
            default=TRANSFER_DEFAULT_GAS,
        )

    return submitter.call_function(
        token_address,
        "transfer(address,uint256)",
        [recipient, amount],
        gas_limit=gas_limit,
    )


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------

@click.group()
def token() -> None:
    """DEVPN token operations.

    \b
    Examples:
      devpn token balance
      devpn token balance --address 0xAbC...
      devpn token transfer --to 0x... --amount 200
    """


@token.command()
@click.option("--address", "holder", default=None, help="Holder address (default: signer)")
@click.pass_obj
def balance(settings: Settings, holder: Optional[str]) -> None:
    """Show DEVPN balance."""
    try:
        token_address = settings.require("token_address")
        if holder is None:
            holder = get_address(settings.require("private_key"))
    except (ConfigError, ValueError) as exc:
        fail(str(exc))

    rpc = connect(settings)
    try:
        raw = token_balance(rpc, token_address, holder)
    except RpcClientError as exc:
        fail(f"Failed to read balance: {exc}")
    finally:
        rpc.close()

    click.echo(click.style("  Token:   ", dim=True) + token_address)
    click.echo(click.style("  Holder:  ", dim=True) + holder)
    click.echo(
        click.style("  Balance: ", dim=True)
        + click.style(f"{format_units(raw)} DEVPN", fg="bright_white")
        + click.style(f" ({raw} wei)", dim=True)
    )


@token.command()
@click.option("--to", "recipient", default=None,
              help="Recipient (default: WALLET_ADDRESS, then wallet.json)")
@click.option("--amount", default="200", show_default=True,
              help="Amount in DEVPN (e.g. 1.5)")
@click.option("--gas-limit", default=None, type=int, help="Gas limit (default: estimate x1.2)")
@click.pass_obj
def transfer(
    settings: Settings,
    recipient: Optional[str],
    amount: str,
    gas_limit: Optional[int],
) -> None:
    """Transfer DEVPN from the signer wallet."""
    try:
        token_address = settings.require("token_address")
        raw_amount = to_base_units(amount)
    except (ConfigError, ValueError, ArithmeticError) as exc:
        fail(str(exc))

    recipient = recipient or settings.wallet_address or load_wallet_address(settings.project_dir / "wallet.json")
    if not recipient:
        fail(
            "Recipient not found. Use --to, set WALLET_ADDRESS, "
            "or run 'devpn wallet create' first."
        )

    rule("DEVPN Token Transfer")
    click.echo(f"  Token:     {token_address}")
    click.echo(f"  Recipient: {recipient}")
    click.echo(f"  Amount:    {amount} DEVPN ({raw_amount} wei)")
    click.echo("")

    rpc = connect(settings)
    try:
        submitter = open_submitter(settings, rpc)
        click.echo(f"  Sender:    {submitter.address}")
        result = transfer_tokens(submitter, token_address, recipient, raw_amount, gas_limit)
        report(settings, result, "transfer")
        if not result.succeeded:
            fail("Transfer failed")

        sender_after = token_balance(rpc, token_address, submitter.address)
        recipient_after = token_balance(rpc, token_address, recipient)
    except (ConfigError, TransactionError, RpcClientError, ValueError) as exc:
        fail(str(exc))
    finally:
        rpc.close()

    click.echo("")
    click.echo("Final balances:")
    click.echo(f"  From: {format_units(sender_after)} DEVPN")
    click.echo(f"  To:   {format_units(recipient_after)} DEVPN")
