"""
Vest - Pay a beneficiary through the Vesting contract.

Flow:
1. Top up the Vesting contract from the signer if it holds too few tokens
2. createVestingSchedule(beneficiary, amount, now - 1h, 1s, no cliff)
   (a revert is tolerated: the schedule may already exist)
3. release(beneficiary)
"""

from __future__ import annotations

import time
from typing import Callable, Optional

import click

from ..chain.rpc import RpcClientError
from ..chain.tx import InsufficientBalance, TransactionError, TransactionSubmitter
from ..config import ConfigError, Settings
from ..utils import format_units, to_base_units
from .common import connect, fail, open_submitter, report, rule
from .token import token_balance

VESTING_GAS_LIMIT = 300_000
CONFIRMATION_DELAY = 5.0
CREATE_SCHEDULE = "createVestingSchedule(address,uint256,uint256,uint256,uint256)"


def top_up_vesting(
    submitter: TransactionSubmitter,
    token_address: str,
    vesting_address: str,
    amount: int,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """
    Make sure the Vesting contract holds at least ``amount`` tokens.

    Returns:
        Tokens transferred from the signer (0 if none were needed)

    Raises:
        InsufficientBalance: If the signer cannot cover the shortfall
        TransactionError: If the top-up transfer does not confirm
    """
    vesting_balance = token_balance(submitter.rpc, token_address, vesting_address)
    click.echo(f"  Vesting contract balance: {format_units(vesting_balance)} DEVPN")
    if vesting_balance >= amount:
        click.echo("  Vesting contract has sufficient balance")
        return 0

    shortfall = amount - vesting_balance
    sender_balance = token_balance(submitter.rpc, token_address, submitter.address)
    click.echo(f"  Your wallet balance:      {format_units(sender_balance)} DEVPN")
    if sender_balance < shortfall:
        raise InsufficientBalance(
            f"Your wallet doesn't have enough tokens: need {format_units(shortfall)} DEVPN, "
            f"have {format_units(sender_balance)} DEVPN",
            available=sender_balance,
            required=shortfall,
        )

    click.echo(f"  Transferring {format_units(shortfall)} DEVPN to the vesting contract...")
    result = submitter.call_function(
        token_address,
        "transfer(address,uint256)",
        [vesting_address, shortfall],
        gas_limit=VESTING_GAS_LIMIT,
    )
    if not result.succeeded:
        raise TransactionError(
            f"Could not transfer tokens to vesting contract ({result.state.value}, tx {result.tx_hash})"
        )
    sleep(CONFIRMATION_DELAY)
    return shortfall


@click.command()
@click.option("--beneficiary", default=None, help="Beneficiary address (default: WALLET_ADDRESS)")
@click.option("--amount", default="100", show_default=True, help="Amount in DEVPN")
@click.option("--start-offset", default=3600, show_default=True, type=int,
              help="Seconds before now the schedule starts")
@click.option("--duration", default=1, show_default=True, type=int, help="Vesting duration (s)")
@click.option("--cliff", default=0, show_default=True, type=int, help="Cliff period (s)")
@click.pass_obj
def vest(
    settings: Settings,
    beneficiary: Optional[str],
    amount: str,
    start_offset: int,
    duration: int,
    cliff: int,
) -> None:
    """
    Create a vesting schedule for a beneficiary and release it.

    Defaults vest immediately: the schedule starts an hour ago and lasts
    one second with no cliff.
    """
    rule("Transfer DEVPN Tokens from Vesting")

    try:
        token_address = settings.require("token_address")
        vesting_address = settings.require("vesting_address")
        beneficiary = beneficiary or settings.require("wallet_address")
        raw_amount = to_base_units(amount)
    except (ConfigError, ValueError, ArithmeticError) as exc:
        fail(str(exc))

    click.echo(f"  Beneficiary: {beneficiary}")
    click.echo(f"  Amount:      {amount} DEVPN ({raw_amount} wei)")
    click.echo("")

    rpc = connect(settings)
    try:
        submitter = open_submitter(settings, rpc)
        top_up_vesting(submitter, token_address, vesting_address, raw_amount)

        click.echo("")
        click.echo("Creating vesting schedule...")
        start_time = int(time.time()) - start_offset
        created = submitter.call_function(
            vesting_address,
            CREATE_SCHEDULE,
            [beneficiary, raw_amount, start_time, duration, cliff],
            gas_limit=VESTING_GAS_LIMIT,
        )
        if created.succeeded:
            click.secho("  Vesting schedule created", fg="green")
            time.sleep(CONFIRMATION_DELAY)
        else:
            click.secho(
                "  Could not create schedule (it may already exist); continuing to release",
                fg="yellow",
            )

        click.echo("")
        click.echo("Releasing tokens...")
        released = submitter.call_function(
            vesting_address,
            "release(address)",
            [beneficiary],
            gas_limit=VESTING_GAS_LIMIT,
        )
        report(settings, released, "release")
    except (ConfigError, TransactionError, RpcClientError, ValueError) as exc:
        fail(str(exc))
    finally:
        rpc.close()

    if not released.succeeded:
        click.echo("")
        click.echo("Possible reasons:")
        click.echo("  1. Vesting contract doesn't have enough tokens")
        click.echo("  2. No tokens are releasable yet (check schedule timing)")
        click.echo("  3. Vesting schedule was revoked or doesn't exist")
        click.echo(f"  Contract: {settings.address_url(vesting_address)}")
        fail("Failed to release tokens")

    click.echo("")
    click.secho(f"{amount} DEVPN released to {beneficiary}", fg="green", bold=True)
