"""
Setup - Wire the deployed contracts together.

Calls, on DEVPNToken:
1. setRewardContract(REWARD_ADDRESS)
2. initializeDistribution(VESTING_ADDRESS)
"""

from __future__ import annotations

import time
from typing import Optional

import click

from ..chain.rpc import RpcClientError
from ..chain.tx import TransactionError
from ..config import ConfigError, Settings
from .common import connect, fail, open_submitter, report, rule

STEP_DELAY = 2.0


@click.command()
@click.option("--gas-limit", default=None, type=int, help="Gas limit (default: estimate)")
@click.pass_obj
def setup(settings: Settings, gas_limit: Optional[int]) -> None:
    """Set the Reward contract and initialize distribution on DEVPNToken."""
    rule("Setup Contracts - Initialize Distribution")

    try:
        token = settings.require("token_address")
        reward = settings.require("reward_address")
        vesting = settings.require("vesting_address")
    except ConfigError as exc:
        fail(str(exc))

    click.echo("Contract Addresses:")
    click.echo(f"  DEVPN Token: {token}")
    click.echo(f"  Reward:      {reward}")
    click.echo(f"  Vesting:     {vesting}")
    click.echo("")

    steps = [
        ("Setting Reward Contract", "setRewardContract(address)", reward),
        ("Initializing Distribution", "initializeDistribution(address)", vesting),
    ]

    rpc = connect(settings)
    try:
        submitter = open_submitter(settings, rpc)
        for index, (title, signature, address) in enumerate(steps, start=1):
            click.echo("")
            rule(f"[{index}/{len(steps)}] {title}")
            result = submitter.call_function(token, signature, [address], gas_limit=gas_limit)
            report(settings, result, signature)
            if not result.succeeded:
                fail(f"{title} failed")
            if index < len(steps):
                # Wait to avoid rate limit
                time.sleep(STEP_DELAY)
    except (ConfigError, TransactionError, RpcClientError) as exc:
        fail(str(exc))
    finally:
        rpc.close()

    click.echo("")
    click.secho("Setup complete!", fg="green", bold=True)
