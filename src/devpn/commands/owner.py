"""
Owner - Check contract ownership and wiring.

Reads owner() from each configured contract and token() from Reward and
Vesting, and compares them against the signer and DEVPN_TOKEN_ADDRESS.
"""

from __future__ import annotations

from typing import Optional

import click

from ..chain.abi import ParamType
from ..chain.rpc import RpcClient, RpcClientError, read_contract
from ..config import ConfigError, Settings
from ..wallet.eth import get_address
from .common import connect, fail, rule


def read_address(rpc: RpcClient, contract_address: str, signature: str) -> Optional[str]:
    """Call a no-argument address getter; None when it returns nothing."""
    return read_contract(rpc, contract_address, signature, returns=(ParamType.ADDRESS,))


def _same(a: Optional[str], b: Optional[str]) -> bool:
    return a is not None and b is not None and a.lower() == b.lower()


@click.command()
@click.pass_obj
def owner(settings: Settings) -> None:
    """Check who owns the deployed contracts."""
    rule("Checking Contract Ownership & Access")

    try:
        deployer = get_address(settings.require("private_key"))
    except (ConfigError, ValueError) as exc:
        fail(str(exc))

    click.echo(f"  Deployer address (from PRIVATE_KEY): {deployer}")
    click.echo("")

    contracts = [
        ("DEVPNToken", settings.token_address, False),
        ("Reward", settings.reward_address, True),
        ("Vesting", settings.vesting_address, True),
    ]
    contracts = [c for c in contracts if c[1]]
    if not contracts:
        fail("No contract addresses found in .env")

    rpc = connect(settings)
    not_owned = 0
    try:
        for name, address, has_token in contracts:
            click.echo("-" * 60)
            click.echo(f"Contract: {name}")
            click.echo(f"Address:  {address}")

            try:
                current_owner = read_address(rpc, address, "owner()")
            except (RpcClientError, ValueError) as exc:
                click.secho(f"  Error checking owner: {exc}", fg="yellow")
                current_owner = None

            if current_owner is None:
                click.secho("  Could not determine owner", fg="yellow")
                not_owned += 1
            elif _same(current_owner, deployer):
                click.echo(f"Owner:    {current_owner}")
                click.secho("  You ARE the owner", fg="green")
            else:
                click.echo(f"Owner:    {current_owner}")
                click.secho("  You are NOT the owner", fg="red")
                click.echo(f"  To control this contract, you need the key for {current_owner}")
                not_owned += 1

            if has_token:
                try:
                    token_address = read_address(rpc, address, "token()")
                except (RpcClientError, ValueError) as exc:
                    click.secho(f"  Error checking token: {exc}", fg="yellow")
                    token_address = None
                if token_address is not None:
                    click.echo(f"Token:    {token_address}")
                    if settings.token_address and not _same(token_address, settings.token_address):
                        click.secho("  Token does not match DEVPN_TOKEN_ADDRESS", fg="yellow")
    finally:
        rpc.close()

    click.echo("-" * 60)
    if not_owned:
        click.secho(f"{not_owned} contract(s) not owned by the deployer", fg="yellow")
    else:
        click.secho("The deployer owns every configured contract", fg="green")
