"""Helpers shared by the command implementations."""

from __future__ import annotations

import sys
from typing import NoReturn

import click

from ..chain.rpc import POLYGON_AMOY_CHAIN_ID, RpcClient
from ..chain.tx import SubmissionResult, TransactionSubmitter, TxState
from ..config import Settings


def fail(message: str) -> NoReturn:
    click.secho(f"ERROR: {message}", fg="red")
    sys.exit(1)


def rule(title: str) -> None:
    click.echo("=" * 60)
    click.echo(title)
    click.echo("=" * 60)


def connect(settings: Settings) -> RpcClient:
    if not settings.api_key:
        click.secho(
            "  Warning: TATUM_API_KEY not set; the gateway may reject requests.",
            fg="yellow",
        )
    return settings.rpc_client()


def verify_chain_id(rpc: RpcClient, expected: int = POLYGON_AMOY_CHAIN_ID) -> int:
    """Read eth_chainId and warn when it is not the expected network."""
    chain_id = rpc.chain_id()
    click.echo(f"  Connected to chain ID: {chain_id}")
    if chain_id != expected:
        click.secho(
            f"  Warning: chain ID does not match Polygon Amoy ({expected})",
            fg="yellow",
        )
    return chain_id


def open_submitter(settings: Settings, rpc: RpcClient) -> TransactionSubmitter:
    private_key = settings.require("private_key")
    chain_id = verify_chain_id(rpc, settings.chain_id)
    return TransactionSubmitter(rpc, private_key, chain_id)


def report(settings: Settings, result: SubmissionResult, what: str) -> None:
    """Print the outcome of a submission."""
    url = settings.tx_url(result.tx_hash)
    if result.state is TxState.CONFIRMED:
        click.secho(f"  SUCCESS: {what}", fg="green")
        click.echo(f"  TX: {result.tx_hash}")
        click.echo(f"  Gas used: {result.gas_used}")
    elif result.state is TxState.REVERTED:
        click.secho(f"  FAILED: {what} reverted", fg="red")
        click.echo(f"  TX: {result.tx_hash}")
    elif result.state is TxState.UNKNOWN:
        click.secho(f"  PENDING: no receipt yet for {what}", fg="yellow")
        click.echo(f"  TX: {result.tx_hash}")
        click.echo("  Transaction may still be pending. Check manually.")
    else:
        click.echo(f"  TX sent: {result.tx_hash}")
    click.echo(f"  Explorer: {url}")
