"""
DEVPN CLI

Command-line interface for deploying and operating the DEVPN token,
vesting, and reward contracts on Polygon Amoy through the Tatum gateway.

Commands:
  deploy   - Deploy the contract suite and save addresses to .env
  setup    - Set the Reward contract and initialize distribution
  vest     - Create a vesting schedule and release it
  token    - DEVPN balance / transfer
  owner    - Check contract ownership
  wallet   - Create a recipient wallet
  whoami   - Show the signer address
  info     - Show configuration
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from .config import ConfigError, Settings, load_settings
from .wallet.eth import get_address


# ============ Constants ============

VERSION = "1.0.0"


# ============ Banner ============


def _print_banner() -> None:
    border = click.style("  ◆ ═══════════════════════════════════════ ◆", fg="cyan")
    click.echo()
    click.echo(border)
    click.echo(
        click.style("        D E V P N", fg="bright_white", bold=True)
        + click.style(f"        v{VERSION}", dim=True)
    )
    click.secho("        ─── Polygon Amoy Deployment Tools ───", fg="cyan")
    click.echo(border)
    click.echo()


# ============ Main CLI Group ============


@click.group(invoke_without_command=True)
@click.version_option(version=VERSION, prog_name="devpn")
@click.option(
    "--env-file",
    type=click.Path(dir_okay=False, path_type=Path),
    envvar="DEVPN_ENV_FILE",
    default=None,
    help="Path to .env (default: ./.env)",
)
@click.option("-v", "--verbose", is_flag=True, help="Log RPC calls and retries")
@click.pass_context
def cli(ctx: click.Context, env_file: Optional[Path], verbose: bool) -> None:
    """DEVPN: contract deployment and operations on Polygon Amoy."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Quiet the HTTP transport's own request lines
    logging.getLogger("httpx").setLevel(logging.WARNING)

    try:
        ctx.obj = load_settings(env_file)
    except ConfigError as exc:
        click.secho(f"ERROR: {exc}", fg="red")
        sys.exit(1)

    if ctx.invoked_subcommand is None:
        _print_banner()
        click.echo(ctx.get_help())


# ============ Top-level Commands ============

from .commands.deploy import deploy
from .commands.owner import owner
from .commands.setup import setup
from .commands.token import token
from .commands.vesting import vest
from .commands.wallet import wallet

cli.add_command(deploy)
cli.add_command(setup)
cli.add_command(vest)
cli.add_command(token)
cli.add_command(owner)
cli.add_command(wallet)


# ============ Identity ============


@cli.command()
@click.pass_obj
def whoami(settings: Settings) -> None:
    """Show the signer wallet address."""
    try:
        address = get_address(settings.require("private_key"))
    except (ConfigError, ValueError):
        click.echo("No signer key found.")
        click.echo("Set PRIVATE_KEY in .env.")
        sys.exit(1)
    click.echo(f"Address: {address}")


# ============ Info ============


@cli.command()
@click.pass_obj
def info(settings: Settings) -> None:
    """Show configuration."""
    _print_banner()

    click.secho("  Network ────────────────────────────────", fg="cyan")
    click.echo()
    _row("RPC URL", settings.rpc_url)
    _row("API key", "set" if settings.api_key else click.style("not set", fg="yellow"))
    _row("Chain ID", str(settings.chain_id))
    _row("Explorer", settings.explorer_base)
    _row("Env file", str(settings.env_path))
    click.echo()

    click.secho("  Signer ─────────────────────────────────", fg="cyan")
    click.echo()
    try:
        _row("Address", get_address(settings.require("private_key")))
    except (ConfigError, ValueError):
        _row("Address", click.style("not configured", fg="yellow")
             + click.style("  (set PRIVATE_KEY)", dim=True))
    click.echo()

    click.secho("  Contracts ──────────────────────────────", fg="cyan")
    click.echo()
    for label, value in [
        ("DEVPNToken", settings.token_address),
        ("NodeRegistry", settings.node_registry_address),
        ("Reward", settings.reward_address),
        ("Vesting", settings.vesting_address),
    ]:
        _row(label, value or click.style("not deployed", fg="yellow"))
    click.echo()


def _row(label: str, value: str) -> None:
    click.echo(click.style(f"  {label + ':':<14}", dim=True) + value)


# ============ Entry Points ============


def main() -> None:
    """DEVPN CLI entry point."""
    # Ensure UTF-8 output on Windows (for Unicode box-drawing / symbols)
    if sys.platform == "win32":
        try:
            sys.stdout.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
            sys.stderr.reconfigure(encoding="utf-8")  # type: ignore[union-attr]
        except (AttributeError, OSError):
            pass  # Fallback: old Python or non-tty
    cli()


if __name__ == "__main__":
    main()
