"""
Wallet - Create a new recipient wallet.

Writes wallet.json next to .env and, if .env exists, records
WALLET_ADDRESS / WALLET_PRIVATE_KEY there.
"""

from __future__ import annotations

import click

from ..config import Settings
from ..wallet.eth import generate_eoa, save_wallet
from .common import fail


@click.group()
def wallet() -> None:
    """Manage local wallets."""


@wallet.command("create")
@click.option("--force", is_flag=True, help="Overwrite an existing wallet.json")
@click.pass_obj
def wallet_create(settings: Settings, force: bool) -> None:
    """Generate a new secp256k1 wallet."""
    wallet_path = settings.project_dir / "wallet.json"
    if wallet_path.exists() and not force:
        fail(f"{wallet_path} already exists (use --force)")

    private_key, address = generate_eoa()
    save_wallet(private_key, address, wallet_path, env_path=settings.env_path)

    click.secho("Wallet created successfully!", fg="green")
    click.echo(f"  Address: {address}")
    click.echo(f"  Saved to: {wallet_path}")
    if settings.env_path is not None and settings.env_path.exists():
        click.echo(f"  Also saved to: {settings.env_path}")
    click.echo("")
    click.secho("IMPORTANT: Save your private key securely and never share it.", fg="yellow")
