"""
Deploy - Deploy the DEVPN contract suite to Polygon Amoy.

Flow:
1. Verify chain ID and that Hardhat artifacts exist
2. Deploy DEVPNToken, NodeRegistry, Reward(token), Vesting(token) in order
3. Write <NAME>_ADDRESS entries back into .env
4. Print the follow-up `devpn setup` step
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import click

from ..chain.artifacts import (
    ArtifactError,
    encode_constructor_args,
    find_artifacts_dir,
    list_artifacts,
    load_artifact,
)
from ..chain.rpc import RpcClientError
from ..chain.tx import WEI_PER_MATIC, TransactionError, TransactionSubmitter
from ..config import ConfigError, Settings, update_env_file
from .common import connect, fail, open_submitter, rule

DEPLOYMENT_DELAY = 2.0


@dataclass(frozen=True)
class ContractSpec:
    name: str
    env_key: str
    # names of previously deployed contracts passed to the constructor
    constructor_refs: tuple[str, ...] = ()


CONTRACTS_TO_DEPLOY: tuple[ContractSpec, ...] = (
    ContractSpec("DEVPNToken", "DEVPN_TOKEN_ADDRESS"),
    ContractSpec("NodeRegistry", "NODE_REGISTRY_ADDRESS"),
    ContractSpec("Reward", "REWARD_ADDRESS", ("DEVPNToken",)),
    ContractSpec("Vesting", "VESTING_ADDRESS", ("DEVPNToken",)),
)


class DeploymentError(RuntimeError):
    """Raised when a contract in the suite fails to deploy."""


def deploy_suite(
    submitter: TransactionSubmitter,
    artifacts_dir: Path,
    contracts: tuple[ContractSpec, ...] = CONTRACTS_TO_DEPLOY,
    delay: float = DEPLOYMENT_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> dict[str, str]:
    """
    Deploy contracts in order, feeding earlier addresses to later constructors.

    Returns:
        Mapping of env key -> deployed address

    Raises:
        DeploymentError: On the first contract that does not deploy
    """
    deployed: dict[str, str] = {}
    addresses: dict[str, str] = {}

    for index, spec in enumerate(contracts, start=1):
        click.echo("")
        click.echo(f"[{index}/{len(contracts)}] Deploying {spec.name}...")

        artifact = load_artifact(spec.name, artifacts_dir)
        args = [addresses[ref] for ref in spec.constructor_refs]
        constructor_data = encode_constructor_args(artifact.abi, args) if args else ""

        result = submitter.deploy(artifact.bytecode, constructor_data)
        if not result.succeeded or not result.contract_address:
            raise DeploymentError(
                f"Failed to deploy {spec.name} ({result.state.value}, tx {result.tx_hash})"
            )

        addresses[spec.name] = result.contract_address
        deployed[spec.env_key] = result.contract_address
        click.secho(f"  {spec.name} deployed: {result.contract_address}", fg="green")
        click.echo(f"  Gas used: {result.gas_used}")

        if index < len(contracts):
            sleep(delay)

    return deployed


@click.command()
@click.option(
    "--artifacts",
    "artifacts_path",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Hardhat artifacts/contracts directory (default: searched from cwd)",
)
@click.option("--no-save", is_flag=True, help="Do not write addresses to .env")
@click.pass_obj
def deploy(settings: Settings, artifacts_path: Optional[Path], no_save: bool) -> None:
    """
    Deploy DEVPNToken, NodeRegistry, Reward and Vesting.

    Deployer pays gas. Contract addresses are saved back to .env.
    """
    rule("DEVPN Deployment (Polygon Amoy via Tatum)")
    click.echo("  Note: the free Tatum plan allows 3 requests/second;")
    click.echo("  requests are spaced and retried automatically.")
    click.echo("")

    try:
        artifacts_dir = artifacts_path or find_artifacts_dir()
        found = list_artifacts(artifacts_dir)
        if not found:
            raise ArtifactError(
                f"No artifact files found in {artifacts_dir}. Run 'npx hardhat compile'."
            )
    except ArtifactError as exc:
        fail(str(exc))
    click.echo(f"  Found {len(found)} artifact file(s)")

    rpc = connect(settings)
    try:
        submitter = open_submitter(settings, rpc)
        balance = submitter.get_balance()
        click.echo(f"  Deployer: {submitter.address}")
        click.echo(f"  Balance: {balance / WEI_PER_MATIC} MATIC")

        deployed = deploy_suite(submitter, artifacts_dir)
    except (ConfigError, ArtifactError, DeploymentError, TransactionError, RpcClientError, ValueError) as exc:
        fail(str(exc))
    finally:
        rpc.close()

    if not no_save and settings.env_path is not None:
        update_env_file(settings.env_path, deployed)
        click.echo("")
        click.echo(f"  Saved contract addresses to {settings.env_path}")

    click.echo("")
    rule("All contracts deployed")
    for key, address in deployed.items():
        click.echo(f"  {key}: {address}")

    click.echo("")
    click.echo("Next steps:")
    click.echo(f"  1. setRewardContract({deployed['REWARD_ADDRESS']}) on DEVPNToken")
    click.echo(f"  2. initializeDistribution({deployed['VESTING_ADDRESS']}) on DEVPNToken")
    click.echo("  Run: devpn setup")
