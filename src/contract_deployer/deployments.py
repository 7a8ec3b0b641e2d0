"""Main API for contract-deployer library."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence, Union

import click

from .artifacts import load_compiled_artifacts
from .chain import ChainClient, JsonRpcChainClient
from . import fee_periods
from .constants import ACCOUNT_ENV, FEE_PERIODS_BACKUP_FILENAME, NETWORK_CONFIG
from .deployer import ComponentDeployer
from .exceptions import NetworkNotFoundError
from .manifest import DeploymentManifest
from .orchestrator import Orchestrator, RunReport, Stage
from .owner_actions import OwnerActionQueue
from .paths import get_deployment_paths
from .reconciler import StepReconciler
from .types import CompiledArtifact

logger = logging.getLogger(__name__)


@dataclass
class Connection:
    """Where and as whom to talk to a network."""

    network: str
    rpc_url: str
    account: str
    explorer_url: str


def ensure_network(network: str) -> Dict[str, object]:
    """
    Get configuration for a network.

    Raises:
        NetworkNotFoundError: If network is not configured
    """
    if network not in NETWORK_CONFIG:
        raise NetworkNotFoundError(
            f"Invalid network name '{network}'. Must be one of {', '.join(NETWORK_CONFIG)}"
        )
    return NETWORK_CONFIG[network]


def load_connection(
    network: str, rpc_url: Optional[str] = None, account: Optional[str] = None
) -> Connection:
    """
    Resolve RPC endpoint and deploying account for a network.

    Args:
        network: Network name
        rpc_url: RPC URL (defaults to the network's RPC environment variable,
                 e.g. $MAINNET_RPC_URL)
        account: Deploying account (defaults to $DEPLOYER_ACCOUNT)

    Returns:
        Connection

    Raises:
        NetworkNotFoundError: If network is not configured
        ValueError: If RPC URL or account can't be determined
    """
    network_config = ensure_network(network)

    if rpc_url is None:
        rpc_url = os.environ.get(network_config["default_rpc_env"]) or network_config.get(
            "default_rpc_url"
        )
    if rpc_url is None:
        raise ValueError(
            f"RPC URL required: set ${network_config['default_rpc_env']} environment variable "
            "or pass rpc_url parameter"
        )

    if account is None:
        account = os.environ.get(ACCOUNT_ENV)
    if not account:
        raise ValueError(
            f"Deploying account required: set ${ACCOUNT_ENV} environment variable "
            "or pass account parameter"
        )

    return Connection(
        network=network,
        rpc_url=rpc_url,
        account=account,
        explorer_url=network_config["block_explorer_url"],
    )


def confirm_action(prompt: str) -> bool:
    """Ask the operator a yes/no question on the terminal."""
    return click.confirm(prompt, default=False)


def deploy(
    plan: Sequence[Stage],
    network: str,
    deployment_path: Optional[Union[Path, str]] = None,
    build_path: Optional[Union[Path, str]] = None,
    artifacts: Optional[Dict[str, CompiledArtifact]] = None,
    rpc_url: Optional[str] = None,
    account: Optional[str] = None,
    chain: Optional[ChainClient] = None,
    use_owner_actions: bool = True,
    yes: bool = False,
    confirm: Callable[[str], bool] = confirm_action,
) -> RunReport:
    """
    Run a deployment plan against a network.

    Reads deployment.json and owner-actions.json from the deployment folder
    (creating them if needed) and keeps them up to date as the run progresses.

    Args:
        plan: Ordered stages to execute
        network: Network name
        deployment_path: Deployment folder (defaults to ./deployments/{network})
        build_path: Folder of compiled artifacts, used when ``artifacts`` is None
        artifacts: Compiled artifacts keyed by source id
        rpc_url: RPC URL (defaults to the network's environment variable)
        account: Deploying account (defaults to $DEPLOYER_ACCOUNT)
        chain: Chain client (defaults to a JsonRpcChainClient on rpc_url)
        use_owner_actions: Queue writes the account can't perform; when False,
                           prompt the operator to perform them instead
        yes: Don't ask the operator for confirmation before starting or before
             deploying components that declare a confirmation prompt
        confirm: Operator prompt

    Returns:
        RunReport describing the run

    Raises:
        ValueError: If neither artifacts nor build_path is given
        DeploymentError: If the run fails
    """
    connection = load_connection(network, rpc_url, account)

    if artifacts is None:
        if build_path is None:
            raise ValueError("Compiled artifacts required: pass artifacts or build_path")
        artifacts = load_compiled_artifacts(build_path)

    manifest_path, owner_actions_path = get_deployment_paths(network, deployment_path)
    manifest = DeploymentManifest.load(manifest_path)
    owner_actions = None
    if use_owner_actions:
        owner_actions = OwnerActionQueue.load(owner_actions_path, connection.explorer_url)

    if chain is None:
        chain = JsonRpcChainClient(connection.rpc_url)

    deployer = ComponentDeployer(
        chain=chain,
        artifacts=artifacts,
        manifest=manifest,
        account=connection.account,
        network=network,
        explorer_url=connection.explorer_url,
    )
    reconciler = StepReconciler(
        chain=chain,
        account=connection.account,
        owner_actions=owner_actions,
        confirm=confirm,
        explorer_url=connection.explorer_url,
    )
    orchestrator = Orchestrator(deployer, reconciler, confirm=confirm)

    logger.info("Starting deployment to %s via %s", network, connection.rpc_url)
    report = orchestrator.run(plan, interactive=not yes)
    logger.info(
        "Deployed %d contract(s), reused %d, %d step(s) reconciled",
        len(report.deployed),
        len(report.reused),
        len(report.steps),
    )
    return report


def import_fee_periods(
    network: str,
    source_address: str,
    deployment_path: Optional[Union[Path, str]] = None,
    rpc_url: Optional[str] = None,
    account: Optional[str] = None,
    chain: Optional[ChainClient] = None,
    override: bool = False,
    yes: bool = False,
    confirm: Callable[[str], bool] = confirm_action,
) -> fee_periods.FeePeriodImport:
    """
    Import the recent fee periods of a replaced FeePool into the deployed one.

    Outside the local network, the periods read from the source are first
    saved next to deployment.json.

    Args:
        network: Network name
        source_address: Address of the FeePool being replaced
        deployment_path: Deployment folder (defaults to ./deployments/{network})
        rpc_url: RPC URL (defaults to the network's environment variable)
        account: Sending account (defaults to $DEPLOYER_ACCOUNT)
        chain: Chain client (defaults to a JsonRpcChainClient on rpc_url)
        override: Import even if the new FeePool already holds periods
        yes: Don't ask for confirmation before each period
        confirm: Operator prompt

    Returns:
        FeePeriodImport describing the import

    Raises:
        DeploymentError: If validation or a transaction fails
    """
    connection = load_connection(network, rpc_url, account)
    manifest_path, _ = get_deployment_paths(network, deployment_path)
    manifest = DeploymentManifest.load(manifest_path)

    if chain is None:
        chain = JsonRpcChainClient(connection.rpc_url)

    backup_path = None
    if network != "local":
        backup_path = manifest_path.parent / FEE_PERIODS_BACKUP_FILENAME.format(
            network=network, address=source_address
        )

    result = fee_periods.import_fee_periods(
        chain,
        manifest,
        connection.account,
        source_address,
        override=override,
        backup_path=backup_path,
        confirm=None if yes else confirm,
    )
    logger.info("Imported %d of %d fee period(s)", len(result.txns), len(result.periods))
    return result
