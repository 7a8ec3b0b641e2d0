"""Path management utilities for contract-deployer library."""

from pathlib import Path
from typing import Optional, Union

from .constants import DEPLOYMENT_FILENAME, OWNER_ACTIONS_FILENAME


def get_default_deployment_dir(network: str) -> Path:
    """
    Get default deployment folder for a network.

    Returns:
        Path to ./deployments/{network}
    """
    return Path.cwd() / "deployments" / network


def get_deployment_paths(
    network: str, deployment_root: Optional[Union[Path, str]] = None
) -> tuple[Path, Path]:
    """
    Get durable store paths.

    Args:
        network: Network name
        deployment_root: Custom deployment folder (defaults to ./deployments/{network})

    Returns:
        Tuple of (manifest_path, owner_actions_path)
    """
    if deployment_root is None:
        deployment_root = get_default_deployment_dir(network)
    else:
        deployment_root = Path(deployment_root).absolute()

    manifest_path = deployment_root / DEPLOYMENT_FILENAME
    owner_actions_path = deployment_root / OWNER_ACTIONS_FILENAME

    return (manifest_path, owner_actions_path)
