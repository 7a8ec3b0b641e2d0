"""Deployment manifest for contract-deployer library."""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .storage import load_json, save_json
from .types import CompiledArtifact, MaterializedComponent

logger = logging.getLogger(__name__)


def _empty_manifest() -> Dict[str, Any]:
    return {"targets": {}, "sources": {}}


class DeploymentManifest:
    """
    Durable record of deployed components.

    Backed by a deployment.json file with two maps:
    - targets: component name -> {name, address, source, link, timestamp, txn, network}
    - sources: source id -> {bytecode, abi} captured when the component was deployed

    Entries are only ever added or overwritten, and every mutation is written
    to disk before the mutating method returns.
    """

    def __init__(self, path: Path, data: Optional[Dict[str, Any]] = None):
        self.path = Path(path)
        self._data = data if data is not None else _empty_manifest()
        self._data.setdefault("targets", {})
        self._data.setdefault("sources", {})

    @classmethod
    def load(cls, path: Path) -> "DeploymentManifest":
        """
        Load the manifest, creating an empty one if the file doesn't exist.

        Args:
            path: Path to deployment.json

        Returns:
            DeploymentManifest bound to ``path``
        """
        path = Path(path)
        return cls(path, load_json(path, _empty_manifest))

    @property
    def targets(self) -> Dict[str, Dict[str, Any]]:
        return self._data["targets"]

    @property
    def sources(self) -> Dict[str, Dict[str, Any]]:
        return self._data["sources"]

    def address_of(self, name: str) -> Optional[str]:
        """Return the recorded address for a component, or None."""
        target = self.targets.get(name)
        if not target:
            return None
        return target.get("address") or None

    def abi_of(self, name: str) -> Optional[List[Dict[str, Any]]]:
        """Return the ABI captured for a component's source, or None."""
        target = self.targets.get(name)
        if not target:
            return None
        source = self.sources.get(target.get("source", ""))
        if not source:
            return None
        return source.get("abi")

    def record_deployment(
        self,
        component: MaterializedComponent,
        artifact: CompiledArtifact,
        bytecode: str,
        network: str,
        link: str,
    ) -> None:
        """
        Record a freshly deployed component and persist the manifest.

        Args:
            component: Handle of the new deployment
            artifact: Compiled artifact it was deployed from
            bytecode: Linked bytecode that was actually deployed
            network: Network name
            link: Block explorer URL of the new address
        """
        self.targets[component.name] = {
            "name": component.name,
            "address": component.address,
            "source": component.source,
            "link": link,
            "timestamp": datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC"),
            "txn": component.txn or "",
            "network": network,
        }
        self.sources[component.source] = {
            "bytecode": bytecode,
            "abi": artifact.abi,
        }
        self.save()
        logger.debug("Recorded %s at %s in %s", component.name, component.address, self.path)

    def save(self) -> None:
        save_json(self._data, self.path)

    def to_dict(self) -> Dict[str, Any]:
        return self._data
