"""Component deployer for contract-deployer library."""

import logging
from typing import Any, Dict, Optional, Sequence

from .chain import ChainClient
from .exceptions import (
    ChainCallError,
    MissingArtifactError,
    MissingDependencyError,
    NoExistingAddressError,
)
from .linking import link_bytecode
from .manifest import DeploymentManifest
from .types import CompiledArtifact, ComponentDeclaration, MaterializedComponent, Registry

logger = logging.getLogger(__name__)


class ComponentDeployer:
    """Deploys components or reconnects to existing deployments recorded in the manifest."""

    def __init__(
        self,
        chain: ChainClient,
        artifacts: Dict[str, CompiledArtifact],
        manifest: DeploymentManifest,
        account: str,
        network: str,
        explorer_url: str,
    ):
        """
        Initialize the deployer.

        Args:
            chain: Client used to submit deployments
            artifacts: Compiled artifacts keyed by source id
            manifest: Manifest updated after every deployment
            account: Account deployments are sent from
            network: Network name recorded in the manifest
            explorer_url: Block explorer base URL for manifest links
        """
        self.chain = chain
        self.artifacts = artifacts
        self.manifest = manifest
        self.account = account
        self.network = network
        self.explorer_url = explorer_url.rstrip("/")

    def materialize(
        self,
        declaration: ComponentDeclaration,
        registry: Registry,
        linking_table: Dict[str, str],
        args: Optional[Sequence[Any]] = None,
    ) -> Optional[MaterializedComponent]:
        """
        Deploy a component or reuse its recorded address.

        On success the handle is added to ``registry`` and, for libraries, the
        address is added to ``linking_table``.

        Args:
            declaration: Component to materialize
            registry: Components already materialized in this run
            linking_table: Library name -> address, linked into every deployment
            args: Constructor arguments with placeholders resolved
                  (defaults to declaration.args)

        Returns:
            MaterializedComponent, or None if the component is not configured
            for this run and not forced

        Raises:
            MissingDependencyError: If a dependency was not materialized first
            MissingArtifactError: If no artifact exists for the source
            NoExistingAddressError: If reuse is requested but no address is recorded
            ChainCallError: If the deployment transaction fails
        """
        name = declaration.name
        if declaration.skipped:
            logger.info("Skipping %s as it is not configured for deployment", name)
            return None

        missing = [dep for dep in declaration.deps if dep not in registry]
        if missing:
            raise MissingDependencyError(
                f"Cannot deploy {name} as it is missing dependencies: {', '.join(missing)}"
            )

        source = declaration.source_id
        artifact = self.artifacts.get(source)
        if artifact is None:
            raise MissingArtifactError(
                f"No compiled source for {name}. The source is set to {source}, is that correct?"
            )

        if declaration.should_deploy:
            component = self._deploy(declaration, artifact, linking_table, args)
        else:
            component = self._reuse(declaration, artifact)

        registry[name] = component
        if declaration.library:
            linking_table[name] = component.address
        return component

    def _deploy(
        self,
        declaration: ComponentDeclaration,
        artifact: CompiledArtifact,
        linking_table: Dict[str, str],
        args: Optional[Sequence[Any]],
    ) -> MaterializedComponent:
        name = declaration.name
        source = declaration.source_id
        bytecode = link_bytecode(
            artifact.bytecode, linking_table, artifact.link_references, source=source
        )
        constructor_args = list(declaration.args if args is None else args)

        logger.info("Attempting to deploy %s", name)
        try:
            result = self.chain.deploy(artifact.abi, bytecode, constructor_args, self.account)
        except ChainCallError as e:
            raise ChainCallError(f"Cannot deploy {name}: {e}") from e

        component = MaterializedComponent(
            name=name,
            address=result.address,
            abi=artifact.abi,
            source=source,
            deployed=True,
            txn=result.txn,
        )
        self.manifest.record_deployment(
            component,
            artifact,
            bytecode,
            network=self.network,
            link=f"{self.explorer_url}/address/{result.address}",
        )
        logger.info("Deployed %s to %s", name, result.address)
        return component

    def _reuse(
        self, declaration: ComponentDeclaration, artifact: CompiledArtifact
    ) -> MaterializedComponent:
        name = declaration.name
        address = self.manifest.address_of(name)
        if not address:
            raise NoExistingAddressError(
                f"Settings for contract {name} specify an existing contract, "
                "but the manifest has no address for it"
            )

        target = self.manifest.targets[name]
        component = MaterializedComponent(
            name=name,
            address=address,
            abi=self.manifest.abi_of(name) or artifact.abi,
            source=target.get("source", declaration.source_id),
            deployed=False,
            txn=target.get("txn") or None,
        )
        logger.info("Reusing instance of %s at %s", name, address)
        return component
