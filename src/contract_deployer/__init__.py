"""
contract-deployer: Python library for idempotent smart contract deployment and wiring
"""

from importlib.metadata import PackageNotFoundError, version

from .chain import ChainClient, JsonRpcChainClient
from .deployer import ComponentDeployer
from .deployments import deploy, import_fee_periods, load_connection
from .exceptions import (
    ArtifactSourceError,
    ChainCallError,
    DeploymentError,
    FeePeriodError,
    InvalidOperationError,
    MissingArtifactError,
    MissingDependencyError,
    NetworkNotFoundError,
    NoExistingAddressError,
    UserDeclined,
)
from .fee_periods import FeePeriod, FeePeriodImport
from .manifest import DeploymentManifest
from .operations import Operation
from .orchestrator import Orchestrator, RunReport, Stage, WiringStep, family
from .owner_actions import OwnerActionQueue
from .reconciler import ReconciliationStep, StepReconciler
from .types import (
    ACCOUNT,
    Call,
    CompiledArtifact,
    ComponentDeclaration,
    MaterializedComponent,
    PriorCall,
    Ref,
    StepOutcome,
    StepStatus,
)

try:
    __version__ = version("contract-deployer")
except PackageNotFoundError:
    __version__ = None

__all__ = [
    "deploy",
    "import_fee_periods",
    "load_connection",
    "ChainClient",
    "JsonRpcChainClient",
    "ComponentDeployer",
    "DeploymentManifest",
    "FeePeriod",
    "FeePeriodImport",
    "OwnerActionQueue",
    "Orchestrator",
    "RunReport",
    "Stage",
    "WiringStep",
    "family",
    "Operation",
    "ReconciliationStep",
    "StepReconciler",
    "ACCOUNT",
    "Call",
    "PriorCall",
    "Ref",
    "CompiledArtifact",
    "ComponentDeclaration",
    "MaterializedComponent",
    "StepOutcome",
    "StepStatus",
    "DeploymentError",
    "MissingArtifactError",
    "MissingDependencyError",
    "NoExistingAddressError",
    "ChainCallError",
    "InvalidOperationError",
    "NetworkNotFoundError",
    "ArtifactSourceError",
    "FeePeriodError",
    "UserDeclined",
]
