"""Data types and dataclasses for contract-deployer library."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple


@dataclass(frozen=True)
class Ref:
    """Placeholder for the address of a component materialized earlier in the run."""

    name: str


@dataclass(frozen=True)
class Call:
    """Placeholder for the result of a read on a component materialized earlier in the run."""

    name: str
    method: str
    args: Tuple[Any, ...] = ()


@dataclass(frozen=True)
class PriorCall:
    """
    Placeholder for a read on the address the manifest held for ``name`` before this run.

    Resolves to ``default`` (which may itself be a placeholder) when the
    manifest has no address for ``name``. Otherwise the read result is passed
    through ``transform`` when one is given.
    """

    name: str
    method: str
    args: Tuple[Any, ...] = ()
    default: Any = None
    transform: Optional[Callable[[Any], Any]] = None


class _Account:
    def __repr__(self) -> str:
        return "ACCOUNT"


# Placeholder for the caller account
ACCOUNT = _Account()


@dataclass(frozen=True)
class ComponentDeclaration:
    """A component the run should materialize."""

    name: str
    source: Optional[str] = None  # Artifact identifier, defaults to name
    args: Tuple[Any, ...] = ()
    deps: Tuple[str, ...] = ()
    deploy: Optional[bool] = None  # None: absent from the active configuration
    force: bool = False
    library: bool = False
    # Builds an operator prompt from the resolved constructor args; asked
    # before a fresh deployment in interactive runs
    confirm_prompt: Optional[Callable[[Sequence[Any]], str]] = None

    @property
    def source_id(self) -> str:
        return self.source or self.name

    @property
    def skipped(self) -> bool:
        """Absent from the active configuration and not forced."""
        return self.deploy is None and not self.force

    @property
    def should_deploy(self) -> bool:
        """Deploy fresh rather than reuse."""
        return self.force or self.deploy is True


@dataclass
class CompiledArtifact:
    """ABI and bytecode of one compiled source."""

    abi: List[Dict[str, Any]]
    bytecode: str
    link_references: Dict[str, Dict[str, List[Dict[str, int]]]] = field(default_factory=dict)


@dataclass
class DeployResult:
    """Outcome of a contract creation transaction."""

    address: str
    txn: str


@dataclass
class MaterializedComponent:
    """A callable handle bound to a deployed address."""

    name: str
    address: str
    abi: List[Dict[str, Any]]
    source: str
    deployed: bool = False  # True when created during this run
    txn: Optional[str] = None


@dataclass
class OwnerAction:
    """A privileged write deferred to the contract owner."""

    key: str  # e.g. "ProxyFeePool.setTarget(0x...)"
    target: str
    action: str  # e.g. "setTarget(0x...)"
    link: str
    complete: bool = False


class StepStatus(Enum):
    """
    Result of reconciling one step.

    - APPLIED: write sent by the caller account
    - SKIPPED: on-chain state already matched
    - QUEUED: write appended to the owner action queue
    - CONFIRMED: an operator confirmed performing the write out-of-band
    """

    APPLIED = "applied"
    SKIPPED = "skipped"
    QUEUED = "queued"
    CONFIRMED = "confirmed"


@dataclass
class StepOutcome:
    status: StepStatus
    txn: Optional[str] = None


# Run-scoped map of component name -> handle
Registry = Dict[str, MaterializedComponent]
