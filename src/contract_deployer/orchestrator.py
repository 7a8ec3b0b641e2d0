"""Deployment orchestration for contract-deployer library."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from .deployer import ComponentDeployer
from .exceptions import (
    ChainCallError,
    MissingArtifactError,
    MissingDependencyError,
    NoExistingAddressError,
    UserDeclined,
)
from .operations import Operation, expect_equal
from .reconciler import ReconciliationStep, StepReconciler
from .types import ACCOUNT, Call, ComponentDeclaration, PriorCall, Ref, Registry, StepOutcome

logger = logging.getLogger(__name__)

_UNSET = object()


@dataclass(frozen=True)
class WiringStep:
    """
    Declarative reconciliation step.

    Arguments and ``expected`` may hold Ref / Call / ACCOUNT placeholders,
    resolved once the components they name have been materialized.
    """

    contract: str
    write: str
    write_args: Tuple[Any, ...] = ()
    read: Optional[str] = None
    read_args: Tuple[Any, ...] = ()
    expected: Any = _UNSET
    predicate: Optional[Callable[[Any], bool]] = None
    when: Optional[Callable[[Registry], bool]] = None

    def __post_init__(self):
        if self.read is not None and self.predicate is None and self.expected is _UNSET:
            raise ValueError(
                f"Step {self.contract}.{self.write} declares a read without an expected "
                "value or predicate"
            )


@dataclass(frozen=True)
class Stage:
    """Components to materialize in order, then the steps that wire them."""

    name: str
    components: Tuple[ComponentDeclaration, ...] = ()
    steps: Tuple[WiringStep, ...] = ()


def family(items: Iterable[Any], build: Callable[[Any], Stage]) -> List[Stage]:
    """Expand a multi-instance component family into one stage per item."""
    return [build(item) for item in items]


@dataclass
class RunReport:
    """What a run did."""

    deployed: List[Tuple[str, str]] = field(default_factory=list)
    reused: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    steps: List[Tuple[str, StepOutcome]] = field(default_factory=list)
    cancelled: bool = False


class _Unresolved(Exception):
    """A placeholder names a component that was not materialized."""


class Orchestrator:
    """
    Walks a deployment plan one stage at a time.

    Each stage materializes its components in declaration order and then
    reconciles its wiring steps. Nothing runs concurrently: later stages
    depend on addresses produced by earlier ones.
    """

    def __init__(
        self,
        deployer: ComponentDeployer,
        reconciler: StepReconciler,
        confirm: Optional[Callable[[str], bool]] = None,
    ):
        self.deployer = deployer
        self.reconciler = reconciler
        self.confirm = confirm
        self.chain = deployer.chain
        self.account = deployer.account
        self.manifest = deployer.manifest

    def preflight(self, plan: Sequence[Stage]) -> None:
        """
        Check the plan against the manifest and artifacts before touching the chain.

        Raises:
            NoExistingAddressError: If components marked for reuse have no recorded address
            MissingArtifactError: If a configured component's source has no artifact
        """
        declarations = [d for stage in plan for d in stage.components]

        missing_addresses = [
            d.name
            for d in declarations
            if not d.skipped
            and not d.should_deploy
            and not self.manifest.address_of(d.name)
        ]
        if missing_addresses:
            raise NoExistingAddressError(
                "Cannot use existing contracts for deployment as addresses not found "
                f"for: {', '.join(missing_addresses)} (manifest: {self.manifest.path})"
            )

        missing_sources = sorted(
            {
                d.source_id
                for d in declarations
                if not d.skipped and d.source_id not in self.deployer.artifacts
            }
        )
        if missing_sources:
            raise MissingArtifactError(f"No compiled source for: {', '.join(missing_sources)}")

    def run(self, plan: Sequence[Stage], interactive: bool = False) -> RunReport:
        """
        Execute a full deployment run.

        Args:
            plan: Ordered stages
            interactive: Ask the operator before starting, and before deploying
                         components that declare a confirmation prompt

        Returns:
            RunReport; ``cancelled`` is True if the operator declined a prompt

        Raises:
            DeploymentError: On precondition or chain failures. Everything
            persisted before the failure stays valid for the next run.
        """
        report = RunReport()
        self.preflight(plan)

        if interactive and not self._confirm_start(plan):
            logger.warning("Operation cancelled")
            report.cancelled = True
            return report

        registry: Registry = {}
        linking_table: Dict[str, str] = {}
        prior = {
            name: (self.manifest.address_of(name), self.manifest.abi_of(name))
            for name in list(self.manifest.targets)
        }

        try:
            for stage in plan:
                logger.debug("Stage %s", stage.name)
                for declaration in stage.components:
                    self._materialize(
                        declaration, registry, linking_table, prior, report, interactive
                    )
                for wiring in stage.steps:
                    self._wire(wiring, registry, report)
        except UserDeclined:
            logger.warning("Operation cancelled")
            report.cancelled = True

        return report

    def _confirm_start(self, plan: Sequence[Stage]) -> bool:
        to_deploy = [
            d.name
            for stage in plan
            for d in stage.components
            if d.should_deploy
        ]
        prompt = (
            f"WARNING: This action will deploy the following contracts to "
            f"{self.deployer.network}:\n{', '.join(to_deploy) or '(none)'}\n"
            "It will also reconcile their configuration.\nDo you want to continue?"
        )
        return bool(self.confirm and self.confirm(prompt))

    def _materialize(
        self,
        declaration: ComponentDeclaration,
        registry: Registry,
        linking_table: Dict[str, str],
        prior: Dict[str, tuple],
        report: RunReport,
        interactive: bool = False,
    ) -> None:
        args = None
        if declaration.should_deploy:
            missing = [dep for dep in declaration.deps if dep not in registry]
            if missing:
                raise MissingDependencyError(
                    f"Cannot deploy {declaration.name} as it is missing dependencies: "
                    f"{', '.join(missing)}"
                )
            try:
                args = self._resolve(declaration.args, registry, prior)
            except _Unresolved as e:
                raise MissingDependencyError(
                    f"Cannot deploy {declaration.name} as it references {e}, "
                    "which was not materialized"
                ) from e
            except ChainCallError as e:
                raise ChainCallError(f"Cannot deploy {declaration.name}: {e}") from e

            if interactive and declaration.confirm_prompt is not None:
                prompt = declaration.confirm_prompt(args)
                if not (self.confirm and self.confirm(prompt)):
                    raise UserDeclined(f"Operator declined deploying {declaration.name}")

        component = self.deployer.materialize(declaration, registry, linking_table, args=args)
        if component is None:
            report.skipped.append(declaration.name)
        elif component.deployed:
            report.deployed.append((component.name, component.address))
        else:
            report.reused.append(component.name)

    def _wire(self, wiring: WiringStep, registry: Registry, report: RunReport) -> None:
        target = registry.get(wiring.contract)
        if target is None:
            logger.debug("Skipping %s.%s as it is not materialized", wiring.contract, wiring.write)
            return

        if wiring.when is not None and not wiring.when(registry):
            return

        try:
            write_args = self._resolve(wiring.write_args, registry)
            read_args = self._resolve(wiring.read_args, registry)
            predicate = wiring.predicate
            if wiring.read is not None and predicate is None:
                predicate = expect_equal(self._resolve(wiring.expected, registry))
        except _Unresolved as e:
            logger.debug(
                "Skipping %s.%s as %s is not materialized", wiring.contract, wiring.write, e
            )
            return

        step = ReconciliationStep(
            contract=wiring.contract,
            target=target,
            write=Operation(wiring.write, tuple(write_args)),
            read=Operation(wiring.read, tuple(read_args)) if wiring.read is not None else None,
            predicate=predicate,
        )
        outcome = self.reconciler.reconcile(step)
        report.steps.append((step.key, outcome))

    def _resolve(
        self, value: Any, registry: Registry, prior: Optional[Dict[str, tuple]] = None
    ) -> Any:
        if value is ACCOUNT:
            return self.account
        if isinstance(value, Ref):
            if value.name not in registry:
                raise _Unresolved(value.name)
            return registry[value.name].address
        if isinstance(value, Call):
            if value.name not in registry:
                raise _Unresolved(value.name)
            component = registry[value.name]
            args = self._resolve(value.args, registry, prior)
            return self.chain.call(component.address, component.abi, value.method, args)
        if isinstance(value, PriorCall):
            address, abi = (prior or {}).get(value.name, (None, None))
            if not address or not abi:
                return self._resolve(value.default, registry, prior)
            args = self._resolve(value.args, registry, prior)
            result = self.chain.call(address, abi, value.method, args)
            return value.transform(result) if value.transform is not None else result
        if isinstance(value, tuple):
            return tuple(self._resolve(v, registry, prior) for v in value)
        if isinstance(value, list):
            return [self._resolve(v, registry, prior) for v in value]
        return value


def deployed(*names: str) -> Callable[[Registry], bool]:
    """Step guard: all named components were freshly deployed in this run."""

    def guard(registry: Registry) -> bool:
        return all(name in registry and registry[name].deployed for name in names)

    return guard


def any_deployed(*names: str) -> Callable[[Registry], bool]:
    """Step guard: at least one named component was freshly deployed in this run."""

    def guard(registry: Registry) -> bool:
        return any(name in registry and registry[name].deployed for name in names)

    return guard
