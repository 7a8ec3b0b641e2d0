"""Step reconciler for contract-deployer library."""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .chain import ChainClient
from .exceptions import ChainCallError, UserDeclined
from .operations import Operation, bind
from .owner_actions import OwnerActionQueue
from .types import MaterializedComponent, StepOutcome, StepStatus

logger = logging.getLogger(__name__)

OWNER = Operation("owner")


@dataclass(frozen=True)
class ReconciliationStep:
    """
    An "ensure on-chain value" step against one materialized component.

    Without a read the write is unconditional and is attempted on every run,
    so it must be safe to re-apply.
    """

    contract: str
    target: MaterializedComponent
    write: Operation
    read: Optional[Operation] = None
    predicate: Optional[Callable[[Any], bool]] = None

    def __post_init__(self):
        bind(self.write, self.target.abi)
        if self.read is not None:
            bind(self.read, self.target.abi)
            if self.predicate is None:
                raise ValueError(f"Step {self.key} declares a read without a predicate")

    @property
    def key(self) -> str:
        return f"{self.contract}.{self.write.describe()}"


class StepReconciler:
    """
    Applies reconciliation steps, writing only when on-chain state differs.

    Writes the caller account isn't authorized for go to the owner action
    queue when one is configured, otherwise to an operator prompt.
    """

    def __init__(
        self,
        chain: ChainClient,
        account: str,
        owner_actions: Optional[OwnerActionQueue] = None,
        confirm: Optional[Callable[[str], bool]] = None,
        explorer_url: str = "",
    ):
        self.chain = chain
        self.account = account
        self.owner_actions = owner_actions
        self.confirm = confirm
        self.explorer_url = explorer_url.rstrip("/")

    def reconcile(self, step: ReconciliationStep) -> StepOutcome:
        """
        Bring one on-chain value to its desired state.

        Returns:
            StepOutcome with status SKIPPED, APPLIED (with txn), QUEUED or CONFIRMED

        Raises:
            UserDeclined: If the operator declines the manual confirmation
            ChainCallError: If a read or write fails
        """
        logger.info("Attempting action: %s", step.key)
        try:
            return self._reconcile(step)
        except ChainCallError as e:
            raise ChainCallError(f"{step.key} failed: {e}") from e

    def _reconcile(self, step: ReconciliationStep) -> StepOutcome:
        target = step.target

        if step.read is not None:
            result = self.chain.call(target.address, target.abi, step.read.name, step.read.args)
            if step.predicate(result):
                logger.debug("Nothing required for %s", step.key)
                return StepOutcome(StepStatus.SKIPPED)

        bind(OWNER, target.abi)
        owner = self.chain.call(target.address, target.abi, OWNER.name, OWNER.args)

        if self.chain.address_equals(owner, self.account):
            txn = self.chain.send(
                target.address, target.abi, step.write.name, step.write.args, self.account
            )
            logger.info("Successfully completed %s in hash: %s", step.key, txn)
            return StepOutcome(StepStatus.APPLIED, txn=txn)

        action = step.write.describe()
        if self.owner_actions is not None:
            self.owner_actions.append(key=step.key, target=target.address, action=action)
            return StepOutcome(StepStatus.QUEUED)

        link = f"{self.explorer_url}/address/{target.address}#writeContract"
        prompt = (
            f"YOUR TASK: Invoke {action} via {link}\n"
            "Please enter Y when the transaction has been mined and not earlier."
        )
        if self.confirm is not None and self.confirm(prompt):
            return StepOutcome(StepStatus.CONFIRMED)

        logger.warning("Cancelled at %s", step.key)
        raise UserDeclined(f"Operator declined {step.key}")
