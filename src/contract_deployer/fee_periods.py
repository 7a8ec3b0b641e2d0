"""
Fee period migration between FeePool deployments.

A freshly deployed FeePool starts without fee history. These helpers copy
the recent fee periods of the FeePool it replaces into it, one
``importFeePeriod`` transaction per period.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from .chain import ChainClient
from .constants import FEE_PERIOD_MAX_AGE
from .exceptions import ChainCallError, FeePeriodError, NoExistingAddressError
from .manifest import DeploymentManifest
from .storage import save_json

logger = logging.getLogger(__name__)

# Field order of FeePool.recentFeePeriods and importFeePeriod
FEE_PERIOD_FIELDS = (
    "feePeriodId",
    "startingDebtIndex",
    "startTime",
    "feesToDistribute",
    "feesClaimed",
    "rewardsToDistribute",
    "rewardsClaimed",
)


@dataclass
class FeePeriod:
    """One entry of FeePool.recentFeePeriods."""

    fee_period_id: int
    starting_debt_index: int
    start_time: int
    fees_to_distribute: int
    fees_claimed: int
    rewards_to_distribute: int
    rewards_claimed: int

    @classmethod
    def from_result(cls, result: Any) -> "FeePeriod":
        """Build from a decoded struct, given positionally or keyed by field name."""
        if isinstance(result, Mapping):
            values = [result[name] for name in FEE_PERIOD_FIELDS]
        else:
            values = list(result)
        return cls(*(int(value) for value in values))

    def as_args(self) -> Tuple[int, ...]:
        return (
            self.fee_period_id,
            self.starting_debt_index,
            self.start_time,
            self.fees_to_distribute,
            self.fees_claimed,
            self.rewards_to_distribute,
            self.rewards_claimed,
        )

    def to_dict(self) -> Dict[str, int]:
        return dict(zip(FEE_PERIOD_FIELDS, self.as_args()))


@dataclass
class FeePeriodImport:
    """What an import did."""

    periods: List[FeePeriod] = field(default_factory=list)
    txns: List[str] = field(default_factory=list)
    cancelled: bool = False


def read_fee_periods(
    chain: ChainClient, address: str, abi: List[Dict[str, Any]]
) -> List[FeePeriod]:
    """Read every recent fee period of the FeePool at ``address``."""
    length = int(chain.call(address, abi, "FEE_PERIOD_LENGTH", ()))
    return [
        FeePeriod.from_result(chain.call(address, abi, "recentFeePeriods", (index,)))
        for index in range(length)
    ]


def check_source_periods(
    periods: Sequence[FeePeriod], source: str, now: Optional[float] = None
) -> None:
    """
    Check that periods read from the old FeePool are worth importing.

    Raises:
        FeePeriodError: If a period was never set, or the most recent one is
        more than a week old (the source is most likely not the FeePool that
        was just replaced)
    """
    now = time.time() if now is None else now
    for index, period in enumerate(periods):
        if period.fee_period_id == 0:
            raise FeePeriodError(
                f"Fee period at index {index} has NOT been set. "
                f"Are you sure {source} is the right FeePool source?"
            )
        if index == 0 and period.start_time < now - FEE_PERIOD_MAX_AGE:
            raise FeePeriodError(
                f"The initial fee period of {source} is more than one week ago. "
                "The source should be the FeePool that was most recently replaced."
            )


def check_target_empty(periods: Sequence[FeePeriod], target: str) -> None:
    """
    Check that the new FeePool holds no imported periods yet.

    The entry with id 1 is created by the FeePool constructor and is ignored.

    Raises:
        FeePeriodError: If the target already holds imported periods
    """
    for period in periods:
        if period.fee_period_id != 1 and period.start_time != 0:
            raise FeePeriodError(
                f"The new FeePool at {target} already has imported fee periods. "
                "Use override to import over them when resuming an interrupted import."
            )


def import_fee_periods(
    chain: ChainClient,
    manifest: DeploymentManifest,
    account: str,
    source_address: str,
    override: bool = False,
    backup_path: Optional[Path] = None,
    confirm: Optional[Callable[[str], bool]] = None,
    now: Optional[float] = None,
) -> FeePeriodImport:
    """
    Copy recent fee periods from an old FeePool into the one in the manifest.

    Args:
        chain: Chain client
        manifest: Deployment manifest holding the new FeePool
        account: Account sending the imports
        source_address: Address of the FeePool being replaced
        override: Import even if the target already holds periods
        backup_path: Where to save the periods read from the source
        confirm: Ask the operator before each import; None imports without asking
        now: Current unix time (defaults to time.time())

    Returns:
        FeePeriodImport; ``cancelled`` is True if the operator declined a period

    Raises:
        NoExistingAddressError: If the manifest has no FeePool
        FeePeriodError: If the source or target fails validation
        ChainCallError: If a read or an import fails
    """
    target = manifest.address_of("FeePool")
    abi = manifest.abi_of("FeePool")
    if not target or not abi:
        raise NoExistingAddressError(f"No FeePool recorded in {manifest.path}")
    if chain.address_equals(source_address, target):
        raise FeePeriodError(
            "Cannot use same FeePool address as the source and the target. "
            "Check your source input."
        )

    logger.info("Reading from old FeePool at: %s", source_address)
    logger.info("Importing into new FeePool at: %s", target)

    periods = read_fee_periods(chain, source_address, abi)
    check_source_periods(periods, source_address, now)
    if override:
        logger.warning("Setting target to override - ignoring existing FeePool periods in target")
    else:
        check_target_empty(read_fee_periods(chain, target, abi), target)

    if backup_path is not None:
        save_json(
            {"source": source_address, "feePeriods": [p.to_dict() for p in periods]},
            backup_path,
        )
        logger.info("Saved fee periods to %s", backup_path)

    result = FeePeriodImport(periods=periods)
    for index, period in enumerate(periods):
        args = (index,) + period.as_args()
        if confirm is not None and not confirm(
            f"Do you want to continue importing this fee period in index position {index}?\n"
            f"{period.to_dict()}"
        ):
            logger.warning("Operation cancelled")
            result.cancelled = True
            break

        logger.info("Attempting action FeePool.importFeePeriod%s", args)
        try:
            txn = chain.send(target, abi, "importFeePeriod", args, account)
        except ChainCallError as e:
            raise ChainCallError(f"FeePool.importFeePeriod({index}) failed: {e}") from e
        logger.info("Successfully emitted importFeePeriod with transaction: %s", txn)
        result.txns.append(txn)

    return result
