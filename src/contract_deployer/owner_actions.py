"""Owner action queue for contract-deployer library."""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from .storage import load_json, save_json
from .types import OwnerAction

logger = logging.getLogger(__name__)


class OwnerActionQueue:
    """
    Durable queue of privileged writes the deploying account could not perform.

    Backed by owner-actions.json, a map of key -> {target, action, complete, link}.
    The ``complete`` flag belongs to whoever executes the actions; this queue
    only ever writes it as False.
    """

    def __init__(self, path: Path, explorer_url: str, data: Optional[Dict[str, Any]] = None):
        self.path = Path(path)
        self.explorer_url = explorer_url.rstrip("/")
        self._data: Dict[str, Dict[str, Any]] = data if data is not None else {}

    @classmethod
    def load(cls, path: Path, explorer_url: str) -> "OwnerActionQueue":
        """
        Load the queue, creating an empty file if it doesn't exist.

        Args:
            path: Path to owner-actions.json
            explorer_url: Block explorer base URL used to build entry links
        """
        path = Path(path)
        return cls(path, explorer_url, load_json(path, dict))

    def link_for(self, target: str) -> str:
        return f"{self.explorer_url}/address/{target}#writeContract"

    def append(self, key: str, target: str, action: str) -> OwnerAction:
        """
        Queue a write for the owner, replacing any entry with the same key.

        The whole queue is written to disk before returning.

        Args:
            key: Stable key, e.g. "ProxyFeePool.setTarget(0x...)"
            target: Address of the contract to invoke
            action: Human-readable call, e.g. "setTarget(0x...)"

        Returns:
            The stored entry
        """
        entry = OwnerAction(key=key, target=target, action=action, link=self.link_for(target))
        self._data[key] = {
            "target": entry.target,
            "action": entry.action,
            "complete": entry.complete,
            "link": entry.link,
        }
        save_json(self._data, self.path)
        logger.info("Cannot invoke %s as not owner. Appended to actions.", key)
        return entry

    def get(self, key: str) -> Optional[OwnerAction]:
        raw = self._data.get(key)
        if raw is None:
            return None
        return OwnerAction(
            key=key,
            target=raw["target"],
            action=raw["action"],
            link=raw.get("link", self.link_for(raw["target"])),
            complete=raw.get("complete", False),
        )

    def entries(self) -> List[OwnerAction]:
        return [self.get(key) for key in self._data]

    def pending(self) -> List[OwnerAction]:
        """Entries not yet marked complete."""
        return [entry for entry in self.entries() if not entry.complete]

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: str) -> bool:
        return key in self._data
