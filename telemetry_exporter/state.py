"""
Correlation state kept across feed batches.

Both stores live for one connection; the client replaces them when
it reconnects.
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger(__name__)


class NodeRegistry:
    """Node id to display name, for the nodes currently on the feed."""

    def __init__(self) -> None:
        self._names: dict[Any, str] = {}

    def add(self, node_id: Any, name: str) -> None:
        self._names[node_id] = name

    def remove(self, node_id: Any) -> str | None:
        """Forget a node. Returns its name, or ``None`` if it was unknown."""
        return self._names.pop(node_id, None)

    def name_of(self, node_id: Any) -> str:
        """Display name of a node, ``""`` when unknown."""
        return self._names.get(node_id, "")

    def clear(self) -> None:
        self._names.clear()

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._names

    def __len__(self) -> int:
        return len(self._names)


class PendingFinality:
    """Block number to the time (ms) it was first reported as best.

    Blocks that never finalize would otherwise stay forever, so the
    store holds at most ``max_pending`` entries and drops the oldest
    when full.
    """

    def __init__(self, max_pending: int = 4096) -> None:
        if max_pending <= 0:
            raise ValueError("max_pending must be positive")
        self._max_pending = max_pending
        self._seen_at: dict[int, float] = {}

    def record(self, block_number: int, timestamp_ms: float) -> None:
        """Remember when a block became best. The latest report wins."""
        self._seen_at.pop(block_number, None)
        while len(self._seen_at) >= self._max_pending:
            evicted = next(iter(self._seen_at))
            del self._seen_at[evicted]
            logger.debug("Evicted pending block %s without finality", evicted)
        self._seen_at[block_number] = timestamp_ms

    def pop(self, block_number: int) -> float | None:
        """Take the pending timestamp for a block, if there is one."""
        return self._seen_at.pop(block_number, None)

    def clear(self) -> None:
        self._seen_at.clear()

    def __contains__(self, block_number: object) -> bool:
        return block_number in self._seen_at

    def __len__(self) -> int:
        return len(self._seen_at)
