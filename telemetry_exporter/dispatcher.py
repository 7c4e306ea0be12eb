"""
Feed message dispatcher.

Turns decoded feed messages into metric observations, keeping the
node registry and pending-finality timestamps up to date along the
way. One instance serves one feed connection.

Block authorship is inferred from message adjacency: when a node
produces a new best block, the feed sends BEST_BLOCK immediately
followed by that node's IMPORTED_BLOCK with a propagation time of
zero. The dispatcher therefore hands each BEST_BLOCK the next message
of its batch as ``lookahead``.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Sequence

from telemetry_exporter.codec import finality_directive, subscribe_directive
from telemetry_exporter.filters import (
    is_chain_watched,
    is_producer_watched,
    watched_validator_name,
)
from telemetry_exporter.metrics import TelemetryMetrics
from telemetry_exporter.state import NodeRegistry, PendingFinality
from telemetry_exporter.types import Action, FeedMessage, SubscriptionConfig

logger = logging.getLogger(__name__)


class FieldShapeError(ValueError):
    """A message payload does not have the shape its action expects."""


def field(payload: Any, *path: int) -> Any:
    """Read ``payload[path[0]][path[1]]...``, raising FieldShapeError if absent."""
    value = payload
    for index in path:
        try:
            value = value[index]
        except (IndexError, KeyError, TypeError) as e:
            raise FieldShapeError(f"Missing field {list(path)} in {payload!r}") from e
    return value


def number_field(payload: Any, *path: int) -> int | float:
    value = field(payload, *path)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise FieldShapeError(f"Field {list(path)} is not a number: {value!r}")
    return value


def str_field(payload: Any, *path: int) -> str:
    value = field(payload, *path)
    if not isinstance(value, str):
        raise FieldShapeError(f"Field {list(path)} is not a string: {value!r}")
    return value


Handler = Callable[[FeedMessage, float, list[str]], None]


class Dispatcher:
    """Per-connection state machine over feed messages."""

    def __init__(
        self,
        config: SubscriptionConfig,
        metrics: TelemetryMetrics,
        nodes: NodeRegistry | None = None,
        pending: PendingFinality | None = None,
    ) -> None:
        self.config = config
        self.metrics = metrics
        self.nodes = nodes if nodes is not None else NodeRegistry()
        self.pending = pending if pending is not None else PendingFinality()
        self._lock = threading.Lock()
        self._handlers: dict[Action, Handler] = {
            Action.ADDED_CHAIN: self._on_added_chain,
            Action.ADDED_NODE: self._on_added_node,
            Action.REMOVED_NODE: self._on_removed_node,
            Action.BEST_BLOCK: self._on_best_block,
            Action.IMPORTED_BLOCK: self._on_imported_block,
            Action.FINALIZED_BLOCK: self._on_finalized_block,
            Action.BEST_FINALIZED: self._on_best_finalized,
            Action.AFG_RECEIVED_PREVOTE: self._on_prevote,
            Action.AFG_RECEIVED_PRECOMMIT: self._on_precommit,
        }

    def handle_batch(self, messages: Sequence[FeedMessage], now_ms: float) -> list[str]:
        """Handle one decoded batch in order.

        Returns the directives to send back to the feed.
        """
        directives: list[str] = []
        with self._lock:
            for index, message in enumerate(messages):
                if message.action is Action.BEST_BLOCK:
                    following = messages[index + 1] if index + 1 < len(messages) else None
                    message = message.with_lookahead(following)
                self.handle(message, now_ms, directives)
        return directives

    def handle(self, message: FeedMessage, now_ms: float, directives: list[str]) -> None:
        """Handle a single message. A malformed payload only skips this message."""
        handler = self._handlers.get(message.action)
        if handler is None:
            return
        try:
            handler(message, now_ms, directives)
        except FieldShapeError as e:
            logger.warning("Skipping %s message: %s", message.action.name, e)
        except Exception:
            logger.exception("Error handling %s message", message.action.name)

    def reset(self) -> None:
        """Forget all correlation state, e.g. after reconnecting."""
        with self._lock:
            self.nodes.clear()
            self.pending.clear()

    # ---- Chains and nodes ----

    def _on_added_chain(self, message: FeedMessage, now_ms: float, directives: list[str]) -> None:
        chain = str_field(message.payload, 0)
        if not is_chain_watched(self.config, chain):
            return
        directives.append(subscribe_directive(chain))
        directives.append(finality_directive(True))
        logger.info("Subscribing to chain '%s' with finality data", chain)

    def _on_added_node(self, message: FeedMessage, now_ms: float, directives: list[str]) -> None:
        node_id = field(message.payload, 0)
        name = str_field(message.payload, 1, 0)
        self.nodes.add(node_id, name)
        logger.info("New node %s (%s)", name, node_id)

    def _on_removed_node(self, message: FeedMessage, now_ms: float, directives: list[str]) -> None:
        node_id = field(message.payload, 0)
        name = self.nodes.remove(node_id)
        logger.info("Node departed %s (%s)", name, node_id)

    # ---- Blocks ----

    def _on_best_block(self, message: FeedMessage, now_ms: float, directives: list[str]) -> None:
        block_number = number_field(message.payload, 0)
        production_ms = number_field(message.payload, 2)

        self.metrics.set_best_block(block_number)
        self.metrics.observe_production_time(production_ms / 1000)
        self.pending.record(block_number, now_ms)
        logger.debug("New best block %s", block_number)

        producer = self._producer_of(message.lookahead)
        if is_producer_watched(self.config, producer):
            logger.info("Detected block %s produced by %s", block_number, producer)
            self.metrics.inc_block_produced(producer)

    def _producer_of(self, following: FeedMessage | None) -> str:
        """Name of the node that produced the preceding best block, or ``""``.

        A malformed lookahead is reported when it is handled itself.
        """
        if following is None or following.action is not Action.IMPORTED_BLOCK:
            return ""
        try:
            # Only the producing node imports its own block with zero delay.
            if number_field(following.payload, 1, 4) != 0:
                return ""
            return self.nodes.name_of(field(following.payload, 0))
        except FieldShapeError:
            return ""

    def _on_imported_block(self, message: FeedMessage, now_ms: float, directives: list[str]) -> None:
        node_id = field(message.payload, 0)
        block_number = field(message.payload, 1, 0)
        propagation_ms = number_field(message.payload, 1, 4)

        node = self.nodes.name_of(node_id)
        self.metrics.observe_propagation_time(node, propagation_ms / 1000)
        logger.debug("Block %s imported at node %s", block_number, node_id)

    def _on_finalized_block(self, message: FeedMessage, now_ms: float, directives: list[str]) -> None:
        block_number = field(message.payload, 1)
        logger.debug("New finalized block %s", block_number)

    def _on_best_finalized(self, message: FeedMessage, now_ms: float, directives: list[str]) -> None:
        block_number = number_field(message.payload, 0)
        self.metrics.set_best_finalized(block_number)

        seen_at = self.pending.pop(block_number)
        if seen_at is not None:
            finality_time = (now_ms - seen_at) / 1000
            self.metrics.observe_time_to_finality(finality_time)
            logger.debug("Block %s finalized after %.3fs", block_number, finality_time)
        logger.debug("New best finalized block %s", block_number)

    # ---- Finality votes ----

    def _on_prevote(self, message: FeedMessage, now_ms: float, directives: list[str]) -> None:
        address = str_field(message.payload, 3)
        name = watched_validator_name(self.config, address)
        if name:
            logger.debug("Prevote from validator %s (%s)", name, address)
            self.metrics.inc_prevote(address, name)

    def _on_precommit(self, message: FeedMessage, now_ms: float, directives: list[str]) -> None:
        address = str_field(message.payload, 3)
        name = watched_validator_name(self.config, address)
        if name:
            logger.debug("Precommit from validator %s (%s)", name, address)
            self.metrics.inc_precommit(address, name)
