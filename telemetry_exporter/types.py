"""
Pydantic models for the substrate telemetry exporter.

Covers the decoded feed messages and the configuration loaded at
startup. Feed actions use the integer codes of the telemetry feed
protocol.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================
#  Feed protocol
# ============================================================


class Action(IntEnum):
    """Action codes of the telemetry feed."""

    UNRECOGNIZED = -1
    FEED_VERSION = 0
    BEST_BLOCK = 1
    BEST_FINALIZED = 2
    ADDED_NODE = 3
    REMOVED_NODE = 4
    LOCATED_NODE = 5
    IMPORTED_BLOCK = 6
    FINALIZED_BLOCK = 7
    NODE_STATS = 8
    NODE_HARDWARE = 9
    TIME_SYNC = 10
    ADDED_CHAIN = 11
    REMOVED_CHAIN = 12
    SUBSCRIBED_TO = 13
    UNSUBSCRIBED_FROM = 14
    PONG = 15
    AFG_FINALIZED = 16
    AFG_RECEIVED_PREVOTE = 17
    AFG_RECEIVED_PRECOMMIT = 18
    AFG_AUTHORITY_SET = 19

    @classmethod
    def from_code(cls, code: int) -> Action:
        """Map a wire code to its action, or ``UNRECOGNIZED``."""
        try:
            return cls(code)
        except ValueError:
            return cls.UNRECOGNIZED


class FeedMessage(BaseModel):
    """One decoded ``(action, payload)`` pair from a feed batch.

    ``lookahead`` is only ever set on BEST_BLOCK messages, and holds
    the message that followed it in the same batch.
    """

    model_config = ConfigDict(frozen=True)

    action: Action
    code: int
    payload: Any = None
    lookahead: FeedMessage | None = None

    def with_lookahead(self, following: FeedMessage | None) -> FeedMessage:
        return self.model_copy(update={"lookahead": following})


# ============================================================
#  Configuration
# ============================================================


class ValidatorEntry(BaseModel):
    """A watched validator."""

    address: str
    name: str


class SubscriptionConfig(BaseModel):
    """Chains, producers and validators to watch. Empty means none."""

    chains: list[str] = []
    producers: list[str] = []
    validators: list[ValidatorEntry] = []

    @field_validator("chains", "producers", "validators", mode="before")
    @classmethod
    def _blank_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    @field_validator("chains")
    @classmethod
    def _lowercase_chains(cls, value: list[str]) -> list[str]:
        return [chain.lower() for chain in value]


class ReconnectConfig(BaseModel):
    """WebSocket reconnection settings."""

    max_retries: int = 10
    initial_delay_ms: int = 1000
    max_delay_ms: int = 30000


class ExporterConfig(BaseModel):
    """Configuration for the exporter process."""

    feed_url: str = "ws://localhost:8000/feed"
    metrics_port: int = 3000
    ping_interval_ms: int = 30000
    max_pending_blocks: int = Field(4096, gt=0)
    log_level: str = "INFO"
    subscribe: SubscriptionConfig = Field(default_factory=SubscriptionConfig)
    reconnect: ReconnectConfig = Field(default_factory=ReconnectConfig)

    @field_validator("subscribe", "reconnect", mode="before")
    @classmethod
    def _blank_is_default(cls, value: Any) -> Any:
        return {} if value is None else value
