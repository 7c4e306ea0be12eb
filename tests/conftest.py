"""Shared fixtures and feed payload builders."""

from __future__ import annotations

from typing import Any

import pytest
from prometheus_client import CollectorRegistry

from telemetry_exporter.dispatcher import Dispatcher
from telemetry_exporter.metrics import TelemetryMetrics
from telemetry_exporter.types import Action, FeedMessage, SubscriptionConfig


def msg(action: Action, payload: Any) -> FeedMessage:
    return FeedMessage(action=action, code=int(action), payload=payload)


def best_block(number: int, production_ms: float, timestamp: int = 1700000000000) -> FeedMessage:
    return msg(Action.BEST_BLOCK, [number, timestamp, production_ms])


def imported_block(node_id: int, number: int, propagation_ms: float) -> FeedMessage:
    return msg(Action.IMPORTED_BLOCK, [node_id, [number, "0xabc", 6000, 1700000000000, propagation_ms]])


def added_node(node_id: int, name: str) -> FeedMessage:
    return msg(Action.ADDED_NODE, [node_id, [name, "Parity Polkadot", "0.9.0", None, None]])


def best_finalized(number: int) -> FeedMessage:
    return msg(Action.BEST_FINALIZED, [number, "0xdef"])


def vote(action: Action, address: str) -> FeedMessage:
    return msg(action, ["kusama", 100, "0xhash", address])


@pytest.fixture
def metrics() -> TelemetryMetrics:
    return TelemetryMetrics(CollectorRegistry())


@pytest.fixture
def subscription() -> SubscriptionConfig:
    return SubscriptionConfig(
        chains=["Kusama"],
        producers=["Alice"],
        validators=[{"address": "5Alice", "name": "alice"}],
    )


@pytest.fixture
def dispatcher(subscription: SubscriptionConfig, metrics: TelemetryMetrics) -> Dispatcher:
    return Dispatcher(subscription, metrics)
