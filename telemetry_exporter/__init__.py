"""
Substrate telemetry exporter.

Listens to a substrate-telemetry feed and exposes block heights,
finality and propagation timings, watched block producers and
watched validator votes as Prometheus metrics.

Example::

    import asyncio
    from telemetry_exporter import TelemetryExporter, load_config

    config = load_config("config.yaml")
    exporter = TelemetryExporter(config)
    exporter.metrics.serve(config.metrics_port)

    asyncio.run(exporter.run())
"""

from telemetry_exporter.client import TelemetryExporter
from telemetry_exporter.codec import (
    DecodeError,
    decode,
    finality_directive,
    ping_directive,
    subscribe_directive,
)
from telemetry_exporter.config import ConfigError, load_config
from telemetry_exporter.dispatcher import Dispatcher, FieldShapeError
from telemetry_exporter.events import FeedListener
from telemetry_exporter.filters import (
    is_chain_watched,
    is_producer_watched,
    watched_validator_name,
)
from telemetry_exporter.metrics import TelemetryMetrics
from telemetry_exporter.state import NodeRegistry, PendingFinality
from telemetry_exporter.types import (
    Action,
    ExporterConfig,
    FeedMessage,
    ReconnectConfig,
    SubscriptionConfig,
    ValidatorEntry,
)

__all__ = [
    "TelemetryExporter",
    "Dispatcher",
    "FeedListener",
    "TelemetryMetrics",
    "NodeRegistry",
    "PendingFinality",
    # Codec
    "decode",
    "subscribe_directive",
    "finality_directive",
    "ping_directive",
    # Filters
    "is_chain_watched",
    "is_producer_watched",
    "watched_validator_name",
    # Config
    "load_config",
    # Errors
    "DecodeError",
    "FieldShapeError",
    "ConfigError",
    # Types
    "Action",
    "FeedMessage",
    "ExporterConfig",
    "ReconnectConfig",
    "SubscriptionConfig",
    "ValidatorEntry",
]

__version__ = "0.1.0"
