"""
Prometheus metrics derived from the telemetry feed.

Each :class:`TelemetryMetrics` owns its own ``CollectorRegistry`` so
exporter instances (and tests) never share series.
"""

from __future__ import annotations

import logging

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
    start_http_server,
)

logger = logging.getLogger(__name__)

# Block production and finality take seconds; propagation is sub-second.
FINALITY_BUCKETS = (1.0, 2.0, 4.0, 6.0, 9.0, 12.0, 18.0, 24.0, 36.0, 60.0, 120.0)
PRODUCTION_BUCKETS = (0.05, 0.1, 0.25, 0.5, 1.0, 1.5, 2.0, 3.0, 4.0, 6.0)
PROPAGATION_BUCKETS = (0.0, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0)


class TelemetryMetrics:
    """Gauges, histograms and counters fed by the dispatcher."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()

        # ---- Chain heights ----
        self.best_block = Gauge(
            "substrate_best_block",
            "Best block number reported by the feed",
            registry=self.registry,
        )
        self.best_finalized = Gauge(
            "substrate_best_finalized",
            "Best finalized block number reported by the feed",
            registry=self.registry,
        )

        # ---- Timings ----
        self.time_to_finality = Histogram(
            "substrate_time_to_finality_seconds",
            "Time from a block becoming best to it being finalized",
            buckets=FINALITY_BUCKETS,
            registry=self.registry,
        )
        self.block_production_time = Histogram(
            "substrate_block_production_seconds",
            "Block production time reported with each best block",
            buckets=PRODUCTION_BUCKETS,
            registry=self.registry,
        )
        self.block_propagation_time = Histogram(
            "substrate_block_propagation_seconds",
            "Block propagation time to each node",
            ["node"],
            buckets=PROPAGATION_BUCKETS,
            registry=self.registry,
        )

        # ---- Watched producers and validators ----
        self.new_block_produced = Counter(
            "substrate_new_block_produced",
            "Blocks produced by watched producers",
            ["producer"],
            registry=self.registry,
        )
        self.validator_prevote_received = Counter(
            "substrate_validator_prevote_received",
            "Prevotes received from watched validators",
            ["address", "name"],
            registry=self.registry,
        )
        self.validator_precommit_received = Counter(
            "substrate_validator_precommit_received",
            "Precommits received from watched validators",
            ["address", "name"],
            registry=self.registry,
        )

    # ---- Observation calls ----

    def set_best_block(self, number: int) -> None:
        self.best_block.set(number)

    def set_best_finalized(self, number: int) -> None:
        self.best_finalized.set(number)

    def observe_time_to_finality(self, seconds: float) -> None:
        self.time_to_finality.observe(seconds)

    def observe_production_time(self, seconds: float) -> None:
        self.block_production_time.observe(seconds)

    def observe_propagation_time(self, node: str, seconds: float) -> None:
        self.block_propagation_time.labels(node=node).observe(seconds)

    def inc_block_produced(self, producer: str) -> None:
        self.new_block_produced.labels(producer=producer).inc()

    def inc_prevote(self, address: str, name: str) -> None:
        self.validator_prevote_received.labels(address=address, name=name).inc()

    def inc_precommit(self, address: str, name: str) -> None:
        self.validator_precommit_received.labels(address=address, name=name).inc()

    # ---- Exposition ----

    def render(self) -> bytes:
        """Current metrics in Prometheus text format."""
        return generate_latest(self.registry)

    def serve(self, port: int, addr: str = "0.0.0.0") -> None:
        """Start the ``/metrics`` HTTP server in a background thread."""
        start_http_server(port, addr=addr, registry=self.registry)
        logger.info("Serving metrics on %s:%d", addr, port)
