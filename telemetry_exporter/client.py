"""
Telemetry exporter client.

Connects to a substrate-telemetry feed over WebSocket, keeps the
connection alive, and turns the feed into Prometheus metrics. Uses
``websockets`` for the transport.

Example::

    from telemetry_exporter import TelemetryExporter, ExporterConfig

    exporter = TelemetryExporter(ExporterConfig(feed_url="ws://localhost:8000/feed"))
    exporter.metrics.serve(3000)
    await exporter.run()
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

import websockets

from telemetry_exporter.codec import ping_directive
from telemetry_exporter.dispatcher import Dispatcher
from telemetry_exporter.events import FeedListener
from telemetry_exporter.metrics import TelemetryMetrics
from telemetry_exporter.state import NodeRegistry, PendingFinality
from telemetry_exporter.types import ExporterConfig

logger = logging.getLogger(__name__)

Connector = Callable[[str], Awaitable[Any]]


class TelemetryExporter:
    """
    Feed client for the substrate telemetry exporter.

    Owns one WebSocket connection at a time. Correlation state is
    rebuilt from scratch on every (re)connect.
    """

    def __init__(
        self,
        config: ExporterConfig | None = None,
        metrics: TelemetryMetrics | None = None,
        connector: Connector | None = None,
    ) -> None:
        self.config = config or ExporterConfig()
        self.metrics = metrics or TelemetryMetrics()
        self._connector = connector or websockets.connect
        self._ping_interval = self.config.ping_interval_ms / 1000.0

        self.dispatcher = Dispatcher(
            self.config.subscribe,
            self.metrics,
            nodes=NodeRegistry(),
            pending=PendingFinality(self.config.max_pending_blocks),
        )
        self._listener = FeedListener(self.dispatcher)

        # State
        self._ws: Any | None = None
        self._ping_task: asyncio.Task[None] | None = None
        self._ping_seq = 0
        self._short_sessions = 0
        self._connected = False
        self._stopping = False

    @property
    def is_connected(self) -> bool:
        """Whether the client currently holds a feed connection."""
        return self._connected

    @property
    def nodes(self) -> NodeRegistry:
        return self.dispatcher.nodes

    @property
    def pending(self) -> PendingFinality:
        return self.dispatcher.pending

    async def connect(self) -> None:
        """
        Connect to the telemetry feed.

        Retries with exponential backoff per ``config.reconnect``, then
        starts the listener and the keep-alive ping loop.

        Raises:
            ConnectionError: if every attempt failed.
        """
        reconnect = self.config.reconnect
        url = self.config.feed_url
        for attempt in range(reconnect.max_retries + 1):
            try:
                self._ws = await self._connector(url)
                break
            except Exception as e:
                if attempt >= reconnect.max_retries:
                    raise ConnectionError(
                        f"Could not connect to substrate-telemetry on {url} "
                        f"after {attempt + 1} attempts"
                    ) from e
                delay = min(
                    reconnect.initial_delay_ms * (2 ** attempt), reconnect.max_delay_ms
                ) / 1000.0
                logger.warning(
                    "Could not connect to substrate-telemetry on %s (attempt %d/%d): %s"
                    " - retrying in %.1fs",
                    url, attempt + 1, reconnect.max_retries + 1, e, delay,
                )
                await asyncio.sleep(delay)

        self.dispatcher.reset()
        self._listener.start(self._ws)
        self._connected = True
        if self._ping_interval > 0:
            self._ping_task = asyncio.create_task(self._ping_loop())
        logger.info("Connected to substrate-telemetry on %s", url)

    async def disconnect(self) -> None:
        """Close the feed connection."""
        self._stopping = True
        await self._close()
        logger.info("Connection to substrate-telemetry on %s closed", self.config.feed_url)

    async def run(self) -> None:
        """Keep the exporter connected until cancelled.

        When the feed drops, waits out a backoff delay, then reconnects
        and starts over with empty correlation state.
        """
        self._stopping = False
        loop = asyncio.get_running_loop()
        try:
            while not self._stopping:
                await self.connect()
                started = loop.time()
                await self._listener.wait_closed()
                await self._close()
                if not self._stopping:
                    delay = self._session_backoff(loop.time() - started)
                    logger.warning(
                        "Lost connection to substrate-telemetry on %s - reconnecting in %.1fs",
                        self.config.feed_url, delay,
                    )
                    await asyncio.sleep(delay)
        except (asyncio.CancelledError, KeyboardInterrupt):
            pass
        finally:
            await self.disconnect()

    # ---- Internal ----

    def _session_backoff(self, session_seconds: float) -> float:
        """Delay before reconnecting after a session of the given length.

        Doubles with each consecutive session shorter than
        ``max_delay_ms``; a longer session starts over from
        ``initial_delay_ms``.
        """
        reconnect = self.config.reconnect
        if session_seconds >= reconnect.max_delay_ms / 1000.0:
            self._short_sessions = 0
        exponent = min(self._short_sessions, 30)
        self._short_sessions += 1
        return min(reconnect.initial_delay_ms * (2 ** exponent), reconnect.max_delay_ms) / 1000.0

    async def _close(self) -> None:
        if self._ping_task and not self._ping_task.done():
            self._ping_task.cancel()
            try:
                await self._ping_task
            except asyncio.CancelledError:
                pass
        self._ping_task = None

        await self._listener.stop()

        if self._ws:
            try:
                await self._ws.close()
            except Exception as e:
                logger.debug("Error closing feed socket: %s", e)
            self._ws = None
        self._connected = False

    async def _ping_loop(self) -> None:
        """Send periodic pings; the feed answers each with a PONG."""
        try:
            while True:
                await asyncio.sleep(self._ping_interval)
                self._ping_seq += 1
                try:
                    if self._ws:
                        await self._ws.send(ping_directive(self._ping_seq))
                except Exception:
                    logger.debug("Ping failed - will retry next interval")
        except asyncio.CancelledError:
            pass
