"""
Feed listener for the substrate telemetry exporter.

Reads batches from an open WebSocket, runs them through the
dispatcher and sends the resulting directives back.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable

from telemetry_exporter.codec import DecodeError, decode
from telemetry_exporter.dispatcher import Dispatcher

logger = logging.getLogger(__name__)


def now_ms() -> float:
    return time.time() * 1000


class FeedListener:
    """Consumes feed batches from a WebSocket."""

    def __init__(self, dispatcher: Dispatcher, clock: Callable[[], float] = now_ms) -> None:
        self.dispatcher = dispatcher
        self._clock = clock
        self._ws: Any | None = None
        self._listen_task: asyncio.Task[None] | None = None

    async def process(self, raw: str | bytes, ws: Any | None = None) -> list[str]:
        """Decode and dispatch one raw batch, then send any directives.

        A batch that cannot be decoded or dispatched is dropped with a
        warning; only transport errors from ``ws.send`` propagate.
        """
        try:
            directives = self.dispatcher.handle_batch(decode(raw), self._clock())
        except DecodeError as e:
            logger.warning("Dropping feed batch: %s", e)
            return []
        except Exception:
            logger.exception("Dropping feed batch after unexpected error")
            return []

        if ws is not None:
            for directive in directives:
                await ws.send(directive)
        return directives

    async def _listen_loop(self, ws: Any) -> None:
        """Read batches until the WebSocket closes."""
        try:
            async for raw in ws:
                await self.process(raw, ws)
        except Exception as e:
            logger.warning("Feed listen loop ended: %s", e)

    def start(self, ws: Any) -> None:
        """Start listening on the given WebSocket."""
        self._ws = ws
        self._listen_task = asyncio.create_task(self._listen_loop(ws))

    async def wait_closed(self) -> None:
        """Wait until the current listen loop finishes."""
        if self._listen_task is not None:
            await self._listen_task

    async def stop(self) -> None:
        """Stop the feed listener."""
        if self._listen_task and not self._listen_task.done():
            self._listen_task.cancel()
            try:
                await self._listen_task
            except asyncio.CancelledError:
                pass
        self._listen_task = None
        self._ws = None
