"""
Feed message codec.

The telemetry feed sends each batch as a flat JSON array of
alternating action codes and payloads::

    [1, [100, 1700000000000, 600, null], 6, [7, [100, "0xab", ...]]]

Outbound directives are short text frames.
"""

from __future__ import annotations

import json
from typing import Any

from telemetry_exporter.types import Action, FeedMessage


class DecodeError(ValueError):
    """A feed batch could not be decoded."""


def decode(raw: str | bytes) -> list[FeedMessage]:
    """Decode one feed batch into messages, in wire order.

    Raises:
        DecodeError: if the batch is not a JSON array of even length
            or an action code is not an integer.
    """
    try:
        data: Any = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, RecursionError) as e:
        raise DecodeError(f"Unparsable feed batch: {e}") from e

    if not isinstance(data, list):
        raise DecodeError(f"Feed batch must be an array, got {type(data).__name__}")
    if len(data) % 2:
        raise DecodeError(f"Feed batch has odd length {len(data)}")

    messages = []
    for index in range(0, len(data), 2):
        code, payload = data[index], data[index + 1]
        if isinstance(code, bool) or not isinstance(code, int):
            raise DecodeError(f"Action code at position {index} is not an integer: {code!r}")
        messages.append(FeedMessage(action=Action.from_code(code), code=code, payload=payload))
    return messages


def subscribe_directive(chain: str) -> str:
    return f"subscribe:{chain}"


def finality_directive(enabled: bool = True) -> str:
    return f"send-finality:{1 if enabled else 0}"


def ping_directive(seq: int) -> str:
    return f"ping:{seq}"
