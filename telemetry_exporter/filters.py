"""Watch-list predicates over the subscription config."""

from __future__ import annotations

from telemetry_exporter.types import SubscriptionConfig


def is_chain_watched(config: SubscriptionConfig, chain: str) -> bool:
    """Whether a chain name is in the watched set, ignoring case."""
    return chain.lower() in config.chains


def is_producer_watched(config: SubscriptionConfig, producer: str) -> bool:
    """Whether a node name starts with any watched producer prefix."""
    if not producer:
        return False
    return any(producer.startswith(prefix) for prefix in config.producers)


def watched_validator_name(config: SubscriptionConfig, address: str) -> str:
    """Configured name for a validator address, or ``""`` if not watched."""
    for validator in config.validators:
        if validator.address == address:
            return validator.name
    return ""
