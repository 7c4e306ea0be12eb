"""Loading the exporter configuration from YAML."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from telemetry_exporter.types import ExporterConfig

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """The configuration file is unreadable or invalid."""


def load_config(path: str | Path) -> ExporterConfig:
    """Read and validate a YAML config file. An empty file gives defaults."""
    try:
        with open(path, "r") as f:
            raw: Any = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not read config {path}: {e}") from e
    return parse_config(raw or {})


def parse_config(raw: dict[str, Any]) -> ExporterConfig:
    if not isinstance(raw, dict):
        raise ConfigError(f"Config must be a mapping, got {type(raw).__name__}")
    try:
        config = ExporterConfig(**raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid config: {e}") from e

    subscribe = config.subscribe
    logger.debug(
        "Watching %d chains, %d producers, %d validators",
        len(subscribe.chains), len(subscribe.producers), len(subscribe.validators),
    )
    return config
