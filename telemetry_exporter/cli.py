"""Command-line entry point."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from telemetry_exporter.client import TelemetryExporter
from telemetry_exporter.config import ConfigError, load_config
from telemetry_exporter.types import ExporterConfig

logger = logging.getLogger("telemetry_exporter")


def setup_logging(log_level: str = "INFO") -> None:
    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    for h in root_logger.handlers[:]:
        root_logger.removeHandler(h)
    root_logger.addHandler(handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="telemetry-exporter",
        description="Export substrate-telemetry feed data as Prometheus metrics.",
    )
    parser.add_argument("--config", "-c", help="Path to YAML config file")
    parser.add_argument("--feed-url", help="Telemetry feed WebSocket URL")
    parser.add_argument("--port", type=int, help="Port for the /metrics endpoint")
    parser.add_argument("--log-level", help="Logging level (DEBUG, INFO, ...)")
    return parser


def resolve_config(args: argparse.Namespace) -> ExporterConfig:
    config = load_config(args.config) if args.config else ExporterConfig()
    overrides = {}
    if args.feed_url:
        overrides["feed_url"] = args.feed_url
    if args.port is not None:
        overrides["metrics_port"] = args.port
    if args.log_level:
        overrides["log_level"] = args.log_level
    return config.model_copy(update=overrides)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        config = resolve_config(args)
    except ConfigError as e:
        print(f"telemetry-exporter: {e}", file=sys.stderr)
        return 2

    setup_logging(config.log_level)
    exporter = TelemetryExporter(config)
    exporter.metrics.serve(config.metrics_port)

    try:
        asyncio.run(exporter.run())
    except KeyboardInterrupt:
        pass
    except ConnectionError as e:
        logger.error("%s", e)
        return 1
    return 0
