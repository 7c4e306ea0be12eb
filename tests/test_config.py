"""
Unit tests for configuration loading and the command line.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from telemetry_exporter.cli import build_parser, resolve_config
from telemetry_exporter.config import ConfigError, load_config
from telemetry_exporter.filters import is_chain_watched, watched_validator_name


CONFIG_YAML = """
feed_url: ws://telemetry.example:8000/feed
metrics_port: 9102
max_pending_blocks: 128
subscribe:
  chains:
    - Kusama
  producers:
    - Alice
  validators:
    - address: 5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY
      name: alice
"""


def test_load_config(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML)

    config = load_config(path)

    assert config.feed_url == "ws://telemetry.example:8000/feed"
    assert config.metrics_port == 9102
    assert config.max_pending_blocks == 128
    assert config.subscribe.chains == ["kusama"]
    assert is_chain_watched(config.subscribe, "Kusama")
    assert watched_validator_name(
        config.subscribe, "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"
    ) == "alice"
    assert config.reconnect.max_retries == 10


def test_empty_config_gives_defaults(tmp_path: Path) -> None:
    path = tmp_path / "empty.yaml"
    path.write_text("")

    config = load_config(path)

    assert config.feed_url == "ws://localhost:8000/feed"
    assert config.subscribe.chains == []
    assert config.subscribe.producers == []


def test_missing_config_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        load_config(tmp_path / "nope.yaml")


def test_invalid_config(tmp_path: Path) -> None:
    path = tmp_path / "bad.yaml"
    path.write_text("subscribe:\n  validators:\n    - address: 5Alice\n")
    with pytest.raises(ConfigError, match="Invalid config"):
        load_config(path)


def test_non_mapping_config(tmp_path: Path) -> None:
    path = tmp_path / "list.yaml"
    path.write_text("- kusama\n")
    with pytest.raises(ConfigError):
        load_config(path)


def test_cli_overrides_file_values(tmp_path: Path) -> None:
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML)

    args = build_parser().parse_args(
        ["--config", str(path), "--port", "9200", "--log-level", "DEBUG"]
    )
    config = resolve_config(args)

    assert config.metrics_port == 9200
    assert config.log_level == "DEBUG"
    assert config.feed_url == "ws://telemetry.example:8000/feed"


def test_blank_watch_lists_watch_nothing(tmp_path: Path) -> None:
    """Keys left blank in YAML load as empty watch lists."""
    path = tmp_path / "blank.yaml"
    path.write_text("subscribe:\n  chains:\n    - kusama\n  producers:\n  validators:\n")

    config = load_config(path)

    assert config.subscribe.chains == ["kusama"]
    assert config.subscribe.producers == []
    assert config.subscribe.validators == []


def test_blank_subscribe_section(tmp_path: Path) -> None:
    path = tmp_path / "blank.yaml"
    path.write_text("subscribe:\nreconnect:\n")

    config = load_config(path)

    assert config.subscribe.chains == []
    assert not is_chain_watched(config.subscribe, "kusama")
    assert config.reconnect.max_retries == 10
