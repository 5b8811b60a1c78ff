"""
Configuration loading.

Options come from a single TOML file, validated against
schemas/config.schema.json. Everything is read once at startup into a
frozen Config; nothing mutates it afterwards.
"""

from __future__ import annotations

import json
import os
import tomllib
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any

from jsonschema import SchemaError, ValidationError, validate

from ddv.errors import ConfigError

ENV_CONFIG = "DDV_CONFIG"


def _xdg_dir(env: str, fallback: str) -> Path:
    value = os.environ.get(env)
    return Path(value) if value else Path.home() / fallback


def default_config_path() -> Path:
    return _xdg_dir("XDG_CONFIG_HOME", ".config") / "ddv" / "config.toml"


def default_log_path() -> Path:
    return _xdg_dir("XDG_STATE_HOME", ".local/state") / "ddv" / "ddv.log"


@dataclass(frozen=True)
class TableListConfig:
    list_width: int = 30


@dataclass(frozen=True)
class TableConfig:
    max_attribute_width: int = 30
    max_expand_width: int = 35
    max_expand_height: int = 6


@dataclass(frozen=True)
class UiConfig:
    table_list: TableListConfig = field(default_factory=TableListConfig)
    table: TableConfig = field(default_factory=TableConfig)


@dataclass(frozen=True)
class LogConfig:
    file: Path = field(default_factory=default_log_path)
    level: str = "INFO"


@dataclass(frozen=True)
class Config:
    """Read-only options consumed at startup."""

    default_region: str = "us-east-1"
    page_size: int = 25
    cache_max_entries: int | None = None
    ui: UiConfig = field(default_factory=UiConfig)
    log: LogConfig = field(default_factory=LogConfig)


def _load_schema() -> dict:
    text = resources.files("ddv").joinpath("schemas/config.schema.json").read_text()
    return json.loads(text)


def validate_config(data: dict[str, Any]) -> None:
    """Validate raw config data. Raises ConfigError naming the bad path."""
    try:
        validate(instance=data, schema=_load_schema())
    except SchemaError as e:
        raise ConfigError(f"Invalid config schema: {e.message}") from e
    except ValidationError as e:
        path = " -> ".join(str(p) for p in e.absolute_path) if e.absolute_path else "root"
        raise ConfigError(f"Config error at '{path}': {e.message}") from e


def config_from_dict(data: dict[str, Any]) -> Config:
    validate_config(data)
    ui = data.get("ui", {})
    log = data.get("log", {})
    defaults = Config()
    return Config(
        default_region=data.get("default_region", defaults.default_region),
        page_size=data.get("page_size", defaults.page_size),
        cache_max_entries=data.get("cache_max_entries"),
        ui=UiConfig(
            table_list=TableListConfig(**ui.get("table_list", {})),
            table=TableConfig(**ui.get("table", {})),
        ),
        log=LogConfig(
            file=Path(log["file"]).expanduser() if "file" in log else default_log_path(),
            level=log.get("level", "INFO"),
        ),
    )


def resolve_config_path(path: Path | None = None) -> Path:
    """Explicit path, then $DDV_CONFIG, then the XDG default."""
    if path is not None:
        return path
    env = os.environ.get(ENV_CONFIG)
    if env:
        return Path(env).expanduser()
    return default_config_path()


def load_config(path: Path | None = None) -> Config:
    """Load configuration; a missing default file yields defaults.

    An explicitly given path (argument or environment) must exist.
    """
    explicit = path is not None or bool(os.environ.get(ENV_CONFIG))
    config_path = resolve_config_path(path)
    if not config_path.exists():
        if explicit:
            raise ConfigError(f"Config file not found: {config_path}")
        return Config()

    try:
        data = tomllib.loads(config_path.read_text())
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {config_path}", e) from e
    except OSError as e:
        raise ConfigError(f"Cannot read {config_path}", e) from e
    return config_from_dict(data)
