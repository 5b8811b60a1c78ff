"""Tests for configuration loading, CLI parsing and logging setup."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))
from ddv import __version__
from ddv.cli import build_parser, main
from ddv.config import (
    ENV_CONFIG,
    Config,
    LogConfig,
    config_from_dict,
    default_config_path,
    load_config,
)
from ddv.errors import ConfigError
from ddv.logging_setup import setup_logging


@pytest.fixture
def config_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point XDG directories at a temporary home with no config file."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "state"))
    monkeypatch.delenv(ENV_CONFIG, raising=False)
    return tmp_path


def write_config(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_default_file_gives_defaults(self, config_env: Path) -> None:
        config = load_config()

        assert config == Config()
        assert config.page_size == 25
        assert config.ui.table.max_attribute_width == 30
        assert config.log.file == config_env / "state" / "ddv" / "ddv.log"

    def test_values_from_toml(self, config_env: Path) -> None:
        write_config(default_config_path(), """
default_region = "eu-west-1"
page_size = 50

[ui.table_list]
list_width = 40

[ui.table]
max_expand_height = 10

[log]
level = "DEBUG"
file = "/tmp/ddv-test.log"
""")
        config = load_config()

        assert config.default_region == "eu-west-1"
        assert config.page_size == 50
        assert config.ui.table_list.list_width == 40
        assert config.ui.table.max_expand_height == 10
        assert config.ui.table.max_expand_width == 35
        assert config.log == LogConfig(Path("/tmp/ddv-test.log"), "DEBUG")

    def test_env_path_must_exist(self, config_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv(ENV_CONFIG, str(config_env / "missing.toml"))
        with pytest.raises(ConfigError, match="not found"):
            load_config()

    def test_explicit_path_wins(self, config_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        env_file = write_config(config_env / "env.toml", "page_size = 5\n")
        explicit = write_config(config_env / "explicit.toml", "page_size = 7\n")
        monkeypatch.setenv(ENV_CONFIG, str(env_file))

        assert load_config().page_size == 5
        assert load_config(explicit).page_size == 7

    def test_invalid_toml(self, config_env: Path) -> None:
        path = write_config(config_env / "bad.toml", "page_size = \n")
        with pytest.raises(ConfigError, match="Invalid TOML"):
            load_config(path)


class TestValidation:
    """Tests for schema validation errors."""

    def test_unknown_key(self) -> None:
        with pytest.raises(ConfigError, match="root"):
            config_from_dict({"colour": "blue"})

    def test_error_names_nested_path(self) -> None:
        with pytest.raises(ConfigError, match="ui -> table -> max_attribute_width"):
            config_from_dict({"ui": {"table": {"max_attribute_width": "wide"}}})

    def test_page_size_must_be_positive(self) -> None:
        with pytest.raises(ConfigError, match="page_size"):
            config_from_dict({"page_size": 0})

    def test_log_level_enum(self) -> None:
        with pytest.raises(ConfigError, match="log -> level"):
            config_from_dict({"log": {"level": "LOUD"}})


class TestCli:
    """Tests for argument parsing and early exits."""

    def test_flags(self) -> None:
        args = build_parser().parse_args([
            "--region", "eu-west-1",
            "--endpoint-url", "http://localhost:8000",
            "--page-size", "10",
        ])
        assert args.region == "eu-west-1"
        assert args.endpoint_url == "http://localhost:8000"
        assert args.page_size == 10
        assert args.profile is None

    def test_page_size_must_be_positive(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--page-size", "0"])

    def test_version(self, capsys: pytest.CaptureFixture) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["--version"])
        assert __version__ in capsys.readouterr().out

    def test_bad_config_exits_with_2(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        assert main(["--config", str(tmp_path / "missing.toml")]) == 2
        assert "Config file not found" in capsys.readouterr().err


class TestLogging:
    """Tests for setup_logging."""

    def test_file_handler_is_not_duplicated(self, tmp_path: Path) -> None:
        config = LogConfig(tmp_path / "logs" / "ddv.log", "DEBUG")

        setup_logging(config)
        logger = setup_logging(config)
        handlers = [h for h in logger.handlers if isinstance(h, RotatingFileHandler)]

        try:
            assert len(handlers) == 1
            assert logger.level == logging.DEBUG
            assert not logger.propagate

            logging.getLogger("ddv.session").info("hello")
            handlers[0].flush()
            text = (tmp_path / "logs" / "ddv.log").read_text()
            assert "| INFO | ddv.session | hello" in text
        finally:
            for handler in handlers:
                logger.removeHandler(handler)
                handler.close()
