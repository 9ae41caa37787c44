"""Unit tests validating CLI parsing behavior."""

from pathlib import Path

import pytest

from json_server.bootstrap.config import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_ENV_FILE,
    parse_cli_args,
)


def test_parse_cli_args_uses_defaults() -> None:
    """Defaults bind all interfaces and read config from the working directory."""
    args = parse_cli_args([])

    assert args.host == ""
    assert args.config == DEFAULT_CONFIG_PATH == "config.json"
    assert args.env_file == DEFAULT_ENV_FILE == ".env"
    assert args.log_level == "INFO"
    assert args.log_destination == "stdout"
    assert args.log_json is True


def test_parse_cli_args_honors_overrides(tmp_path: Path) -> None:
    """Overrides should replace defaults when flags are present."""
    config_path = (tmp_path / "app.json").as_posix()
    env_path = (tmp_path / "app.env").as_posix()

    args = parse_cli_args(
        [
            "--host",
            "127.0.0.1",
            "--config",
            config_path,
            "--env-file",
            env_path,
            "--log-level",
            "debug",
            "--log-destination",
            "server.log",
            "--no-log-json",
        ]
    )

    assert args.host == "127.0.0.1"
    assert args.config == config_path
    assert args.env_file == env_path
    assert args.log_level == "DEBUG"
    assert args.log_destination == "server.log"
    assert args.log_json is False


def test_parse_cli_args_rejects_unknown_level() -> None:
    """Log levels are limited to the standard names."""
    with pytest.raises(SystemExit):
        parse_cli_args(["--log-level", "verbose"])
