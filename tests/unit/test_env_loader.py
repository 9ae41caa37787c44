"""Unit tests for the environment configuration source."""

import logging
from pathlib import Path

import pytest

from json_server.config.errors import ConfigReadError
from json_server.config.model import default_config
from json_server.config.sources import load_env_config, read_env_file


def _env_file(tmp_path: Path, content: str) -> Path:
    path = tmp_path / ".env"
    path.write_text(content, encoding="utf-8")
    return path


def test_env_file_values_are_applied(tmp_path: Path):
    """Recognized keys from the .env file override the defaults."""
    env_file = _env_file(
        tmp_path,
        "PORT=3000\nALLOWED_ORIGINS=http://a.com, http://b.com\nENABLE_LOGGING=false\n",
    )

    server = load_env_config(env_file, environ={}).server
    defaults = default_config().server

    assert server.port == 3000
    assert server.allowed_origins == ("http://a.com", "http://b.com")
    assert server.enable_logging is False
    assert server.shutdown_timeout == defaults.shutdown_timeout
    assert server.read_timeout == defaults.read_timeout
    assert server.write_timeout == defaults.write_timeout
    assert server.allowed_methods == defaults.allowed_methods


def test_invalid_port_is_ignored(tmp_path: Path):
    """A non-numeric PORT keeps the default port without raising."""
    env_file = _env_file(tmp_path, "PORT=not_a_number\n")

    assert load_env_config(env_file, environ={}).server.port == 8080


def test_invalid_port_is_logged_at_debug(tmp_path: Path, caplog):
    """Skipped values leave a debug trace."""
    env_file = _env_file(tmp_path, "PORT=eighty\n")

    with caplog.at_level(logging.DEBUG, logger="json_server"):
        load_env_config(env_file, environ={})

    assert any(getattr(r, "event", None) == "env_value_ignored" for r in caplog.records)


def test_invalid_boolean_is_ignored(tmp_path: Path):
    """An unknown boolean token keeps the default."""
    env_file = _env_file(tmp_path, "ENABLE_LOGGING=maybe\n")

    assert load_env_config(env_file, environ={}).server.enable_logging is True


@pytest.mark.parametrize(
    "token, expected",
    [
        ("1", True),
        ("t", True),
        ("T", True),
        ("TRUE", True),
        ("true", True),
        ("True", True),
        ("0", False),
        ("f", False),
        ("F", False),
        ("FALSE", False),
        ("false", False),
        ("False", False),
    ],
)
def test_boolean_tokens(token: str, expected: bool):
    """All accepted boolean spellings are recognized."""
    config = load_env_config(None, environ={"ENABLE_LOGGING": token})

    assert config.server.enable_logging is expected


@pytest.mark.parametrize("token", ["yes", "no", "on", "off", "tRuE", " true"])
def test_unaccepted_boolean_tokens_are_ignored(token: str):
    """Tokens outside the accepted set keep the default."""
    config = load_env_config(None, environ={"ENABLE_LOGGING": token})

    assert config.server.enable_logging is True


def test_missing_env_file_is_not_an_error(tmp_path: Path):
    """Without a .env file the defaults are returned."""
    assert load_env_config(tmp_path / ".env", environ={}) == default_config()


def test_process_environment_applies_without_env_file(tmp_path: Path):
    """Process variables still apply when no .env file exists."""
    config = load_env_config(tmp_path / ".env", environ={"PORT": "5000"})

    assert config.server.port == 5000


def test_process_environment_wins_over_env_file(tmp_path: Path):
    """A real environment variable is not overridden by the .env file."""
    env_file = _env_file(tmp_path, "PORT=3000\nENABLE_LOGGING=false\n")

    config = load_env_config(env_file, environ={"PORT": "4000"})

    assert config.server.port == 4000
    assert config.server.enable_logging is False


def test_defaults_to_process_environment(monkeypatch, tmp_path: Path):
    """With no explicit mapping os.environ is consulted."""
    monkeypatch.setenv("PORT", "6060")
    monkeypatch.delenv("ALLOWED_ORIGINS", raising=False)
    monkeypatch.delenv("ENABLE_LOGGING", raising=False)

    assert load_env_config(tmp_path / ".env").server.port == 6060


def test_empty_values_are_ignored(tmp_path: Path):
    """Empty assignments keep the defaults."""
    env_file = _env_file(tmp_path, "PORT=\nALLOWED_ORIGINS=\nENABLE_LOGGING=\n")

    assert load_env_config(env_file, environ={}) == default_config()


def test_origins_keep_blank_elements_after_trimming():
    """Every comma separated entry is kept, trimmed, in order."""
    config = load_env_config(None, environ={"ALLOWED_ORIGINS": " http://a.com ,, ,http://b.com"})

    assert config.server.allowed_origins == ("http://a.com", "", "", "http://b.com")


def test_origins_of_only_separators_yield_blank_entries():
    config = load_env_config(None, environ={"ALLOWED_ORIGINS": " , ,"})

    assert config.server.allowed_origins == ("", "", "")


@pytest.mark.parametrize("raw_port", ["3_000", "٣٠٠٠", " 3000", "3000.0", "0x10", "+"])
def test_port_must_be_plain_ascii_digits(raw_port):
    """Only an optionally signed run of ASCII digits is a port."""
    config = load_env_config(None, environ={"PORT": raw_port})

    assert config.server.port == default_config().server.port


def test_signed_port_is_parsed():
    assert load_env_config(None, environ={"PORT": "+3000"}).server.port == 3000


def test_unrecognized_keys_are_ignored(tmp_path: Path):
    """Unknown keys never affect the configuration."""
    env_file = _env_file(tmp_path, "SHUTDOWN_TIMEOUT=1\nREAD_TIMEOUT=1\nFOO=bar\n")

    assert load_env_config(env_file, environ={}) == default_config()


def test_env_file_supports_comments_and_quotes(tmp_path: Path):
    """Standard .env syntax is understood."""
    env_file = _env_file(
        tmp_path, '# comment\nexport PORT="7070"\nALLOWED_ORIGINS=\'http://q.com\'\n'
    )

    server = load_env_config(env_file, environ={}).server

    assert server.port == 7070
    assert server.allowed_origins == ("http://q.com",)


def test_unreadable_env_file_raises_read_error(tmp_path: Path):
    """An env path that exists but cannot be read is fatal."""
    directory = tmp_path / ".env"
    directory.mkdir()

    with pytest.raises(ConfigReadError):
        load_env_config(directory, environ={})


def test_read_env_file_skips_keys_without_values(tmp_path: Path):
    """Bare keys without '=' carry no value."""
    env_file = _env_file(tmp_path, "BARE\nPORT=1\n")

    assert read_env_file(env_file) == {"PORT": "1"}
