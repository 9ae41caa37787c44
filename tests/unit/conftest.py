"""Shared fixtures for unit tests."""

import logging

import pytest

from json_server.config.model import Config, ServerConfig


@pytest.fixture(autouse=True)
def enable_log_propagation():
    """Ensure logs propagate to root so caplog can catch them."""
    logger = logging.getLogger("json_server")
    old_propagate = logger.propagate
    logger.propagate = True
    yield
    logger.propagate = old_propagate


@pytest.fixture(name="make_config")
def make_config_fixture():
    """Build a Config from keyword overrides of the default server settings."""

    def _make(**overrides) -> Config:
        values = {
            "port": 8080,
            "shutdown_timeout": 30,
            "read_timeout": 10,
            "write_timeout": 10,
            "allowed_origins": ("*",),
            "allowed_methods": ("GET", "POST", "PUT", "DELETE", "OPTIONS"),
            "enable_logging": True,
        }
        values.update(overrides)
        return Config(server=ServerConfig(**values))

    return _make
