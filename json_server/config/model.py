"""Configuration value types and the default provider."""

from dataclasses import dataclass, field
from typing import Iterable

DEFAULT_PORT = 8080
DEFAULT_SHUTDOWN_TIMEOUT = 30
DEFAULT_READ_TIMEOUT = 10
DEFAULT_WRITE_TIMEOUT = 10
DEFAULT_ALLOWED_ORIGINS = ("*",)
DEFAULT_ALLOWED_METHODS = ("GET", "POST", "PUT", "DELETE", "OPTIONS")
DEFAULT_ENABLE_LOGGING = True


@dataclass(frozen=True)
class ServerConfig:
    """HTTP server settings.

    Timeouts are whole seconds. ``shutdown_timeout``, ``read_timeout``,
    ``write_timeout`` and ``allowed_methods`` are fixed by the default
    provider and never taken from an override during a merge.
    """

    port: int = 0
    shutdown_timeout: int = 0
    read_timeout: int = 0
    write_timeout: int = 0
    allowed_origins: tuple[str, ...] = field(default_factory=tuple)
    allowed_methods: tuple[str, ...] = field(default_factory=tuple)
    enable_logging: bool = False

    def __post_init__(self) -> None:
        # Accept lists from callers but keep the stored value immutable.
        object.__setattr__(self, "allowed_origins", _as_tuple(self.allowed_origins))
        object.__setattr__(self, "allowed_methods", _as_tuple(self.allowed_methods))


@dataclass(frozen=True)
class Config:
    """Root configuration value."""

    server: ServerConfig = field(default_factory=ServerConfig)

    def to_dict(self) -> dict:
        """Return the fields supported by the configuration file format."""
        return {
            "server": {
                "port": self.server.port,
                "allowed_origins": list(self.server.allowed_origins),
                "enable_logging": self.server.enable_logging,
            }
        }


def _as_tuple(values: Iterable[str]) -> tuple[str, ...]:
    if isinstance(values, str):
        raise TypeError("expected a sequence of strings, not a single string")
    return tuple(values)


def default_config() -> Config:
    """Return the fully populated default configuration."""
    return Config(
        server=ServerConfig(
            port=DEFAULT_PORT,
            shutdown_timeout=DEFAULT_SHUTDOWN_TIMEOUT,
            read_timeout=DEFAULT_READ_TIMEOUT,
            write_timeout=DEFAULT_WRITE_TIMEOUT,
            allowed_origins=DEFAULT_ALLOWED_ORIGINS,
            allowed_methods=DEFAULT_ALLOWED_METHODS,
            enable_logging=DEFAULT_ENABLE_LOGGING,
        )
    )
