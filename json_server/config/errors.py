"""Configuration loading errors."""

from pathlib import Path
from typing import Union


class ConfigError(Exception):
    """Base class for configuration failures tied to a source path."""

    def __init__(self, message: str, path: Union[str, Path, None] = None) -> None:
        super().__init__(message)
        self.path = str(path) if path is not None else None


class ConfigNotFound(ConfigError):
    """The configuration file does not exist."""


class ConfigReadError(ConfigError):
    """The configuration source exists but could not be read."""


class ConfigParseError(ConfigError):
    """The configuration file content is malformed or has the wrong shape."""


class ConfigWriteError(ConfigError):
    """The configuration could not be written to disk."""
