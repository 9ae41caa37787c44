"""Configuration sources: JSON file and environment variables."""

import json
import os
import re
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from dotenv import dotenv_values

from json_server.config.errors import (
    ConfigNotFound,
    ConfigParseError,
    ConfigReadError,
    ConfigWriteError,
)
from json_server.config.model import Config, ServerConfig, default_config
from json_server.domain.correlation_id import get_logger

SOURCES_LOGGER = get_logger("config.sources")

PathLike = Union[str, Path]

ENV_PORT = "PORT"
ENV_ALLOWED_ORIGINS = "ALLOWED_ORIGINS"
ENV_ENABLE_LOGGING = "ENABLE_LOGGING"

_TRUE_TOKENS = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE_TOKENS = {"0", "f", "F", "FALSE", "false", "False"}
_INTEGER_PATTERN = re.compile(r"[+-]?\d+", re.ASCII)


def load_file_config(path: PathLike) -> Config:
    """Load a configuration from a JSON file.

    Only ``server.port``, ``server.allowed_origins`` and
    ``server.enable_logging`` are read. Keys that are absent keep the zero
    value of their type; any other key in the document is ignored.
    """
    file_path = Path(path)
    if not file_path.exists():
        raise ConfigNotFound(f"config file does not exist: {file_path}", file_path)

    try:
        raw = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigReadError(
            f"failed to read config file {file_path}: {exc}", file_path
        ) from exc

    try:
        document = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigParseError(
            f"failed to parse JSON config {file_path}: {exc}", file_path
        ) from exc

    return _config_from_document(document, file_path)


def _config_from_document(document: Any, file_path: Path) -> Config:
    if not isinstance(document, dict):
        raise ConfigParseError("config root must be a JSON object", file_path)

    section = document.get("server")
    if section is None:
        return Config(server=ServerConfig())
    if not isinstance(section, dict):
        raise ConfigParseError("'server' must be a JSON object", file_path)

    port = section.get("port")
    if port is None:
        port = 0
    elif isinstance(port, bool) or not isinstance(port, int):
        raise ConfigParseError("'server.port' must be an integer", file_path)

    origins = section.get("allowed_origins")
    if origins is None:
        origins = []
    elif not isinstance(origins, list) or not all(
        isinstance(item, str) for item in origins
    ):
        raise ConfigParseError(
            "'server.allowed_origins' must be an array of strings", file_path
        )

    enable_logging = section.get("enable_logging")
    if enable_logging is None:
        enable_logging = False
    elif not isinstance(enable_logging, bool):
        raise ConfigParseError("'server.enable_logging' must be a boolean", file_path)

    return Config(
        server=ServerConfig(
            port=port,
            allowed_origins=origins,
            enable_logging=enable_logging,
        )
    )


def write_file_config(path: PathLike, config: Config) -> None:
    """Write the file-supported fields of ``config`` as indented JSON."""
    file_path = Path(path)
    payload = json.dumps(config.to_dict(), indent=2)
    try:
        file_path.write_text(payload + "\n", encoding="utf-8")
    except OSError as exc:
        raise ConfigWriteError(
            f"failed to write config file {file_path}: {exc}", file_path
        ) from exc


def read_env_file(env_file: Optional[PathLike]) -> dict[str, str]:
    """Return the key/value pairs of a ``.env`` file, or nothing if it is absent."""
    if env_file is None:
        return {}
    file_path = Path(env_file)
    if not file_path.exists():
        return {}
    try:
        with file_path.open(encoding="utf-8") as stream:
            values = dotenv_values(stream=stream)
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigReadError(
            f"failed to read environment file {file_path}: {exc}", file_path
        ) from exc
    return {key: value for key, value in values.items() if value is not None}


def _parse_bool(value: str) -> Optional[bool]:
    if value in _TRUE_TOKENS:
        return True
    if value in _FALSE_TOKENS:
        return False
    return None


def _parse_origins(value: str) -> list[str]:
    return [item.strip() for item in value.split(",")]


def load_env_config(
    env_file: Optional[PathLike] = ".env",
    environ: Optional[Mapping[str, str]] = None,
) -> Config:
    """Build a configuration from the defaults plus environment overrides.

    Values from ``env_file`` are overlaid by ``environ`` (the process
    environment when omitted). Invalid values are skipped and the default is
    kept. Only a failure to read an existing ``env_file`` raises.
    """
    values = read_env_file(env_file)
    values.update(os.environ if environ is None else environ)

    server = default_config().server
    port = server.port
    origins = server.allowed_origins
    enable_logging = server.enable_logging

    raw_port = values.get(ENV_PORT, "")
    if raw_port:
        if _INTEGER_PATTERN.fullmatch(raw_port):
            port = int(raw_port)
        else:
            SOURCES_LOGGER.debug(
                "Ignoring invalid environment value",
                extra={"event": "env_value_ignored", "key": ENV_PORT},
            )

    raw_origins = values.get(ENV_ALLOWED_ORIGINS, "")
    if raw_origins:
        origins = tuple(_parse_origins(raw_origins))

    raw_logging = values.get(ENV_ENABLE_LOGGING, "")
    if raw_logging:
        parsed = _parse_bool(raw_logging)
        if parsed is None:
            SOURCES_LOGGER.debug(
                "Ignoring invalid environment value",
                extra={"event": "env_value_ignored", "key": ENV_ENABLE_LOGGING},
            )
        else:
            enable_logging = parsed

    return Config(
        server=ServerConfig(
            port=port,
            shutdown_timeout=server.shutdown_timeout,
            read_timeout=server.read_timeout,
            write_timeout=server.write_timeout,
            allowed_origins=origins,
            allowed_methods=server.allowed_methods,
            enable_logging=enable_logging,
        )
    )
