"""Layered configuration resolution: defaults, then file, then environment."""

import logging
from pathlib import Path
from typing import Mapping, Optional, Union

from json_server.config.errors import ConfigNotFound, ConfigParseError, ConfigReadError
from json_server.config.merge import merge_configs
from json_server.config.model import Config, default_config
from json_server.config.sources import load_env_config, load_file_config
from json_server.domain.correlation_id import CorrelationLoggerAdapter, get_logger

RESOLVE_LOGGER = get_logger("config.resolve")

PathLike = Union[str, Path]


def resolve_config(
    config_path: Optional[PathLike],
    env_file: Optional[PathLike],
    environ: Optional[Mapping[str, str]] = None,
    logger: Optional[Union[logging.Logger, CorrelationLoggerAdapter]] = None,
) -> Config:
    """Return the final configuration for the process.

    Problems with the configuration file are logged and the defaults are
    kept. A failure to read an existing environment file is raised as
    :class:`ConfigReadError`.
    """
    log = logger or RESOLVE_LOGGER
    config = default_config()

    if config_path is not None:
        try:
            file_config = load_file_config(config_path)
        except ConfigNotFound:
            log.info(
                "Configuration file not found, using defaults",
                extra={"event": "config_file_missing", "path": str(config_path)},
            )
        except (ConfigReadError, ConfigParseError) as error:
            log.warning(
                "Failed to load configuration file, using defaults",
                extra={
                    "event": "config_file_invalid",
                    "path": str(config_path),
                    "error_type": type(error).__name__,
                    "error": str(error),
                },
            )
        else:
            config = merge_configs(config, file_config)
            log.info(
                "Configuration file applied",
                extra={"event": "config_file_loaded", "path": str(config_path)},
            )

    env_config = load_env_config(env_file, environ)
    config = merge_configs(config, env_config)

    log.info(
        "Configuration resolved",
        extra={
            "event": "config_resolved",
            "port": config.server.port,
            "allowed_origins": list(config.server.allowed_origins),
            "enable_logging": config.server.enable_logging,
        },
    )
    return config
