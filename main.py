"""JSON HTTP server entrypoint: resolve configuration, serve, drain on signal."""

import os
import sys
from typing import Optional

from json_server.bootstrap.config import parse_cli_args
from json_server.bootstrap.logging_setup import configure_logging
from json_server.config.errors import ConfigError
from json_server.config.resolve import resolve_config
from json_server.domain.correlation_id import get_logger
from json_server.lifecycle.controller import LifecycleController
from json_server.lifecycle.errors import ServerError
from json_server.pipeline.router import build_application

SERVER_LOGGER = get_logger("server")


def main(argv: Optional[list[str]] = None) -> int:
    """Run the server and return the process exit status."""
    args = parse_cli_args(sys.argv[1:] if argv is None else argv)
    configure_logging(args.log_level, args.log_destination, args.log_json)

    try:
        config = resolve_config(args.config, args.env_file, os.environ, SERVER_LOGGER)
    except ConfigError as error:
        SERVER_LOGGER.critical(
            "Failed to load configuration",
            extra={
                "event": "config_failed",
                "error_type": type(error).__name__,
                "error": str(error),
            },
        )
        return 1

    controller = LifecycleController(
        config,
        build_application(config),
        host=args.host,
        logger=SERVER_LOGGER,
    )
    SERVER_LOGGER.info(
        "Starting HTTP server",
        extra={
            "event": "server_starting",
            "host": args.host or "*",
            "port": config.server.port,
            "read_timeout": config.server.read_timeout,
            "write_timeout": config.server.write_timeout,
            "shutdown_timeout": config.server.shutdown_timeout,
            "enable_logging": config.server.enable_logging,
        },
    )
    try:
        controller.serve()
    except ServerError as error:
        SERVER_LOGGER.critical(
            "Server failed",
            extra={
                "event": "server_fatal",
                "error_type": type(error).__name__,
                "error": str(error),
            },
        )
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
