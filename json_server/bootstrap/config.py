"""Process-level constants and CLI argument parsing."""

import argparse

HEADER_DELIMITER = b"\r\n\r\n"
MAX_BODY_BYTES = 1024 * 1024
IDLE_TIMEOUT_SECONDS = 60
ACCEPT_POLL_SECONDS = 0.5

DEFAULT_HOST = ""
DEFAULT_CONFIG_PATH = "config.json"
DEFAULT_ENV_FILE = ".env"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_DESTINATION = "stdout"


def parse_cli_args(argv: list[str]) -> argparse.Namespace:
    """Return parsed CLI arguments for process bootstrap."""
    parser = argparse.ArgumentParser(description="JSON HTTP server")
    parser.add_argument(
        "--host",
        default=DEFAULT_HOST,
        help="Interface to bind (default: all interfaces)",
    )
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_PATH,
        help="Path to the JSON configuration file",
    )
    parser.add_argument(
        "--env-file",
        default=DEFAULT_ENV_FILE,
        help="Path to an optional .env file",
    )
    parser.add_argument(
        "--log-level",
        default=DEFAULT_LOG_LEVEL,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
    )
    parser.add_argument(
        "--log-destination",
        default=DEFAULT_LOG_DESTINATION,
        help="stdout or a file path",
    )
    parser.add_argument(
        "--log-json",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Emit structured JSON log lines",
    )
    return parser.parse_args(argv)
