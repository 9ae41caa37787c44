"""Fatal server errors surfaced to the lifecycle controller."""

from typing import Optional


class ServerError(Exception):
    """Base class for listener failures that end the process."""


class BindError(ServerError):
    """The listener could not acquire the requested address."""

    def __init__(self, host: str, port: int, cause: Optional[BaseException] = None):
        address = f"{host or '*'}:{port}"
        message = f"failed to bind {address}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.host = host
        self.port = port


class AcceptFatal(ServerError):
    """The accept loop hit an error it cannot recover from."""
