"""Context object shared across worker threads."""

from dataclasses import dataclass

from json_server.bootstrap.config import IDLE_TIMEOUT_SECONDS
from json_server.config.model import ServerConfig
from json_server.domain.http_types import RequestHandler
from json_server.lifecycle.state import ServerLifecycle


@dataclass(frozen=True)
class WorkerContext:
    """Dependencies shared across handler threads."""

    handler: RequestHandler
    lifecycle: ServerLifecycle
    server_config: ServerConfig
    idle_timeout: float = IDLE_TIMEOUT_SECONDS
