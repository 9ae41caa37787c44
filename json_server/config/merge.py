"""Two-operand precedence merge for configuration values."""

from typing import Optional

from json_server.config.model import Config, ServerConfig, default_config


def merge_configs(base: Optional[Config], override: Optional[Config]) -> Config:
    """Return a new config with ``override`` applied on top of ``base``.

    Port and allowed origins are taken from the override only when present
    (non-zero, non-empty). Timeouts and allowed methods always come from the
    base. ``enable_logging`` has no unset value and is always taken from the
    override, so an override left at ``False`` turns logging off.
    """
    if base is None:
        base = default_config()
    if override is None:
        return base

    current = base.server
    incoming = override.server
    return Config(
        server=ServerConfig(
            port=incoming.port if incoming.port != 0 else current.port,
            shutdown_timeout=current.shutdown_timeout,
            read_timeout=current.read_timeout,
            write_timeout=current.write_timeout,
            allowed_origins=(
                incoming.allowed_origins
                if incoming.allowed_origins
                else current.allowed_origins
            ),
            allowed_methods=current.allowed_methods,
            enable_logging=incoming.enable_logging,
        )
    )
