"""Config module: loading and managing client configuration."""

from src.core.config.loader import (
    DEFAULT_INTERNAL_PREFIXES,
    ClientConfig,
    JobsConfig,
    LogsConfig,
    SubscriptionConfig,
    TransportConfig,
    get_config,
    get_section,
    load_client_config,
    reload_config,
)

__all__ = [
    "DEFAULT_INTERNAL_PREFIXES",
    "ClientConfig",
    "JobsConfig",
    "LogsConfig",
    "SubscriptionConfig",
    "TransportConfig",
    "get_config",
    "get_section",
    "load_client_config",
    "reload_config",
]
