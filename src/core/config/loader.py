"""
Configuration loader.

Loads YAML config files and provides unified access.
Supports:
- Example file merged with an optional local override
- Environment variable substitution
- Typed client configuration with environment overrides
"""

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR = Path(__file__).parent.parent.parent.parent / "config"

CONFIG_FILES = ["client.example.yaml", "client.yaml"]

DEFAULT_INTERNAL_PREFIXES = ["[werft:kubernetes]", "[werft:status]"]


def _substitute_env_vars(obj: Any) -> Any:
    """Recursively substitute environment variables in config."""
    if isinstance(obj, str):
        if obj.startswith("${") and "}" in obj:
            var_part = obj[2:obj.index("}")]

            if ":-" in var_part:
                var_name, default = var_part.split(":-", 1)
            else:
                var_name, default = var_part, ""

            value = os.environ.get(var_name, default)

            if obj == f"${{{var_part}}}":
                return value

            return obj.replace(f"${{{var_part}}}", value)

        return obj

    elif isinstance(obj, dict):
        return {k: _substitute_env_vars(v) for k, v in obj.items()}

    elif isinstance(obj, list):
        return [_substitute_env_vars(item) for item in obj]

    return obj


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a single YAML file."""
    if not path.exists():
        logger.warning(f"Config file not found: {path}")
        return {}

    with open(path) as f:
        data = yaml.safe_load(f) or {}

    return _substitute_env_vars(data)


def deep_merge(base: dict, override: dict) -> dict:
    """Deep merge two dictionaries. Override takes precedence."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


@lru_cache(maxsize=1)
def get_config(config_dir: str | None = None) -> dict[str, Any]:
    """Load and merge all config files."""
    base_dir = Path(config_dir) if config_dir else CONFIG_DIR

    config: dict[str, Any] = {}

    for filename in CONFIG_FILES:
        file_path = base_dir / filename
        if file_path.exists():
            file_config = load_yaml(file_path)
            config = deep_merge(config, file_config)
            logger.debug(f"Loaded config: {filename}")

    return config


def reload_config() -> dict[str, Any]:
    """Force reload config (clears cache)."""
    get_config.cache_clear()
    return get_config()


def get_section(name: str) -> dict[str, Any]:
    """Get a single top-level config section."""
    config = get_config()
    return config.get(name, {}) or {}


@dataclass
class TransportConfig:
    """Configuration for the HTTP transport."""

    base_url: str = "http://localhost:7777"
    path_prefix: str = "v1"
    timeout: float = 30.0
    verify_ssl: bool = True
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class SubscriptionConfig:
    """Retry policy for push-stream subscriptions."""

    retry_delay: float = 1.0
    max_retries: int | None = None


@dataclass
class LogsConfig:
    """Log view settings."""

    internal_prefixes: list[str] = field(
        default_factory=lambda: list(DEFAULT_INTERNAL_PREFIXES)
    )
    debounce_interval: float = 0.2


@dataclass
class JobsConfig:
    """Job list settings."""

    page_size: int = 50
    branch_job_limit: int = 20


@dataclass
class ClientConfig:
    """Complete client configuration."""

    transport: TransportConfig = field(default_factory=TransportConfig)
    subscription: SubscriptionConfig = field(default_factory=SubscriptionConfig)
    logs: LogsConfig = field(default_factory=LogsConfig)
    jobs: JobsConfig = field(default_factory=JobsConfig)
    log_level: str = "INFO"
    log_mode: str = "raw"


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


def load_client_config() -> ClientConfig:
    """
    Build the client configuration from config files and environment.

    Environment variables take precedence over config files.

    Returns:
        Client configuration.
    """
    config = get_config()
    transport = config.get("transport", {}) or {}
    subscription = config.get("subscription", {}) or {}
    logs = config.get("logs", {}) or {}
    jobs = config.get("jobs", {}) or {}
    follower = config.get("follower", {}) or {}

    return ClientConfig(
        transport=TransportConfig(
            base_url=os.environ.get(
                "JOBWATCH_BASE_URL",
                transport.get("base_url", "http://localhost:7777"),
            ),
            path_prefix=transport.get("path_prefix", "v1"),
            timeout=float(transport.get("timeout", 30.0)),
            verify_ssl=bool(transport.get("verify_ssl", True)),
            headers=dict(transport.get("headers", {}) or {}),
        ),
        subscription=SubscriptionConfig(
            retry_delay=float(
                os.environ.get(
                    "JOBWATCH_RETRY_DELAY",
                    subscription.get("retry_delay", 1.0),
                )
            ),
            max_retries=_optional_int(
                os.environ.get(
                    "JOBWATCH_MAX_RETRIES",
                    subscription.get("max_retries"),
                )
            ),
        ),
        logs=LogsConfig(
            internal_prefixes=list(
                logs.get("internal_prefixes", DEFAULT_INTERNAL_PREFIXES)
            ),
            debounce_interval=float(logs.get("debounce_interval", 0.2)),
        ),
        jobs=JobsConfig(
            page_size=int(
                os.environ.get("JOBWATCH_PAGE_SIZE", jobs.get("page_size", 50))
            ),
            branch_job_limit=int(jobs.get("branch_job_limit", 20)),
        ),
        log_level=os.environ.get(
            "JOBWATCH_LOG_LEVEL",
            follower.get("log_level", "INFO"),
        ),
        log_mode=follower.get("log_mode", "raw"),
    )
