# src/bloop/core/config.py
"""
Configuration schema and loading for the bloop client.

Uses Pydantic for validation and Dynaconf for multi-source loading.
Settings are frozen (immutable) after construction.
"""

import os
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

from bloop.contracts.config import (
    DEFAULT_FLUSH_INTERVAL_MS,
    DEFAULT_MAX_BUFFER_SIZE,
    DEFAULT_MAX_BUFFERED_ITEMS,
    DEFAULT_SEND_QUEUE_SIZE,
    DEFAULT_TIMEOUT_SECONDS,
)

_REDACTED = "<redacted>"

# Fields never echoed back by resolve_config()
_SECRET_FIELD_NAMES = frozenset({"secret", "project_key"})


class BloopSettings(BaseModel):
    """Client configuration.

    Example YAML:
        endpoint: https://bloop.example.com
        secret: ${BLOOP_HMAC_SECRET}
        project_key: proj_123
        environment: production
        release: "2.4.0"
        max_buffer_size: 50
        flush_interval_ms: 10000
    """

    model_config = {"frozen": True}

    endpoint: str = Field(description="Collector base URL (batch paths are appended)")
    secret: str = Field(repr=False, description="Shared HMAC secret for the X-Signature header")
    project_key: str | None = Field(default=None, repr=False, description="Optional X-Project-Key header value")
    environment: str = Field(description="Deployment environment stamped on every event")
    release: str = Field(description="Release identifier stamped on every event")
    source: str = Field(default="python", description="Platform tag stamped on every event")
    app_version: str | None = Field(default=None, description="Application version stamped on every event")
    build_number: str | None = Field(default=None, description="Build number stamped on every event")
    max_buffer_size: int = Field(
        default=DEFAULT_MAX_BUFFER_SIZE,
        gt=0,
        description="Buffered items that trigger an immediate flush",
    )
    max_buffered_items: int = Field(
        default=DEFAULT_MAX_BUFFERED_ITEMS,
        gt=0,
        description="Hard cap per buffer; the oldest item is evicted beyond it",
    )
    flush_interval_ms: int = Field(
        default=DEFAULT_FLUSH_INTERVAL_MS,
        gt=0,
        description="Background flush period in milliseconds",
    )
    enrich_device: bool = Field(default=True, description="Merge platform info under event metadata")
    transport: str = Field(default="http", description="Registered transport name (http, console, ...)")
    connect_timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0, description="HTTP connect timeout")
    read_timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0, description="HTTP read timeout")
    send_queue_size: int = Field(
        default=DEFAULT_SEND_QUEUE_SIZE,
        gt=0,
        description="Batches allowed to wait for the background sender",
    )

    @field_validator("endpoint")
    @classmethod
    def validate_endpoint(cls, v: str) -> str:
        """Endpoint must be an absolute http(s) URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"endpoint must start with http:// or https://, got {v!r}")
        return v.rstrip("/")

    @field_validator("secret", "environment", "release", "source", "transport")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


# Regex pattern for ${VAR} or ${VAR:-default} syntax
_ENV_VAR_PATTERN = re.compile(r"\$\{([A-Z_][A-Z0-9_]*)(?::-([^}]*))?\}")


def _expand_env_vars(config: dict[str, Any]) -> dict[str, Any]:
    """Recursively expand ${VAR} and ${VAR:-default} patterns in config values.

    Args:
        config: Configuration dict (may contain nested structures)

    Returns:
        New dict with environment variables expanded

    Raises:
        ValueError: If a referenced environment variable is unset and has
            no default
    """

    def _expand_string(value: str) -> str:
        def replacer(match: re.Match[str]) -> str:
            var_name = match.group(1)
            default = match.group(2)
            env_value = os.environ.get(var_name)
            if env_value is not None:
                return env_value
            if default is not None:
                return default
            raise ValueError(f"Required environment variable '{var_name}' is not set")

        return _ENV_VAR_PATTERN.sub(replacer, value)

    def _expand_value(value: Any) -> Any:
        if isinstance(value, str):
            return _expand_string(value)
        elif isinstance(value, dict):
            return {k: _expand_value(v) for k, v in value.items()}
        elif isinstance(value, list):
            return [_expand_value(item) for item in value]
        else:
            return value

    return {k: _expand_value(v) for k, v in config.items()}


def load_settings(config_path: Path) -> BloopSettings:
    """Load settings from YAML file with environment variable overrides.

    Uses Dynaconf for multi-source loading with precedence:
    1. Environment variables (BLOOP_*) - highest priority
    2. Config file (bloop.yaml)
    3. Defaults from Pydantic schema - lowest priority

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Validated BloopSettings instance

    Raises:
        ValidationError: If configuration fails Pydantic validation
        FileNotFoundError: If config file doesn't exist
        ValueError: If a ${VAR} reference cannot be resolved
    """
    from dynaconf import Dynaconf

    # Dynaconf silently accepts missing files
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    dynaconf_settings = Dynaconf(
        envvar_prefix="BLOOP",
        settings_files=[str(config_path)],
        environments=False,
        load_dotenv=False,
        merge_enabled=True,
    )

    # Dynaconf returns uppercase keys and some internal settings
    internal_keys = {"LOAD_DOTENV", "ENVIRONMENTS", "SETTINGS_FILES"}
    raw_config = {k.lower(): v for k, v in dynaconf_settings.as_dict().items() if k not in internal_keys}

    raw_config = _expand_env_vars(raw_config)

    return BloopSettings(**raw_config)


def resolve_config(settings: BloopSettings) -> dict[str, Any]:
    """Convert validated settings to a dict safe for display or logging.

    Secret values are replaced by a redaction marker; unset optional
    secrets stay None so the output still shows whether they are set.
    """
    config_dict = settings.model_dump(mode="json")
    for name in _SECRET_FIELD_NAMES:
        if config_dict.get(name) is not None:
            config_dict[name] = _REDACTED
    return config_dict
