"""YAML configuration loader with env var resolution and Pydantic validation.

Loads config from (priority order):
1. --config <path> CLI flag
2. ./trackmaster.yaml (working directory)
3. ~/.trackmaster/config.yaml (user home)

Environment variables override YAML: TRACKMASTER_<SECTION>_<KEY>.
${VAR} references in YAML values resolve from environment at load time.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field

from trackmaster.clients.relay import DEFAULT_RELAY_URL
from trackmaster.clients.tracking_provider import DEFAULT_BUY_URL, DEFAULT_SEARCH_URL

logger = logging.getLogger(__name__)

ENV_PREFIX = "TRACKMASTER_"

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def resolve_env_vars(value: str) -> str:
    """Resolve ${VAR} references in a string from environment variables.

    Missing env vars resolve to empty string.
    """
    def _replace(match: re.Match) -> str:
        return os.environ.get(match.group(1), "")

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _resolve_env_vars_recursive(data: Any) -> Any:
    if isinstance(data, str):
        return resolve_env_vars(data)
    elif isinstance(data, dict):
        return {k: _resolve_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars_recursive(item) for item in data]
    return data


class ProviderConfig(BaseModel):
    """Tracking provider API settings."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    api_key: str = ""
    search_url: str = DEFAULT_SEARCH_URL
    buy_url: str = DEFAULT_BUY_URL
    limit: int = Field(default=3000, ge=1)
    timeout_seconds: float = Field(default=30.0, gt=0)


class ShopifyConfig(BaseModel):
    """Shopify Admin API credentials."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    domain: str = ""
    access_token: str = ""
    api_version: str = "2023-10"
    carrier: str = "UPS"


class RelayConfig(BaseModel):
    """Optional URL relay placed in front of every remote call."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    enabled: bool = False
    base_url: str = DEFAULT_RELAY_URL
    api_key: str = ""


class RulesConfig(BaseModel):
    """Hold-back thresholds, in days."""

    days_for_queue: int = Field(default=4, ge=0)
    days_for_warning: int = Field(default=7, ge=0)


class PacingConfig(BaseModel):
    """Chunking and inter-call delays, in seconds."""

    chunk_size: int = Field(default=5, ge=1)
    chunk_delay: float = Field(default=0.1, ge=0)
    purchase_delay: float = Field(default=0.2, ge=0)
    fulfillment_delay: float = Field(default=0.5, ge=0)
    queue_flush: Literal["end", "chunk"] = "end"


class LoggingConfig(BaseModel):
    """Log level and optional log file."""

    level: str = "INFO"
    file: str | None = None


class TrackMasterConfig(BaseModel):
    """Top-level configuration for the TrackMaster CLI."""

    provider: ProviderConfig = ProviderConfig()
    shopify: ShopifyConfig = ShopifyConfig()
    relay: RelayConfig = RelayConfig()
    rules: RulesConfig = RulesConfig()
    pacing: PacingConfig = PacingConfig()
    logging: LoggingConfig = LoggingConfig()
    database_url: str | None = None


def find_config_file() -> Path | None:
    """Search for config file in standard locations.

    Returns:
        Path to config file if found, None otherwise.
    """
    candidates = [
        Path.cwd() / "trackmaster.yaml",
        Path.cwd() / "trackmaster.yml",
        Path.home() / ".trackmaster" / "config.yaml",
        Path.home() / ".trackmaster" / "config.yml",
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Apply TRACKMASTER_<SECTION>_<KEY> env var overrides to config data.

    For example, ``TRACKMASTER_PACING_CHUNK_SIZE=10`` sets
    ``pacing.chunk_size``. Top-level scalars use the bare key
    (``TRACKMASTER_DATABASE_URL``). Values stay strings; Pydantic coerces
    them to the field type.

    Args:
        data: Parsed YAML config dict.

    Returns:
        Config dict with env var overrides applied.
    """
    sections = [
        name
        for name, info in TrackMasterConfig.model_fields.items()
        if isinstance(info.default, BaseModel)
    ]
    # Longest first so a greedy prefix match picks the most specific section
    sections.sort(key=len, reverse=True)

    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        suffix = key[len(ENV_PREFIX):].lower()
        if suffix in TrackMasterConfig.model_fields and suffix not in sections:
            data[suffix] = value
            continue
        for section in sections:
            section_prefix = section + "_"
            if suffix.startswith(section_prefix) and len(suffix) > len(section_prefix):
                target = data.setdefault(section, {})
                if isinstance(target, dict):
                    target[suffix[len(section_prefix):]] = value
                break
    return data


def load_config(config_path: str | None = None) -> TrackMasterConfig:
    """Load TrackMaster configuration from YAML with env var resolution.

    Args:
        config_path: Explicit path to config file. If None, searches
            standard locations (cwd, then ~/.trackmaster/).

    Returns:
        Validated TrackMasterConfig. Defaults plus env overrides when no
        config file exists.

    Raises:
        FileNotFoundError: If config_path is given but does not exist.
    """
    if config_path:
        path: Path | None = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        path = find_config_file()

    raw_data: dict[str, Any] = {}
    if path is not None:
        logger.info("Loading config from %s", path)
        with open(path) as f:
            raw_data = yaml.safe_load(f) or {}

    data = _resolve_env_vars_recursive(raw_data)
    data = _apply_env_overrides(data)
    return TrackMasterConfig(**data)
