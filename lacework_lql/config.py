"""Runtime configuration.

All tunables live on a single Settings model. Values come from environment
variables (see load_settings) and are handed to components through their
constructors; nothing below the API layer reads the environment directly.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_TEMPLATES_DIR = Path.home() / ".lacework-lql" / "templates"


class Settings(BaseModel):
    """Configuration for the query engine and its collaborators."""

    # Platform connection
    api_url: Optional[str] = Field(
        default=None,
        description="Base URL of the platform API, e.g. https://acme.lacework.net",
    )
    api_token: Optional[str] = Field(
        default=None, description="Bearer token used by the HTTP collaborator"
    )
    query_timeout_seconds: float = Field(
        default=60.0, gt=0, description="Upper bound for a single remote query"
    )

    # Query shaping
    default_time_range_hours: int = Field(
        default=24, ge=1, description="Trailing window used when the request names none"
    )
    max_query_results: int = Field(
        default=1000, ge=1, description="Uniform row ceiling applied to every result"
    )

    # Catalog
    discovery_cache_ttl_minutes: int = Field(
        default=30, ge=0, description="TTL of the data source discovery cache"
    )
    field_sample_lookback_hours: int = Field(
        default=24, ge=1, description="Lookback window of the field discovery sample query"
    )

    # Dynamic tools
    enable_auto_generation: bool = Field(
        default=True,
        description="Generate tools on demand from unrecognized tool names",
    )
    prune_max_age_days: int = Field(
        default=7, ge=0, description="Idle age after which unused tools may be pruned"
    )

    # Templates
    templates_dir: Path = Field(default=DEFAULT_TEMPLATES_DIR)

    log_level: str = Field(default="INFO")

    @property
    def discovery_cache_ttl_seconds(self) -> float:
        return self.discovery_cache_ttl_minutes * 60.0

    @property
    def prune_max_age_seconds(self) -> float:
        return self.prune_max_age_days * 24 * 60 * 60.0


def _int_from_env(name: str, default: int, minimum: int = 0) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using {default}")
        return default
    if value < minimum:
        logger.warning(f"Ignoring {name}={value} (minimum {minimum}), using {default}")
        return default
    return value


def load_settings() -> Settings:
    """Build Settings from the environment.

    Recognized variables:
        LACEWORK_API_URL, LACEWORK_API_TOKEN
        LACEWORK_DEFAULT_TIME_RANGE (hours)
        LACEWORK_MAX_QUERY_RESULTS
        LACEWORK_QUERY_TIMEOUT (seconds)
        LACEWORK_DISCOVERY_TTL_MINUTES
        LACEWORK_TEMPLATES_DIR
        LACEWORK_LOG_LEVEL
        MCP_DISABLE_AUTO_GENERATION ("true" disables on-demand tool generation)
    """
    defaults = Settings()
    templates_dir = os.environ.get("LACEWORK_TEMPLATES_DIR")

    return Settings(
        api_url=os.environ.get("LACEWORK_API_URL") or None,
        api_token=os.environ.get("LACEWORK_API_TOKEN") or None,
        query_timeout_seconds=_int_from_env(
            "LACEWORK_QUERY_TIMEOUT", int(defaults.query_timeout_seconds), minimum=1
        ),
        default_time_range_hours=_int_from_env(
            "LACEWORK_DEFAULT_TIME_RANGE", defaults.default_time_range_hours, minimum=1
        ),
        max_query_results=_int_from_env(
            "LACEWORK_MAX_QUERY_RESULTS", defaults.max_query_results, minimum=1
        ),
        discovery_cache_ttl_minutes=_int_from_env(
            "LACEWORK_DISCOVERY_TTL_MINUTES", defaults.discovery_cache_ttl_minutes
        ),
        enable_auto_generation=(
            os.environ.get("MCP_DISABLE_AUTO_GENERATION", "").lower() != "true"
        ),
        templates_dir=Path(templates_dir) if templates_dir else defaults.templates_dir,
        log_level=os.environ.get("LACEWORK_LOG_LEVEL", defaults.log_level).upper(),
    )


# Process-wide settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings
