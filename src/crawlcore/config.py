"""Configuration using pydantic-settings."""

from typing import Any

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

from .exceptions import ConfigurationError

DEFAULT_USER_AGENT = "crawlcore/0.1 (+https://github.com/crawlcore/crawlcore)"


class CrawlerSettings(BaseSettings):
    """Crawler configuration.

    ``download_delay`` is the minimum interval between two requests to the
    same host. The default of 0 disables throttling entirely.

    ``max_requests_per_period`` caps request starts across all hosts within
    any ``rate_limit_period``-second window; ``None`` means no cap.
    """

    concurrent_requests: int = Field(16, gt=0)
    timeout: float = Field(30.0, gt=0)
    user_agent: str = DEFAULT_USER_AGENT
    default_headers: dict[str, str] = Field(default_factory=dict)
    download_delay: float = Field(0.0, ge=0)
    max_requests_per_period: int | None = Field(None, gt=0)
    rate_limit_period: float = Field(60.0, gt=0)
    max_connections: int = Field(100, gt=0)
    max_keepalive_connections: int = Field(20, ge=0)
    follow_redirects: bool = True
    log_level: str = "INFO"

    model_config = {"env_prefix": "CRAWLCORE_"}

    def merged(self, overrides: dict[str, Any] | None) -> "CrawlerSettings":
        """Return a validated copy with ``overrides`` applied."""
        if not overrides:
            return self
        return load_settings(**{**self.model_dump(), **overrides})


def load_settings(**overrides: Any) -> CrawlerSettings:
    """Build settings from the environment plus keyword overrides."""
    try:
        return CrawlerSettings(**overrides)
    except ValidationError as e:
        raise ConfigurationError(f"invalid crawler settings: {e}") from e
