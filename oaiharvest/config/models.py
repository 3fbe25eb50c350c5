"""
Harvest configuration model.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from oaiharvest.oai.client import DEFAULT_USER_AGENT
from oaiharvest.transformers.fields import parse_datetime


DEFAULT_METADATA_PREFIX = "oai_dc"
DEFAULT_REPOSITORY_IDENTIFIER = "OAI-PMH"
DEFAULT_TIMEOUT = 30
DEFAULT_IDENTIFY_TIMEOUT = 5

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


@dataclass
class HarvestConfig:
    """
    Parameters of a single OAI-PMH harvest.
    """

    host_url: Optional[str] = None
    """OAI-PMH base URL of the repository (e.g. https://ws.pangaea.de/oai/provider)."""

    metadata_prefix: Optional[str] = DEFAULT_METADATA_PREFIX
    """Repository-local token selecting the metadata dialect."""

    from_date: Optional[str] = None
    """Lower datestamp bound of the ListRecords query."""

    until_date: Optional[str] = None
    """Upper datestamp bound of the ListRecords query."""

    logo_url: Optional[str] = None
    """URL pointing to the logo of the repository provider."""

    repository_identifier: str = DEFAULT_REPOSITORY_IDENTIFIER
    """Fixed repository identifier written into ISO 19139 documents."""

    timeout: float = DEFAULT_TIMEOUT
    """Timeout in seconds for repository requests."""

    identify_timeout: float = DEFAULT_IDENTIFY_TIMEOUT
    """Timeout in seconds for the repository name lookup."""

    min_interval_seconds: float = 0.0
    """Minimum seconds between two requests to the same repository."""

    user_agent: str = DEFAULT_USER_AGENT

    log_level: str = "INFO"
    log_file: Optional[str] = None

    def __post_init__(self):
        for name in ("host_url", "metadata_prefix", "from_date", "until_date", "logo_url"):
            value = getattr(self, name)
            if isinstance(value, str):
                value = value.strip()
                setattr(self, name, value or None)

    def validate(self) -> None:
        if self.host_url and not _is_http_url(self.host_url):
            raise ValueError(f"host_url must be an http(s) URL, got: {self.host_url}")

        if self.logo_url and not _is_http_url(self.logo_url):
            raise ValueError(f"logo_url must be an http(s) URL, got: {self.logo_url}")

        for name in ("from_date", "until_date"):
            value = getattr(self, name)
            if value and parse_datetime(value) is None:
                raise ValueError(f"{name} must be an ISO 8601 date, got: {value}")

        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        if self.identify_timeout <= 0:
            raise ValueError("identify_timeout must be positive")
        if self.min_interval_seconds < 0:
            raise ValueError("min_interval_seconds must not be negative")
        if not self.repository_identifier:
            raise ValueError("repository_identifier must be set")
        if str(self.log_level).upper() not in LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {', '.join(LOG_LEVELS)}, got: {self.log_level}"
            )
