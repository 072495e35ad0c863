"""
Runtime configuration for the restock alerts service.

Settings are read from ``RESTOCK_*`` environment variables. Malformed
numeric or boolean values fall back to their defaults rather than failing
at startup.
"""

import dataclasses
import logging
import os
from pathlib import Path
from typing import Optional

DEFAULT_UPSTREAM_URL = "https://amul-notifications.onrender.com"
DEFAULT_STORAGE_PATH = "restock_state.json"
DEFAULT_REQUEST_TIMEOUT = 10.0

LOG_FORMAT = "%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


def _env_bool(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_path(value: Optional[str], default: str) -> Optional[Path]:
    # An explicitly empty value selects in-memory storage
    if value is None:
        return Path(default)
    value = value.strip()
    return Path(value) if value else None


def _env_float(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


@dataclasses.dataclass(frozen=True)
class Settings:
    """
    Service configuration.

    Attributes:
        upstream_url: Base URL of the upstream catalog/notification service,
            used by the gateway API.
        service_url: Base URL the CLI talks to. Either the upstream itself or
            a running instance of this gateway (both expose the same paths).
        request_timeout: Seconds before an outbound call counts as a
            transport failure.
        storage_path: File holding the persisted subscriptions, or None to
            keep them in memory for this process only.
        log_level: Root logging level name.
        verify_catalog: Log products reported available but missing from
            the full catalog.
    """
    upstream_url: str = DEFAULT_UPSTREAM_URL
    service_url: str = DEFAULT_UPSTREAM_URL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    storage_path: Optional[Path] = Path(DEFAULT_STORAGE_PATH)
    log_level: str = "INFO"
    verify_catalog: bool = True

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the process environment."""
        upstream_url = os.environ.get("RESTOCK_UPSTREAM_URL", DEFAULT_UPSTREAM_URL).rstrip("/")
        service_url = os.environ.get("RESTOCK_SERVICE_URL", upstream_url).rstrip("/")
        return cls(
            upstream_url=upstream_url,
            service_url=service_url,
            request_timeout=_env_float(
                os.environ.get("RESTOCK_REQUEST_TIMEOUT"), DEFAULT_REQUEST_TIMEOUT
            ),
            storage_path=_env_path(os.environ.get("RESTOCK_STORAGE_PATH"), DEFAULT_STORAGE_PATH),
            log_level=os.environ.get("RESTOCK_LOG_LEVEL", "INFO").upper(),
            verify_catalog=_env_bool(os.environ.get("RESTOCK_VERIFY_CATALOG"), True),
        )


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for an entry point."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )
