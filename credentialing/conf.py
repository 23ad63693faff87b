"""Engine settings read from ``settings.CREDENTIALING``."""

from dataclasses import dataclass
from typing import Self

from django.conf import settings


@dataclass(frozen=True)
class EngineSettings:
    lock_timeout_seconds: float = 2.0
    busy_retries: int = 3
    busy_backoff_seconds: float = 0.05
    token_ttl_hours: float = 24
    stats_cache_seconds: int = 30
    bulk_max_codes: int = 500

    def __post_init__(self) -> None:
        if self.lock_timeout_seconds <= 0:
            raise ValueError("LOCK_TIMEOUT_SECONDS must be positive")
        if self.busy_retries < 0:
            raise ValueError("BUSY_RETRIES cannot be negative")
        if self.bulk_max_codes < 1:
            raise ValueError("BULK_MAX_CODES must be at least 1")

    @classmethod
    def from_django(cls) -> Self:
        raw = getattr(settings, "CREDENTIALING", {})
        return cls(
            lock_timeout_seconds=float(
                raw.get("LOCK_TIMEOUT_SECONDS", cls.lock_timeout_seconds)
            ),
            busy_retries=int(raw.get("BUSY_RETRIES", cls.busy_retries)),
            busy_backoff_seconds=float(
                raw.get("BUSY_BACKOFF_SECONDS", cls.busy_backoff_seconds)
            ),
            token_ttl_hours=float(raw.get("TOKEN_TTL_HOURS", cls.token_ttl_hours)),
            stats_cache_seconds=int(
                raw.get("STATS_CACHE_SECONDS", cls.stats_cache_seconds)
            ),
            bulk_max_codes=int(raw.get("BULK_MAX_CODES", cls.bulk_max_codes)),
        )
