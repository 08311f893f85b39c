import os
from dataclasses import dataclass, field
from typing import List, Optional


def _env_bool(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


@dataclass
class Settings:
    """
    Runtime configuration for the motorbike booking service.

    Attributes
    ----------
    database_url : str
        SQLAlchemy URL of the bookings database.
    redis_url : Optional[str]
        Redis URL used to cache the approved view. Caching is off when unset.
    cache_ttl_seconds : int
        Lifetime of a cached approved view.
    cors_origins : List[str]
        Origins allowed to call the API from a browser.
    rate_limit_per_minute : int
        Maximum booking submissions per client IP per minute, 0 disables.
    revalidate_on_approval : bool
        Re-check approved bookings for overlap when a booking is approved.
    log_level : str
        Console log level.
    log_file : Optional[str]
        Optional path of a rotated error log.
    port : int
        Port used when the service is started directly.
    """
    database_url: str = "sqlite:///./motorbike.db"
    redis_url: Optional[str] = None
    cache_ttl_seconds: int = 60
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    rate_limit_per_minute: int = 0
    revalidate_on_approval: bool = False
    log_level: str = "INFO"
    log_file: Optional[str] = None
    port: int = 5000


def load_settings() -> Settings:
    """Build ``Settings`` from environment variables."""
    return Settings(
        database_url=os.getenv("DATABASE_URL", "sqlite:///./motorbike.db"),
        redis_url=os.getenv("REDIS_URL") or None,
        cache_ttl_seconds=int(os.getenv("CACHE_TTL_SECONDS", "60")),
        cors_origins=_env_list("CORS_ORIGINS", "*"),
        rate_limit_per_minute=int(os.getenv("RATE_LIMIT_PER_MINUTE", "0")),
        revalidate_on_approval=_env_bool("REVALIDATE_ON_APPROVAL"),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        log_file=os.getenv("LOG_FILE") or None,
        port=int(os.getenv("PORT", "5000")),
    )
