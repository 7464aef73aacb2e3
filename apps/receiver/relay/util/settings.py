"""Runtime settings read from the environment."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RelaySettings:
    """Container for relay configuration."""

    host: str = "0.0.0.0"
    port: int = 3000
    history_size: int = 100
    allowed_origins: list[str] = field(default_factory=list)
    ping_seconds: int = 15
    retry_ms: int = 5000
    subscriber_queue_size: int = 256
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "RelaySettings":
        return cls(
            host=os.getenv("RELAY_HOST", "0.0.0.0"),
            port=_env_int("PORT", default=3000),
            history_size=_env_int("RELAY_HISTORY_SIZE", default=100),
            allowed_origins=_env_list("RELAY_ALLOWED_ORIGINS"),
            ping_seconds=_env_int("RELAY_PING_SECONDS", default=15),
            retry_ms=_env_int("RELAY_RETRY_MS", default=5000),
            subscriber_queue_size=_env_int("RELAY_SUBSCRIBER_QUEUE", default=256),
            log_level=os.getenv("RELAY_LOG_LEVEL", "INFO").upper(),
        )

    @property
    def cors_origins(self) -> list[str]:
        """Configured allow-set, or everything when none is configured."""
        return self.allowed_origins or ["*"]


def _env_int(name: str, *, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer", name, raw)
        return default
    if value < 1:
        logger.warning("Ignoring %s=%r: must be positive", name, raw)
        return default
    return value


def _env_list(name: str) -> list[str]:
    raw = os.getenv(name, "")
    return [item.strip() for item in raw.split(",") if item.strip()]
