"""Runtime settings for the realtime layer."""
from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(slots=True)
class RealtimeSettings:
    """Tuning knobs for event retention, keepalive and delivery."""

    jwt_secret: str = "dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    event_capacity: int = 1000
    event_ttl_seconds: float = 24 * 60 * 60
    keepalive_interval: float = 30.0
    idle_timeout_multiplier: float = 3.0
    pull_session_max_lifetime: float = 5 * 60
    send_timeout: float = 5.0
    send_attempts: int = 2
    stream_queue_size: int = 100
    dev_endpoints: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "RealtimeSettings":
        defaults = cls()
        return cls(
            jwt_secret=os.getenv("CENTERLINK_JWT_SECRET", defaults.jwt_secret),
            jwt_algorithm=os.getenv("CENTERLINK_JWT_ALGORITHM", defaults.jwt_algorithm),
            event_capacity=_env_int("CENTERLINK_EVENT_CAPACITY", default=defaults.event_capacity),
            event_ttl_seconds=_env_float(
                "CENTERLINK_EVENT_TTL_SECONDS", default=defaults.event_ttl_seconds
            ),
            keepalive_interval=_env_float(
                "CENTERLINK_KEEPALIVE_INTERVAL", default=defaults.keepalive_interval
            ),
            idle_timeout_multiplier=_env_float(
                "CENTERLINK_IDLE_TIMEOUT_MULTIPLIER", default=defaults.idle_timeout_multiplier
            ),
            pull_session_max_lifetime=_env_float(
                "CENTERLINK_PULL_SESSION_MAX_LIFETIME", default=defaults.pull_session_max_lifetime
            ),
            send_timeout=_env_float("CENTERLINK_SEND_TIMEOUT", default=defaults.send_timeout),
            send_attempts=max(1, _env_int("CENTERLINK_SEND_ATTEMPTS", default=defaults.send_attempts)),
            stream_queue_size=_env_int(
                "CENTERLINK_STREAM_QUEUE_SIZE", default=defaults.stream_queue_size
            ),
            dev_endpoints=_env_flag("CENTERLINK_DEV_ENDPOINTS", default=defaults.dev_endpoints),
            log_level=os.getenv("CENTERLINK_LOG_LEVEL", defaults.log_level).upper(),
        )

    @property
    def idle_timeout(self) -> float:
        """Seconds without traffic before a live session is considered dead."""

        return self.keepalive_interval * self.idle_timeout_multiplier


def _env_flag(name: str, *, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, *, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, *, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default
