"""Configuration for offline reconnection."""

import os
from dataclasses import dataclass
from typing import Mapping

DEFAULT_SERVER_URL = "https://api.cluster-fluster.com"
SERVER_URL_ENV = "HAPPY_SERVER_URL"


def get_server_url(environ: Mapping[str, str] | None = None) -> str:
    """Get the Happy server URL from the environment, or the default."""
    env = os.environ if environ is None else environ
    return env.get(SERVER_URL_ENV) or DEFAULT_SERVER_URL


@dataclass
class ReconnectConfig:
    """Timing settings for the reconnection loop.

    Attributes:
        initial_delay_ms: Wait before the first attempt.
        min_delay_ms: Backoff delay after the first failure.
        max_delay_ms: Backoff delay once growth saturates.
        max_failure_count: Failure count at which the delay stops growing.
            Retries themselves are unlimited.
        health_check_timeout: Timeout in seconds for the default health check.
    """

    initial_delay_ms: int = 5000
    min_delay_ms: int = 5000
    max_delay_ms: int = 60000
    max_failure_count: int = 10
    health_check_timeout: float = 5.0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "initial_delay_ms": self.initial_delay_ms,
            "min_delay_ms": self.min_delay_ms,
            "max_delay_ms": self.max_delay_ms,
            "max_failure_count": self.max_failure_count,
            "health_check_timeout": self.health_check_timeout,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ReconnectConfig":
        """Create from dictionary."""
        defaults = cls()
        return cls(
            initial_delay_ms=data.get("initial_delay_ms", defaults.initial_delay_ms),
            min_delay_ms=data.get("min_delay_ms", defaults.min_delay_ms),
            max_delay_ms=data.get("max_delay_ms", defaults.max_delay_ms),
            max_failure_count=data.get("max_failure_count", defaults.max_failure_count),
            health_check_timeout=data.get("health_check_timeout", defaults.health_check_timeout),
        )
