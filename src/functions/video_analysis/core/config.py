"""Connection settings for the Gemini client used by the analysis pipeline.

Model choice, sampling parameters and timeouts that may change at runtime
live in :mod:`.registry`; this module only covers what is fixed for the
lifetime of a client.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

_ALLOWED_TIMEOUT_RANGE = (10, 600)


def _ensure_non_empty(value: Optional[str], field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must be provided")
    return value.strip()


def _ensure_timeout(value: int, field_name: str, bounds: tuple[int, int]) -> int:
    minimum, maximum = bounds
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field_name} must be an integer")
    if value < minimum or value > maximum:
        raise ValueError(
            f"{field_name} must be between {minimum} and {maximum} seconds"
        )
    return value


@dataclass
class LLMConfig:
    """Configuration for the Gemini client.

    ``timeout_seconds`` here is only the fallback used when the registry's
    ``performance.timeout_seconds`` is not passed to a call.
    """

    api_key: Optional[str] = None
    model: str = "gemini-2.5-pro"
    timeout_seconds: int = 300
    max_requests_per_minute: int = 60

    def validate(self) -> None:
        self.api_key = _ensure_non_empty(self.api_key, "api_key")
        self.model = _ensure_non_empty(self.model, "model")
        self.timeout_seconds = _ensure_timeout(
            self.timeout_seconds,
            "timeout_seconds",
            _ALLOWED_TIMEOUT_RANGE,
        )
        if isinstance(self.max_requests_per_minute, bool) or not isinstance(
            self.max_requests_per_minute, int
        ):
            raise ValueError("max_requests_per_minute must be an integer")
        if self.max_requests_per_minute <= 0:
            raise ValueError("max_requests_per_minute must be positive")
