"""Failure taxonomy for the video analysis pipeline.

Exceptions are only raised at the upstream boundary (the Gemini client and
video reference loading). The stages convert them into ``PipelineFailure``
values so that callers branch on data rather than on ``try`` blocks.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class FailureKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
    MALFORMED_EXTRACTION = "malformed_extraction"
    MALFORMED_FORMATTING = "malformed_formatting"


_RETRYABLE = {FailureKind.UPSTREAM_UNAVAILABLE}


@dataclass(frozen=True)
class PipelineFailure:
    """A typed, non-raised failure attached to a stage or module result."""

    kind: FailureKind
    message: str
    module: Optional[str] = None

    @property
    def retryable(self) -> bool:
        """Whether re-running the whole pipeline may clear the failure."""

        return self.kind in _RETRYABLE

    @property
    def fatal(self) -> bool:
        """Whether the failure aborts a pipeline run."""

        return self.kind is FailureKind.INVALID_INPUT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "module": self.module,
            "retryable": self.retryable,
        }


class InvalidVideoInputError(ValueError):
    """Raised when a video reference cannot be read or dereferenced."""


class GeminiClientError(RuntimeError):
    """Raised when Gemini operations fail."""


class UpstreamUnavailableError(GeminiClientError):
    """Raised on network errors, timeouts and rate limits from Gemini."""
