"""Parsing of untrusted model responses into typed values.

Parsers never raise on bad content; they return a ``ParseOutcome`` that is
either a value or a reason, so fallbacks are explicit branches.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Generic, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..contracts.comprehensive_record import ComprehensiveRecord
from ..contracts.formatted_output import StatisticsPayload

T = TypeVar("T")
ModelT = TypeVar("ModelT", bound=BaseModel)

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_JSON_PATTERN = re.compile(r"\{.*\}", re.DOTALL)


@dataclass(frozen=True)
class ParseOutcome(Generic[T]):
    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "ParseOutcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, reason: str) -> "ParseOutcome[T]":
        return cls(error=reason)


def parse_json_object(text: Optional[str]) -> ParseOutcome[dict]:
    """Decode a JSON object, tolerating markdown fences and surrounding prose."""

    if text is None or not text.strip():
        return ParseOutcome.failure("empty response")

    stripped = text.strip()
    candidates = [stripped]
    fenced = _FENCE_PATTERN.search(stripped)
    if fenced:
        candidates.append(fenced.group(1).strip())
    braced = _JSON_PATTERN.search(stripped)
    if braced:
        candidates.append(braced.group(0))

    last_error = "response is not valid JSON"
    for candidate in candidates:
        try:
            decoded = json.loads(candidate)
        except json.JSONDecodeError as exc:
            last_error = f"response is not valid JSON: {exc.msg} at position {exc.pos}"
            continue
        if not isinstance(decoded, dict):
            return ParseOutcome.failure(f"expected a JSON object, got {type(decoded).__name__}")
        return ParseOutcome.success(decoded)
    return ParseOutcome.failure(last_error)


def _parse_model(text: Optional[str], model: Type[ModelT]) -> ParseOutcome[ModelT]:
    decoded = parse_json_object(text)
    if not decoded.ok:
        return ParseOutcome.failure(decoded.error or "unparseable response")
    try:
        return ParseOutcome.success(model.model_validate(decoded.value))
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()[:5]
        )
        return ParseOutcome.failure(f"response does not match the {model.__name__} shape: {problems}")


def parse_record(text: Optional[str]) -> ParseOutcome[ComprehensiveRecord]:
    return _parse_model(text, ComprehensiveRecord)


def parse_statistics(text: Optional[str]) -> ParseOutcome[StatisticsPayload]:
    return _parse_model(text, StatisticsPayload)


def describe(value: Any, limit: int = 120) -> str:
    """Short single-line preview of a response for log messages."""

    preview = " ".join(str(value).split())
    return preview if len(preview) <= limit else preview[: limit - 3] + "..."
