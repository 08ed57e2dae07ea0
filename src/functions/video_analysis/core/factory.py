"""Builders that wire the pipeline from environment variables and raw payloads."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from src.shared.utils.env import get_env, get_int_env, load_env
from src.shared.utils.logging import get_logger

from .config import LLMConfig
from .contracts.analysis_context import AnalysisContext
from .contracts.video_reference import LocalVideo, RemoteVideo, VideoReference
from .errors import InvalidVideoInputError
from .llm import GeminiVideoClient, VideoModelClient
from .registry import AnalysisConfigRegistry
from .service import PipelineCoordinator

LOGGER = get_logger(__name__)

_DEFAULT_LLM_MODEL = "gemini-2.5-pro"
_DEFAULT_LLM_TIMEOUT = 300
_DEFAULT_REQUESTS_PER_MINUTE = 60


def llm_config_from_env(overrides: Optional[Mapping[str, Any]] = None) -> LLMConfig:
    """Build and validate an ``LLMConfig`` from overrides, then env, then defaults."""

    data = dict(overrides or {})
    api_key = _first_non_empty(
        data.get("api_key"),
        get_env("GEMINI_API_KEY"),
        get_env("GOOGLE_API_KEY"),
    )
    if not api_key:
        raise ValueError(
            "Gemini API key must be provided via `api_key` or GEMINI_API_KEY/GOOGLE_API_KEY env"
        )

    model = _first_non_empty(data.get("model"), get_env("GEMINI_MODEL"), _DEFAULT_LLM_MODEL)
    timeout_seconds = data.get("timeout_seconds")
    if timeout_seconds is None:
        timeout_seconds = get_int_env("GEMINI_TIMEOUT_SECONDS", _DEFAULT_LLM_TIMEOUT)
    max_rpm = data.get("max_requests_per_minute")
    if max_rpm is None:
        max_rpm = get_int_env("GEMINI_MAX_REQUESTS_PER_MINUTE", _DEFAULT_REQUESTS_PER_MINUTE)

    config = LLMConfig(
        api_key=api_key,
        model=model,
        timeout_seconds=_coerce_int(timeout_seconds, "timeout_seconds"),
        max_requests_per_minute=_coerce_int(max_rpm, "max_requests_per_minute"),
    )
    config.validate()
    return config


def registry_from_env(preset: Optional[str] = None) -> AnalysisConfigRegistry:
    """Create a registry, applying ``preset`` or ``VIDEO_ANALYSIS_PRESET`` when set."""

    registry = AnalysisConfigRegistry()
    chosen = _first_non_empty(preset, get_env("VIDEO_ANALYSIS_PRESET"))
    if chosen:
        registry.apply_preset(chosen)
    model = get_env("GEMINI_MODEL")
    if model and model.strip():
        ai = registry.get_ai_settings()
        registry.update_config(
            {
                "ai": {
                    "model": model.strip(),
                    "temperature": ai.temperature,
                    "max_tokens": ai.max_tokens,
                    "multi_pass": ai.multi_pass,
                    "pass_count": ai.pass_count,
                }
            }
        )
    return registry


def build_coordinator(
    *,
    registry: Optional[AnalysisConfigRegistry] = None,
    client: Optional[VideoModelClient] = None,
    llm_overrides: Optional[Mapping[str, Any]] = None,
) -> PipelineCoordinator:
    """Wire a coordinator with a Gemini client unless one is supplied."""

    load_env()
    registry = registry or registry_from_env()
    if client is None:
        client = GeminiVideoClient(llm_config_from_env(llm_overrides))
    LOGGER.debug(
        "Coordinator ready: model=%s modules=%s",
        registry.get_ai_settings().model,
        [kind.value for kind in registry.get_enabled_modules()],
    )
    return PipelineCoordinator(client, registry)


def reference_from_payload(payload: Mapping[str, Any]) -> VideoReference:
    """Build a video reference from ``{"file_path"|"url", "mime_type"}``.

    Raises:
        InvalidVideoInputError: If neither or both sources are given.
    """

    if not isinstance(payload, Mapping):
        raise InvalidVideoInputError("Payload must be a mapping")

    file_path = _first_non_empty(payload.get("file_path"), payload.get("filePath"))
    url = _first_non_empty(
        payload.get("url"),
        payload.get("youtube_url"),
        payload.get("youtubeUrl"),
    )
    mime_type = _first_non_empty(payload.get("mime_type"), payload.get("mimeType"))

    if file_path and url:
        raise InvalidVideoInputError("Provide either a file path or a URL, not both")
    if file_path:
        return LocalVideo.from_path(file_path, mime_type=mime_type)
    if url:
        return RemoteVideo(url=url, mime_type=mime_type or "video/mp4")
    raise InvalidVideoInputError("A `file_path` or `url` is required")


def context_from_payload(payload: Mapping[str, Any]) -> AnalysisContext:
    block = payload.get("context") if isinstance(payload, Mapping) else None
    if block is not None and not isinstance(block, Mapping):
        raise ValueError("`context` block must be a mapping when provided")
    return AnalysisContext.from_mapping(block or payload)


def _first_non_empty(*values: Optional[Any]) -> Optional[str]:
    for value in values:
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _coerce_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field_name} must be an integer") from exc
