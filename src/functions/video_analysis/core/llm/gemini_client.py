"""Async Gemini client for multimodal (video + text) generation."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, Union

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from src.shared.utils.logging import get_logger

from ..config import LLMConfig
from ..errors import GeminiClientError, UpstreamUnavailableError
from .request_budget import BudgetExhausted, RequestBudget

LOGGER = get_logger(__name__)

_JSON_MIME_TYPE = "application/json"


@dataclass(frozen=True)
class GenerationRequest:
    """One "generate content from multimodal input" call.

    At most one of ``video_bytes`` / ``video_uri`` is set; formatting calls
    carry neither.
    """

    prompt: str
    video_bytes: Optional[bytes] = None
    video_uri: Optional[str] = None
    video_mime_type: str = "video/mp4"
    json_output: bool = False
    model: Optional[str] = None
    temperature: Optional[float] = None
    max_output_tokens: Optional[int] = None
    timeout_seconds: Optional[float] = None

    def __post_init__(self) -> None:
        if self.video_bytes is not None and self.video_uri is not None:
            raise ValueError("A generation request takes either video bytes or a video URI, not both")

    @property
    def has_video(self) -> bool:
        return self.video_bytes is not None or self.video_uri is not None


class VideoModelClient(Protocol):
    """The only upstream operation the pipeline depends on."""

    async def generate(self, request: GenerationRequest) -> str:
        ...


class GeminiVideoClient:
    """Thin async wrapper around ``google-genai`` with timeouts and a request budget.

    Each ``generate`` call is a single upstream request. Failures are raised
    as ``UpstreamUnavailableError``; retrying is left to the job runner.
    """

    def __init__(
        self,
        config: LLMConfig,
        *,
        budget: Optional[RequestBudget] = None,
        client: Optional[genai.Client] = None,
    ) -> None:
        config.validate()
        self.config = config
        self._client = client or genai.Client(api_key=config.api_key)
        self._budget = budget or RequestBudget(config.max_requests_per_minute)
        self._logger = get_logger(__name__)

    async def generate(self, request: GenerationRequest) -> str:
        model = request.model or self.config.model
        timeout = float(request.timeout_seconds or self.config.timeout_seconds)

        self._logger.debug(
            "Gemini request: model=%s video=%s json=%s prompt_chars=%d",
            model,
            "uri" if request.video_uri else ("inline" if request.video_bytes else "none"),
            request.json_output,
            len(request.prompt),
        )

        try:
            async with self._budget.reserve(timeout=timeout):
                response = await asyncio.wait_for(
                    self._client.aio.models.generate_content(
                        model=model,
                        contents=self._build_contents(request),
                        config=self._build_config(request),
                    ),
                    timeout=timeout,
                )
        except BudgetExhausted as exc:
            self._logger.warning("Request budget exhausted: %s", exc)
            raise UpstreamUnavailableError(f"Local request budget exhausted: {exc}") from exc
        except asyncio.TimeoutError as exc:
            self._logger.warning("Gemini request timed out after %.1fs", timeout)
            raise UpstreamUnavailableError(f"Gemini request timed out after {timeout:.0f}s") from exc
        except genai_errors.APIError as exc:
            self._logger.warning("Gemini API error %s: %s", exc.code, exc.message)
            raise UpstreamUnavailableError(f"Gemini API error {exc.code}: {exc.message}") from exc
        except (httpx.HTTPError, OSError) as exc:
            self._logger.warning("Gemini transport error: %s", exc)
            raise UpstreamUnavailableError(f"Gemini transport error: {exc}") from exc
        except Exception as exc:  # pragma: no cover - SDK surprises
            self._logger.exception("Unexpected Gemini failure")
            raise GeminiClientError("Unexpected Gemini failure") from exc

        text = self._extract_text(response)
        if not text:
            self._logger.debug("Empty Gemini response (finish reason: %s)", self._finish_reason(response))
        return text

    @staticmethod
    def _build_contents(request: GenerationRequest) -> Union[str, List[Any]]:
        if request.video_bytes is not None:
            video = types.Part.from_bytes(data=request.video_bytes, mime_type=request.video_mime_type)
            return [video, request.prompt]
        if request.video_uri is not None:
            video = types.Part.from_uri(file_uri=request.video_uri, mime_type=request.video_mime_type)
            return [video, request.prompt]
        return request.prompt

    @staticmethod
    def _build_config(request: GenerationRequest) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            temperature=request.temperature,
            max_output_tokens=request.max_output_tokens,
            response_mime_type=_JSON_MIME_TYPE if request.json_output else None,
        )

    @staticmethod
    def _extract_text(response: Any) -> str:
        text = getattr(response, "text", None)
        if text:
            return str(text)
        for candidate in getattr(response, "candidates", None) or []:
            content = getattr(candidate, "content", None)
            parts = getattr(content, "parts", None) or []
            segments = [part.text for part in parts if getattr(part, "text", None)]
            if segments:
                return "".join(segments)
        return ""

    @staticmethod
    def _finish_reason(response: Any) -> Optional[str]:
        candidates = getattr(response, "candidates", None) or []
        if not candidates:
            return None
        reason = getattr(candidates[0], "finish_reason", None)
        return str(reason) if reason is not None else None
