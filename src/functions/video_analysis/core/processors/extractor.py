"""Extraction pass: one model call turning a video into a Comprehensive Record."""

from __future__ import annotations

from typing import Optional

from src.shared.utils.logging import get_logger

from ..contracts.analysis_context import AnalysisContext
from ..contracts.results import ExtractionResult
from ..contracts.video_reference import LocalVideo, RemoteVideo, VideoReference
from ..errors import FailureKind, GeminiClientError, InvalidVideoInputError
from ..llm import GenerationRequest, VideoModelClient
from ..prompts import build_extraction_prompt
from ..registry import AnalysisConfigRegistry
from .response_parser import describe, parse_record

LOGGER = get_logger(__name__)


class ExtractionStage:
    """Issues the single extraction request for a video reference.

    The stage keeps no state between calls. Every outcome is returned as an
    ``ExtractionResult`` whose record is usable even on failure.
    """

    def __init__(self, client: VideoModelClient, registry: AnalysisConfigRegistry) -> None:
        self._client = client
        self._registry = registry

    async def extract(
        self,
        reference: VideoReference,
        *,
        context: Optional[AnalysisContext] = None,
    ) -> ExtractionResult:
        try:
            request = self._build_request(reference, context)
        except InvalidVideoInputError as exc:
            LOGGER.warning("Rejected video input: %s", exc)
            return ExtractionResult.failed(FailureKind.INVALID_INPUT, str(exc))

        LOGGER.info("Extraction started for %s", reference.describe())
        try:
            raw_text = await self._client.generate(request)
        except GeminiClientError as exc:
            LOGGER.warning("Extraction call failed: %s", exc)
            return ExtractionResult.failed(FailureKind.UPSTREAM_UNAVAILABLE, str(exc))

        parsed = parse_record(raw_text)
        if not parsed.ok or parsed.value is None:
            LOGGER.warning(
                "Extraction returned malformed content (%s): %s",
                parsed.error,
                describe(raw_text or ""),
            )
            return ExtractionResult.failed(
                FailureKind.MALFORMED_EXTRACTION,
                parsed.error or "unparseable extraction response",
            )

        record = parsed.value
        warnings = record.timestamp_warnings()
        for warning in warnings:
            LOGGER.warning("Extraction timestamp check: %s", warning)

        LOGGER.info(
            "Extraction complete: %d plays, %d player performances, %d identified players",
            len(record.plays),
            len(record.individual_performance),
            sum(len(team.identified_players) for team in record.teams),
        )
        return ExtractionResult(record=record, warnings=warnings)

    def _build_request(
        self,
        reference: VideoReference,
        context: Optional[AnalysisContext],
    ) -> GenerationRequest:
        config = self._registry.get_config()
        common = dict(
            json_output=True,
            model=config.ai.model,
            temperature=config.ai.temperature,
            max_output_tokens=config.ai.max_tokens,
            timeout_seconds=config.performance.timeout_seconds,
        )

        if isinstance(reference, LocalVideo):
            return GenerationRequest(
                prompt=build_extraction_prompt(context=context),
                video_bytes=reference.load_bytes(),
                video_mime_type=reference.resolved_mime_type,
                **common,
            )
        if isinstance(reference, RemoteVideo):
            url = reference.validated_url()
            return GenerationRequest(
                prompt=build_extraction_prompt(video_url=url, context=context),
                video_uri=url,
                video_mime_type=reference.mime_type,
                **common,
            )
        raise InvalidVideoInputError(
            f"Unsupported video reference type: {type(reference).__name__}"
        )
