"""Formatting pass: turns the Comprehensive Record into one module's analysis."""

from __future__ import annotations

from src.shared.utils.logging import get_logger

from ..contracts.comprehensive_record import ComprehensiveRecord
from ..contracts.formatted_output import ModuleKind, TextAnalysis
from ..contracts.results import FormattingResult
from ..errors import FailureKind, GeminiClientError
from ..llm import GenerationRequest, VideoModelClient
from ..prompts import build_formatting_prompt
from ..registry import AnalysisConfigRegistry
from .response_parser import describe, parse_statistics

LOGGER = get_logger(__name__)


class FormattingStage:
    """Runs one formatting module against a record.

    Calls are independent: nothing is cached or shared between them apart
    from the registry snapshot read at the start of each call.
    """

    def __init__(self, client: VideoModelClient, registry: AnalysisConfigRegistry) -> None:
        self._client = client
        self._registry = registry

    async def format(self, record: ComprehensiveRecord, module: ModuleKind) -> FormattingResult:
        module = ModuleKind.parse(module)
        request = self.build_request(record, module)

        LOGGER.info("Formatting %s analysis", module.value)
        try:
            raw_text = await self._client.generate(request)
        except GeminiClientError as exc:
            LOGGER.warning("Formatting %s failed upstream: %s", module.value, exc)
            return FormattingResult.failed(module, FailureKind.UPSTREAM_UNAVAILABLE, str(exc))

        if module.returns_json:
            parsed = parse_statistics(raw_text)
            if not parsed.ok or parsed.value is None:
                LOGGER.warning(
                    "Formatting %s returned malformed JSON (%s): %s",
                    module.value,
                    parsed.error,
                    describe(raw_text or ""),
                )
                return FormattingResult.failed(
                    module,
                    FailureKind.MALFORMED_FORMATTING,
                    parsed.error or "unparseable statistics response",
                )
            return FormattingResult(module=module, output=parsed.value)

        if not raw_text or not raw_text.strip():
            LOGGER.warning("Formatting %s returned an empty response", module.value)
            return FormattingResult.failed(
                module,
                FailureKind.MALFORMED_FORMATTING,
                "empty response",
            )
        return FormattingResult(module=module, output=TextAnalysis(module=module, text=raw_text))

    def build_request(self, record: ComprehensiveRecord, module: ModuleKind) -> GenerationRequest:
        config = self._registry.get_config()
        prompt = build_formatting_prompt(
            record.to_prompt_json(),
            module,
            module_config=config.modules.get(module),
            ai=config.ai,
            output=config.output,
        )
        return GenerationRequest(
            prompt=prompt,
            json_output=module.returns_json,
            model=config.ai.model,
            temperature=config.ai.temperature,
            max_output_tokens=config.ai.max_tokens,
            timeout_seconds=config.performance.timeout_seconds,
        )
