"""Two-phase video analysis orchestration service."""

from __future__ import annotations

import asyncio
import time
from typing import Dict, Iterable, List, Optional, Union

from src.shared.utils.logging import get_logger

from .contracts.analysis_context import AnalysisContext
from .contracts.comprehensive_record import ComprehensiveRecord
from .contracts.formatted_output import ModuleKind
from .contracts.results import FormattingResult, PipelineResult
from .contracts.video_reference import VideoReference
from .errors import FailureKind
from .llm import VideoModelClient
from .processors import ExtractionStage, FormattingStage
from .registry import AnalysisConfigRegistry


class PipelineCoordinator:
    """Runs extraction once, then every enabled formatting module concurrently.

    The coordinator holds no per-run state and never retries; a job runner
    may call ``run`` again for the same video.
    """

    def __init__(
        self,
        client: VideoModelClient,
        registry: Optional[AnalysisConfigRegistry] = None,
        *,
        extraction_stage: Optional[ExtractionStage] = None,
        formatting_stage: Optional[FormattingStage] = None,
    ) -> None:
        self._registry = registry or AnalysisConfigRegistry()
        self._extraction = extraction_stage or ExtractionStage(client, self._registry)
        self._formatting = formatting_stage or FormattingStage(client, self._registry)
        self._logger = get_logger(__name__)

    @property
    def registry(self) -> AnalysisConfigRegistry:
        return self._registry

    async def run(
        self,
        reference: VideoReference,
        enabled_modules: Optional[Iterable[Union[ModuleKind, str]]] = None,
        *,
        context: Optional[AnalysisContext] = None,
    ) -> PipelineResult:
        start_time = time.perf_counter()
        modules = self._resolve_modules(enabled_modules)

        extraction = await self._extraction.extract(reference, context=context)
        result = PipelineResult(
            record=extraction.record,
            extraction_failure=extraction.failure,
            warnings=list(extraction.warnings),
        )

        if extraction.failure is not None and extraction.failure.fatal:
            self._logger.warning(
                "Pipeline aborted before formatting: %s", extraction.failure.message
            )
            return result

        if extraction.failure is not None:
            self._logger.info(
                "Extraction degraded (%s); formatting the fallback record anyway",
                extraction.failure.kind.value,
            )

        result.modules = await self._format_all(extraction.record, modules)

        self._logger.info(
            "Pipeline finished in %dms: %d/%d modules succeeded",
            int((time.perf_counter() - start_time) * 1000),
            len(result.succeeded_modules),
            len(modules),
        )
        return result

    def run_sync(
        self,
        reference: VideoReference,
        enabled_modules: Optional[Iterable[Union[ModuleKind, str]]] = None,
        *,
        context: Optional[AnalysisContext] = None,
    ) -> PipelineResult:
        """Blocking wrapper for scripts that are not already inside an event loop."""

        return asyncio.run(self.run(reference, enabled_modules, context=context))

    def _resolve_modules(
        self,
        enabled_modules: Optional[Iterable[Union[ModuleKind, str]]],
    ) -> List[ModuleKind]:
        if enabled_modules is None:
            return self._registry.get_enabled_modules()
        resolved: List[ModuleKind] = []
        for module in enabled_modules:
            kind = ModuleKind.parse(module)
            if kind not in resolved:
                resolved.append(kind)
        return resolved

    async def _format_all(
        self,
        record: ComprehensiveRecord,
        modules: List[ModuleKind],
    ) -> Dict[ModuleKind, FormattingResult]:
        if not modules:
            return {}

        settled = await asyncio.gather(
            *(self._formatting.format(record, module) for module in modules),
            return_exceptions=True,
        )

        results: Dict[ModuleKind, FormattingResult] = {}
        for module, outcome in zip(modules, settled):
            if isinstance(outcome, FormattingResult):
                results[module] = outcome
                continue
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            self._logger.error(
                "%s formatting failed unexpectedly", module.value, exc_info=outcome
            )
            results[module] = FormattingResult.failed(
                module,
                FailureKind.MALFORMED_FORMATTING,
                f"Formatting failed due to internal error: {outcome}",
            )
        return results
