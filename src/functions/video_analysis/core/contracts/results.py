"""Result values returned by the extraction stage, formatting stage and pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import FailureKind, PipelineFailure
from .comprehensive_record import ComprehensiveRecord
from .formatted_output import FormattedOutput, ModuleKind, StatisticsPayload, TextAnalysis


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of the extraction pass.

    ``record`` is always usable: on any failure it is the empty fallback
    record, so downstream code never has to special-case a missing record.
    """

    record: ComprehensiveRecord
    failure: Optional[PipelineFailure] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def failed(cls, kind: FailureKind, message: str) -> "ExtractionResult":
        return cls(record=ComprehensiveRecord.empty(), failure=PipelineFailure(kind, message))


@dataclass(frozen=True)
class FormattingResult:
    """Outcome of a single formatting module call."""

    module: ModuleKind
    output: Optional[FormattedOutput] = None
    failure: Optional[PipelineFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None and self.output is not None

    @classmethod
    def failed(cls, module: ModuleKind, kind: FailureKind, message: str) -> "FormattingResult":
        return cls(module=module, failure=PipelineFailure(kind, message, module=module.value))

    @property
    def statistics(self) -> Optional[StatisticsPayload]:
        return self.output if isinstance(self.output, StatisticsPayload) else None

    @property
    def text(self) -> Optional[str]:
        return self.output.text if isinstance(self.output, TextAnalysis) else None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"module": self.module.value, "ok": self.ok}
        if self.output is not None:
            payload["output"] = (
                self.output.to_dict() if isinstance(self.output, StatisticsPayload) else self.output.text
            )
        if self.failure is not None:
            payload["failure"] = self.failure.to_dict()
        return payload


@dataclass
class PipelineResult:
    """Aggregated outcome of one pipeline run."""

    record: ComprehensiveRecord
    extraction_failure: Optional[PipelineFailure] = None
    modules: Dict[ModuleKind, FormattingResult] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_fatal(self) -> bool:
        return self.extraction_failure is not None and self.extraction_failure.fatal

    @property
    def succeeded_modules(self) -> List[ModuleKind]:
        return [kind for kind, result in self.modules.items() if result.ok]

    @property
    def failed_modules(self) -> List[ModuleKind]:
        return [kind for kind, result in self.modules.items() if not result.ok]

    @property
    def is_complete(self) -> bool:
        """True when extraction and every dispatched module succeeded."""

        return self.extraction_failure is None and not self.failed_modules

    def output_for(self, module: ModuleKind) -> Optional[FormattedOutput]:
        result = self.modules.get(module)
        return result.output if result is not None else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "record": self.record.to_dict(),
            "extraction_failure": (
                self.extraction_failure.to_dict() if self.extraction_failure else None
            ),
            "modules": {kind.value: result.to_dict() for kind, result in self.modules.items()},
            "warnings": list(self.warnings),
        }
