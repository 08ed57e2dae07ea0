"""Two-phase video analysis: extraction, formatting, coordination, configuration."""

from .contracts import (
    ComprehensiveRecord,
    ExtractionResult,
    FormattingResult,
    LocalVideo,
    ModuleKind,
    PipelineResult,
    RemoteVideo,
    StatisticsPayload,
    TextAnalysis,
)
from .errors import FailureKind, PipelineFailure
from .registry import AnalysisConfigRegistry, AnalysisConfiguration
from .service import PipelineCoordinator

__all__ = [
    "ComprehensiveRecord",
    "ExtractionResult",
    "FormattingResult",
    "LocalVideo",
    "ModuleKind",
    "PipelineResult",
    "RemoteVideo",
    "StatisticsPayload",
    "TextAnalysis",
    "FailureKind",
    "PipelineFailure",
    "AnalysisConfigRegistry",
    "AnalysisConfiguration",
    "PipelineCoordinator",
]
