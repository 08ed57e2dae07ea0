"""Contracts for the video analysis pipeline."""

from .analysis_context import AnalysisContext
from .comprehensive_record import (
    ComprehensiveRecord,
    Participant,
    Play,
    PlayerPerformance,
    TeamRecord,
    VideoMetadata,
)
from .formatted_output import (
    FormattedOutput,
    ModuleKind,
    PlayerStatLine,
    StatisticsPayload,
    TeamStatLine,
    TextAnalysis,
)
from .results import ExtractionResult, FormattingResult, PipelineResult
from .video_reference import LocalVideo, RemoteVideo, VideoReference

__all__ = [
    "AnalysisContext",
    "ComprehensiveRecord",
    "Participant",
    "Play",
    "PlayerPerformance",
    "TeamRecord",
    "VideoMetadata",
    "FormattedOutput",
    "ModuleKind",
    "PlayerStatLine",
    "StatisticsPayload",
    "TeamStatLine",
    "TextAnalysis",
    "ExtractionResult",
    "FormattingResult",
    "PipelineResult",
    "LocalVideo",
    "RemoteVideo",
    "VideoReference",
]
