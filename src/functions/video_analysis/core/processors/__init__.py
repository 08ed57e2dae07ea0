"""Processing stages for the video analysis pipeline."""

from .extractor import ExtractionStage
from .formatter import FormattingStage
from .response_parser import ParseOutcome, parse_json_object, parse_record, parse_statistics

__all__ = [
    "ExtractionStage",
    "FormattingStage",
    "ParseOutcome",
    "parse_json_object",
    "parse_record",
    "parse_statistics",
]
