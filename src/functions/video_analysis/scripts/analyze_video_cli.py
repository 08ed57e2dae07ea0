"""Command-line tool for running the two-phase video analysis pipeline."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

PROJECT_ROOT = Path(__file__).resolve().parents[4]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from src.shared.utils.env import load_env
from src.shared.utils.logging import get_logger, setup_logging

from src.functions.video_analysis.core.contracts import ModuleKind
from src.functions.video_analysis.core.errors import InvalidVideoInputError
from src.functions.video_analysis.core.factory import (
    build_coordinator,
    context_from_payload,
    reference_from_payload,
    registry_from_env,
)
from src.functions.video_analysis.core.jobs import (
    AnalysisJob,
    AnalysisJobRunner,
    InMemoryAnalysisStore,
    VideoStatus,
)
from src.functions.video_analysis.core.registry import PRESETS

LOGGER = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Analyze a lacrosse video: extract once, then format per module.",
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--file", type=Path, help="Local video file to analyze.")
    source.add_argument("--url", help="Public video URL (e.g. a YouTube link) to analyze.")

    parser.add_argument(
        "--mime-type",
        help="Override the detected MIME type of the video.",
    )
    parser.add_argument(
        "--modules",
        help=(
            "Comma-separated modules to run "
            f"({', '.join(kind.value for kind in ModuleKind)}). Defaults to the enabled set."
        ),
    )
    parser.add_argument(
        "--preset",
        choices=PRESETS,
        help="Apply a named configuration preset before running.",
    )
    parser.add_argument("--model", help="Override the Gemini model for both phases.")
    parser.add_argument(
        "--timeout-seconds",
        type=int,
        help="Per-call timeout for upstream requests.",
    )
    parser.add_argument(
        "--retry-attempts",
        type=int,
        help="Whole-run retries when the extraction upstream is unavailable.",
    )
    parser.add_argument(
        "--level",
        help="Competition level hint (youth, high_school, college, professional).",
    )
    parser.add_argument("--player-number", help="Jersey number of the player to focus on.")
    parser.add_argument("--team-color", help="Jersey color of the team to focus on.")
    parser.add_argument("--position", help="Position of the player to focus on.")
    parser.add_argument("--prompt", help="Free-form request from the uploader.")
    parser.add_argument(
        "--video-id",
        default="cli",
        help="Identifier used for status tracking (default: cli).",
    )

    parser.add_argument(
        "--env-file",
        type=Path,
        help="Optional .env file to load before running.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level for the CLI (default: INFO).",
    )
    parser.add_argument(
        "--no-timestamp",
        action="store_true",
        help="Disable timestamps in log output.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Write the result JSON to this file instead of stdout.",
    )
    parser.add_argument(
        "--compact",
        action="store_true",
        help="Emit compact JSON without indentation.",
    )
    parser.add_argument(
        "--include-record",
        action="store_true",
        help="Include the extracted record in the output.",
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(level=args.log_level, include_timestamp=not args.no_timestamp)

    if args.env_file:
        load_env(str(args.env_file))
    else:
        load_env()

    try:
        reference = reference_from_payload(_source_payload(args))
        context = context_from_payload(_context_payload(args))
        modules = _parse_modules(args.modules)
    except (InvalidVideoInputError, ValueError) as exc:
        parser.error(str(exc))

    try:
        registry = registry_from_env(args.preset)
        overrides = _performance_overrides(args, registry)
        if overrides:
            registry.update_config({"performance": overrides})
        if args.model:
            ai = registry.get_ai_settings()
            registry.update_config(
                {
                    "ai": {
                        "model": args.model,
                        "temperature": ai.temperature,
                        "max_tokens": ai.max_tokens,
                        "multi_pass": ai.multi_pass,
                        "pass_count": ai.pass_count,
                    }
                }
            )
        coordinator = build_coordinator(
            registry=registry,
            llm_overrides=_llm_overrides(args),
        )
    except ValueError as exc:
        parser.error(str(exc))

    store = InMemoryAnalysisStore()
    runner = AnalysisJobRunner(coordinator, store)
    job = AnalysisJob(
        video_id=args.video_id,
        reference=reference,
        enabled_modules=modules,
        context=None if context.is_empty else context,
    )

    LOGGER.info("Analyzing %s", reference.describe())
    outcome = asyncio.run(runner.process(job))

    report: Dict[str, Any] = {
        "video_id": outcome.video_id,
        "status": outcome.status.value,
        "attempts": outcome.attempts,
        "status_history": [status.value for status in store.history(outcome.video_id)],
    }
    if outcome.error:
        report["error"] = outcome.error
    if outcome.result is not None:
        payload = outcome.result.to_dict()
        if not args.include_record:
            payload.pop("record", None)
        report["result"] = payload

    _emit_output(report, args)
    return 0 if outcome.status is VideoStatus.COMPLETED else 1


def _source_payload(args: argparse.Namespace) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    if args.file:
        payload["file_path"] = str(args.file)
    if args.url:
        payload["url"] = args.url
    if args.mime_type:
        payload["mime_type"] = args.mime_type
    return payload


def _context_payload(args: argparse.Namespace) -> Dict[str, Any]:
    return {
        "competition_level": args.level,
        "player_number": args.player_number,
        "team_color": args.team_color,
        "position": args.position,
        "user_prompt": args.prompt,
    }


def _parse_modules(raw: Optional[str]) -> Optional[List[ModuleKind]]:
    if not raw:
        return None
    modules = [ModuleKind.parse(item) for item in raw.split(",") if item.strip()]
    if not modules:
        raise ValueError("--modules must name at least one module")
    return modules


def _performance_overrides(args: argparse.Namespace, registry) -> Dict[str, Any]:
    if args.timeout_seconds is None and args.retry_attempts is None:
        return {}
    current = registry.get_performance_settings()
    return {
        "max_concurrent_analyses": current.max_concurrent_analyses,
        "timeout_seconds": (
            args.timeout_seconds if args.timeout_seconds is not None else current.timeout_seconds
        ),
        "retry_attempts": (
            args.retry_attempts if args.retry_attempts is not None else current.retry_attempts
        ),
    }


def _llm_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if args.model:
        overrides["model"] = args.model
    if args.timeout_seconds is not None:
        overrides["timeout_seconds"] = args.timeout_seconds
    return overrides


def _emit_output(report: Dict[str, Any], args: argparse.Namespace) -> None:
    indent = None if args.compact else 2
    report_json = json.dumps(report, indent=indent, ensure_ascii=False)

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(report_json + "\n", encoding="utf-8")
        print(f"Result written to {args.output}", file=sys.stderr)
    else:
        print(report_json)


def run() -> None:
    raise SystemExit(main())


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    run()
