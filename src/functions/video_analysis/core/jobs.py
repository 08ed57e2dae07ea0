"""Per-video job runner around the pipeline coordinator.

The runner owns status transitions and whole-run retries on upstream
outages. It also bounds concurrency across videos and hands results to storage.
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Union

from tenacity import AsyncRetrying, RetryCallState, retry_if_result, stop_after_attempt, wait_exponential

from src.shared.utils.logging import get_logger

from .contracts.analysis_context import AnalysisContext
from .contracts.formatted_output import ModuleKind
from .contracts.results import PipelineResult
from .contracts.video_reference import VideoReference
from .service import PipelineCoordinator

LOGGER = get_logger(__name__)


class VideoStatus(str, Enum):
    UPLOADING = "uploading"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


_ALLOWED_TRANSITIONS = {
    None: {VideoStatus.UPLOADING, VideoStatus.PROCESSING},
    VideoStatus.UPLOADING: {VideoStatus.PROCESSING, VideoStatus.FAILED},
    VideoStatus.PROCESSING: {VideoStatus.COMPLETED, VideoStatus.FAILED},
    VideoStatus.COMPLETED: {VideoStatus.PROCESSING},
    VideoStatus.FAILED: {VideoStatus.PROCESSING},
}


class AnalysisStore(Protocol):
    """Persistence collaborator for video status and analysis results."""

    def update_status(self, video_id: str, status: VideoStatus) -> None:
        ...

    def save_result(self, video_id: str, result: PipelineResult) -> None:
        ...


class InMemoryAnalysisStore:
    """Thread-safe in-process store used by the CLI and tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._status: Dict[str, VideoStatus] = {}
        self._history: Dict[str, List[VideoStatus]] = {}
        self._results: Dict[str, PipelineResult] = {}

    def update_status(self, video_id: str, status: VideoStatus) -> None:
        with self._lock:
            current = self._status.get(video_id)
            if status not in _ALLOWED_TRANSITIONS[current]:
                raise ValueError(
                    f"Invalid status transition for video {video_id}: "
                    f"{current.value if current else 'new'} -> {status.value}"
                )
            self._status[video_id] = status
            self._history.setdefault(video_id, []).append(status)

    def save_result(self, video_id: str, result: PipelineResult) -> None:
        with self._lock:
            self._results[video_id] = result

    def status(self, video_id: str) -> Optional[VideoStatus]:
        return self._status.get(video_id)

    def history(self, video_id: str) -> List[VideoStatus]:
        return list(self._history.get(video_id, []))

    def result(self, video_id: str) -> Optional[PipelineResult]:
        return self._results.get(video_id)


@dataclass(frozen=True)
class AnalysisJob:
    video_id: str
    reference: VideoReference
    enabled_modules: Optional[Sequence[Union[ModuleKind, str]]] = None
    context: Optional[AnalysisContext] = None


@dataclass
class JobOutcome:
    video_id: str
    status: VideoStatus
    attempts: int
    result: Optional[PipelineResult] = None
    error: Optional[str] = None
    modules: List[str] = field(default_factory=list)


def _extraction_retryable(result: PipelineResult) -> bool:
    failure = result.extraction_failure
    return failure is not None and failure.retryable


def _last_result(retry_state: RetryCallState) -> PipelineResult:
    return retry_state.outcome.result()


def _log_retry(retry_state: RetryCallState) -> None:
    LOGGER.warning(
        "Extraction upstream unavailable (attempt %d); retrying in %.1fs",
        retry_state.attempt_number,
        retry_state.next_action.sleep if retry_state.next_action else 0.0,
    )


class AnalysisJobRunner:
    """Processes analysis jobs and records their status in an ``AnalysisStore``."""

    def __init__(
        self,
        coordinator: PipelineCoordinator,
        store: AnalysisStore,
        *,
        backoff_seconds: float = 2.0,
        max_backoff_seconds: float = 60.0,
    ) -> None:
        self._coordinator = coordinator
        self._store = store
        self._backoff_seconds = backoff_seconds
        self._max_backoff_seconds = max_backoff_seconds

    async def process(self, job: AnalysisJob) -> JobOutcome:
        registry = self._coordinator.registry
        attempts_allowed = registry.get_performance_settings().retry_attempts + 1

        try:
            self._store.update_status(job.video_id, VideoStatus.PROCESSING)
        except Exception as exc:
            # The stored status is left as it was.
            LOGGER.error("Could not start video %s: %s", job.video_id, exc)
            return JobOutcome(video_id=job.video_id, status=VideoStatus.FAILED, attempts=0, error=str(exc))

        LOGGER.info("Processing video %s (up to %d attempts)", job.video_id, attempts_allowed)

        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts_allowed),
            wait=wait_exponential(multiplier=self._backoff_seconds, max=self._max_backoff_seconds),
            retry=retry_if_result(_extraction_retryable),
            retry_error_callback=_last_result,
            before_sleep=_log_retry,
        )

        try:
            result = await retrying(
                self._coordinator.run,
                job.reference,
                job.enabled_modules,
                context=job.context,
            )
        except Exception as exc:
            LOGGER.exception("Video %s failed unexpectedly", job.video_id)
            self._store.update_status(job.video_id, VideoStatus.FAILED)
            return JobOutcome(
                video_id=job.video_id,
                status=VideoStatus.FAILED,
                attempts=retrying.statistics.get("attempt_number", 1),
                error=str(exc),
            )

        attempts = retrying.statistics.get("attempt_number", 1)
        status = self._final_status(result)
        self._store.save_result(job.video_id, result)
        self._store.update_status(job.video_id, status)

        LOGGER.info(
            "Video %s %s after %d attempt(s); modules: %s",
            job.video_id,
            status.value,
            attempts,
            ", ".join(kind.value for kind in result.succeeded_modules) or "none",
        )
        return JobOutcome(
            video_id=job.video_id,
            status=status,
            attempts=attempts,
            result=result,
            error=result.extraction_failure.message if result.extraction_failure else None,
            modules=[kind.value for kind in result.succeeded_modules],
        )

    async def process_many(self, jobs: Iterable[AnalysisJob]) -> List[JobOutcome]:
        """Process jobs concurrently, at most ``max_concurrent_analyses`` at a time."""

        limit = self._coordinator.registry.get_performance_settings().max_concurrent_analyses
        semaphore = asyncio.Semaphore(limit)

        async def bounded(job: AnalysisJob) -> JobOutcome:
            async with semaphore:
                return await self.process(job)

        jobs = list(jobs)
        settled = await asyncio.gather(*(bounded(job) for job in jobs), return_exceptions=True)

        outcomes: List[JobOutcome] = []
        for job, outcome in zip(jobs, settled):
            if isinstance(outcome, asyncio.CancelledError):
                raise outcome
            if isinstance(outcome, BaseException):
                LOGGER.error("Video %s raised while being processed: %s", job.video_id, outcome)
                outcome = JobOutcome(video_id=job.video_id, status=VideoStatus.FAILED, attempts=0, error=str(outcome))
            outcomes.append(outcome)
        return outcomes

    @staticmethod
    def _final_status(result: PipelineResult) -> VideoStatus:
        failure = result.extraction_failure
        if failure is not None and (failure.fatal or failure.retryable):
            return VideoStatus.FAILED
        return VideoStatus.COMPLETED
