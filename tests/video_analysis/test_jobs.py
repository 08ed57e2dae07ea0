import asyncio
from typing import List

import pytest

from src.functions.video_analysis.core import FailureKind, LocalVideo, ModuleKind, PipelineCoordinator
from src.functions.video_analysis.core.errors import UpstreamUnavailableError
from src.functions.video_analysis.core.jobs import (
    AnalysisJob,
    AnalysisJobRunner,
    InMemoryAnalysisStore,
    VideoStatus,
)
from src.functions.video_analysis.core.registry import AnalysisConfigRegistry
from tests.video_analysis.fixtures import SAMPLE_RECORD_JSON, FakeVideoModelClient

VIDEO = LocalVideo(data=b"\x00\x00\x00\x18ftypmp42", mime_type="video/mp4")


def _runner(client, registry=None, store=None):
    coordinator = PipelineCoordinator(client, registry)
    store = store or InMemoryAnalysisStore()
    return AnalysisJobRunner(coordinator, store, backoff_seconds=0), store


def test_successful_job_is_completed_and_stored():
    runner, store = _runner(FakeVideoModelClient())

    outcome = asyncio.run(runner.process(AnalysisJob("video-1", VIDEO, [ModuleKind.STATISTICS])))

    assert outcome.status is VideoStatus.COMPLETED
    assert outcome.attempts == 1
    assert outcome.error is None
    assert outcome.modules == ["statistics"]
    assert store.history("video-1") == [VideoStatus.PROCESSING, VideoStatus.COMPLETED]
    assert store.result("video-1") is outcome.result


def test_upstream_outage_retries_whole_run():
    client = FakeVideoModelClient(
        extraction=[UpstreamUnavailableError("503 UNAVAILABLE"), SAMPLE_RECORD_JSON]
    )
    runner, store = _runner(client)

    outcome = asyncio.run(runner.process(AnalysisJob("video-2", VIDEO, ["highlights"])))

    assert outcome.status is VideoStatus.COMPLETED
    assert outcome.attempts == 2
    assert len(client.extraction_requests) == 2
    assert client.formatted_modules() == [ModuleKind.HIGHLIGHTS, ModuleKind.HIGHLIGHTS]
    assert store.result("video-2").extraction_failure is None


def test_retries_stop_at_configured_attempts():
    registry = AnalysisConfigRegistry()
    registry.update_config({"performance": {"retryAttempts": 1}})
    client = FakeVideoModelClient(extraction=UpstreamUnavailableError("deadline exceeded"))
    runner, store = _runner(client, registry=registry)

    outcome = asyncio.run(runner.process(AnalysisJob("video-3", VIDEO, [])))

    assert outcome.status is VideoStatus.FAILED
    assert outcome.attempts == 2
    assert "deadline exceeded" in outcome.error
    assert len(client.extraction_requests) == 2
    assert store.status("video-3") is VideoStatus.FAILED
    assert store.result("video-3").extraction_failure.kind is FailureKind.UPSTREAM_UNAVAILABLE


def test_invalid_input_fails_without_retry(tmp_path):
    client = FakeVideoModelClient()
    runner, store = _runner(client)

    outcome = asyncio.run(
        runner.process(AnalysisJob("video-4", LocalVideo.from_path(tmp_path / "gone.mp4")))
    )

    assert outcome.status is VideoStatus.FAILED
    assert outcome.attempts == 1
    assert client.requests == []
    assert store.history("video-4") == [VideoStatus.PROCESSING, VideoStatus.FAILED]


def test_malformed_extraction_completes_without_retry():
    client = FakeVideoModelClient(extraction="no json here")
    runner, _ = _runner(client)

    outcome = asyncio.run(runner.process(AnalysisJob("video-5", VIDEO, [ModuleKind.TACTICAL])))

    assert outcome.status is VideoStatus.COMPLETED
    assert outcome.attempts == 1
    assert outcome.result.extraction_failure.kind is FailureKind.MALFORMED_EXTRACTION
    assert not outcome.result.extraction_failure.retryable
    assert outcome.modules == ["tactical"]


def test_failed_video_can_be_reprocessed():
    store = InMemoryAnalysisStore()
    failing, _ = _runner(FakeVideoModelClient(extraction=UpstreamUnavailableError("down")), store=store)
    healthy, _ = _runner(FakeVideoModelClient(), store=store)

    asyncio.run(failing.process(AnalysisJob("video-6", VIDEO, [])))
    outcome = asyncio.run(healthy.process(AnalysisJob("video-6", VIDEO, [])))

    assert outcome.status is VideoStatus.COMPLETED
    assert store.history("video-6") == [
        VideoStatus.PROCESSING,
        VideoStatus.FAILED,
        VideoStatus.PROCESSING,
        VideoStatus.COMPLETED,
    ]


def test_store_rejects_invalid_transitions():
    store = InMemoryAnalysisStore()
    store.update_status("video-7", VideoStatus.UPLOADING)

    with pytest.raises(ValueError):
        store.update_status("video-7", VideoStatus.COMPLETED)

    assert store.status("video-7") is VideoStatus.UPLOADING


class CountingClient(FakeVideoModelClient):
    def __init__(self):
        super().__init__()
        self.active = 0
        self.peak = 0

    async def generate(self, request):
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await asyncio.sleep(0.01)
            return await super().generate(request)
        finally:
            self.active -= 1


def test_process_many_respects_concurrency_limit():
    registry = AnalysisConfigRegistry()
    registry.update_config({"performance": {"maxConcurrentAnalyses": 2}})
    client = CountingClient()
    runner, store = _runner(client, registry=registry)
    jobs: List[AnalysisJob] = [AnalysisJob(f"video-{index}", VIDEO, []) for index in range(5)]

    outcomes = asyncio.run(runner.process_many(jobs))

    assert [outcome.video_id for outcome in outcomes] == [job.video_id for job in jobs]
    assert all(outcome.status is VideoStatus.COMPLETED for outcome in outcomes)
    assert client.peak <= 2
    assert len(client.extraction_requests) == 5


def test_rejected_start_fails_one_job_and_keeps_the_batch():
    client = FakeVideoModelClient()
    runner, store = _runner(client)
    jobs = [
        AnalysisJob("video-1", VIDEO, ["highlights"]),
        AnalysisJob("video-1", VIDEO, ["highlights"]),
        AnalysisJob("video-2", VIDEO, ["highlights"]),
    ]

    outcomes = asyncio.run(runner.process_many(jobs))

    assert [outcome.video_id for outcome in outcomes] == ["video-1", "video-1", "video-2"]
    assert [outcome.status for outcome in outcomes] == [
        VideoStatus.COMPLETED,
        VideoStatus.FAILED,
        VideoStatus.COMPLETED,
    ]
    duplicate = outcomes[1]
    assert duplicate.attempts == 0
    assert duplicate.result is None
    assert "processing -> processing" in duplicate.error
    assert store.history("video-1") == [VideoStatus.PROCESSING, VideoStatus.COMPLETED]
    assert len(client.extraction_requests) == 2


class BrokenStore(InMemoryAnalysisStore):
    def save_result(self, video_id, result):
        raise OSError("disk full")


def test_store_error_becomes_failed_outcome():
    runner, store = _runner(FakeVideoModelClient(), store=BrokenStore())

    outcomes = asyncio.run(
        runner.process_many([AnalysisJob("video-8", VIDEO, []), AnalysisJob("video-9", VIDEO, [])])
    )

    assert [outcome.status for outcome in outcomes] == [VideoStatus.FAILED, VideoStatus.FAILED]
    assert all(outcome.error == "disk full" for outcome in outcomes)
    assert store.status("video-8") is VideoStatus.PROCESSING
