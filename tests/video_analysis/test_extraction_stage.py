import asyncio
import json

from src.functions.video_analysis.core.contracts import AnalysisContext, LocalVideo, RemoteVideo
from src.functions.video_analysis.core.errors import FailureKind, UpstreamUnavailableError
from src.functions.video_analysis.core.processors import ExtractionStage
from src.functions.video_analysis.core.prompts import EXTRACTION_PROMPT
from src.functions.video_analysis.core.registry import AnalysisConfigRegistry
from tests.video_analysis.fixtures import SAMPLE_RECORD, YOUTUBE_URL, FakeVideoModelClient

VIDEO = LocalVideo(data=b"\x00\x00\x00\x18ftypmp42", mime_type="video/mp4")


def _extract(client, reference=VIDEO, registry=None, **kwargs):
    stage = ExtractionStage(client, registry or AnalysisConfigRegistry())
    return asyncio.run(stage.extract(reference, **kwargs))


def test_extracts_record_from_inline_video():
    client = FakeVideoModelClient()

    result = _extract(client)

    assert result.ok
    assert result.warnings == []
    assert result.record.plays[0].result == "goal"
    assert len(client.requests) == 1
    request = client.requests[0]
    assert request.video_bytes == VIDEO.data
    assert request.video_uri is None
    assert request.video_mime_type == "video/mp4"
    assert request.json_output is True
    assert request.model == "gemini-2.5-pro"
    assert request.timeout_seconds == 300
    assert request.prompt == EXTRACTION_PROMPT


def test_request_follows_registry_settings():
    registry = AnalysisConfigRegistry()
    registry.update_config(
        {
            "ai": {"model": "gemini-2.5-flash", "temperature": 0.1, "maxTokens": 4000},
            "performance": {"timeoutSeconds": 90},
        }
    )
    client = FakeVideoModelClient()

    _extract(client, registry=registry)

    request = client.requests[0]
    assert request.model == "gemini-2.5-flash"
    assert request.temperature == 0.1
    assert request.max_output_tokens == 4000
    assert request.timeout_seconds == 90


def test_malformed_response_falls_back_to_empty_record():
    client = FakeVideoModelClient(extraction="not json")

    result = _extract(client)

    assert result.failure.kind is FailureKind.MALFORMED_EXTRACTION
    assert not result.failure.fatal
    assert result.record.is_empty
    assert len(result.record.teams) == 2
    assert all(team.jersey_color == "unknown" for team in result.record.teams)


def test_wrong_shape_is_malformed_not_an_exception():
    client = FakeVideoModelClient(extraction=json.dumps({"plays": [{"ballMovement": "lots"}], "teams": 3}))

    result = _extract(client)

    assert result.ok
    assert result.record.plays[0].ball_movement == []
    assert len(result.record.teams) == 2


def test_unreadable_path_is_invalid_input_without_upstream_call(tmp_path):
    client = FakeVideoModelClient()

    result = _extract(client, reference=LocalVideo.from_path(tmp_path / "missing.mp4"))

    assert result.failure.kind is FailureKind.INVALID_INPUT
    assert result.failure.fatal
    assert client.requests == []


def test_empty_and_non_video_inputs_are_invalid(tmp_path):
    empty = tmp_path / "empty.mp4"
    empty.write_bytes(b"")
    notes = tmp_path / "notes.txt"
    notes.write_text("scouting notes", encoding="utf-8")
    client = FakeVideoModelClient()

    for reference in (
        LocalVideo.from_path(empty),
        LocalVideo.from_path(notes),
        LocalVideo(),
        RemoteVideo(url="ftp://example.com/game.mp4"),
        RemoteVideo(url="   "),
    ):
        result = _extract(client, reference=reference)
        assert result.failure.kind is FailureKind.INVALID_INPUT

    assert client.requests == []


def test_local_file_mime_type_is_guessed(tmp_path):
    clip = tmp_path / "clip.mov"
    clip.write_bytes(b"moov")
    client = FakeVideoModelClient()

    result = _extract(client, reference=LocalVideo.from_path(clip))

    assert result.ok
    assert client.requests[0].video_mime_type == "video/quicktime"
    assert client.requests[0].video_bytes == b"moov"


def test_remote_video_is_pinned_in_prompt():
    client = FakeVideoModelClient()

    result = _extract(client, reference=RemoteVideo(url=f"  {YOUTUBE_URL} "))

    assert result.ok
    request = client.requests[0]
    assert request.video_uri == YOUTUBE_URL
    assert request.video_bytes is None
    assert f"IMPORTANT: You are analyzing THIS specific video: {YOUTUBE_URL}" in request.prompt


def test_context_hints_are_added_to_prompt():
    client = FakeVideoModelClient()
    context = AnalysisContext(competition_level="High School", player_number="#23", team_color="white")

    _extract(client, context=context)

    prompt = client.requests[0].prompt
    assert "VIEWER HINTS" in prompt
    assert "Stated competition level: high_school" in prompt
    assert "Focus player: jersey #23" in prompt
    assert "Focus team: white" in prompt


def test_empty_context_adds_nothing():
    client = FakeVideoModelClient()

    _extract(client, context=AnalysisContext())

    assert "VIEWER HINTS" not in client.requests[0].prompt


def test_upstream_failure_is_reported_as_unavailable():
    client = FakeVideoModelClient(extraction=UpstreamUnavailableError("Gemini request timed out after 300s"))

    result = _extract(client)

    assert result.failure.kind is FailureKind.UPSTREAM_UNAVAILABLE
    assert result.failure.retryable
    assert "timed out" in result.failure.message
    assert result.record.is_empty


def test_out_of_range_timestamps_become_warnings():
    payload = dict(SAMPLE_RECORD)
    payload["videoMetadata"] = dict(SAMPLE_RECORD["videoMetadata"], duration=12)
    client = FakeVideoModelClient(extraction=json.dumps(payload))

    result = _extract(client)

    assert result.ok
    assert result.record.plays[0].end_time == 14
    assert any("play 1 end at 14s" in warning for warning in result.warnings)
    assert any("scoring event at 13s" in warning for warning in result.warnings)
