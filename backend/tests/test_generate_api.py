"""HTTP front door: validation, rate limiting, pipeline results and error mapping."""

from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from models.media import PipelineResult
from services.errors import DurationOutOfBandError
from services.rate_limiter import RateLimiter
from services.settings import Settings

VALID_BODY = {"headline": "A dog meets a cat", "target_duration": 10, "voice_type": "nova"}


class _StubPipeline:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.requests = []

    async def run(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        key = f"videos/output-{len(self.requests)}.mp4"
        return PipelineResult(
            video_url=f"https://storage.googleapis.com/headline-reels/{key}",
            object_key=key,
            duration_seconds=request.target_duration_seconds,
            voice=request.voice.value,
        )


def _client(pipeline: _StubPipeline, rate_limiter: RateLimiter | None = None) -> httpx.AsyncClient:
    app = create_app(settings=Settings(), pipeline=pipeline, rate_limiter=rate_limiter)
    return httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")


@pytest.mark.anyio
async def test_health() -> None:
    async with _client(_StubPipeline()) as client:
        response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.anyio
async def test_generate_success() -> None:
    pipeline = _StubPipeline()
    async with _client(pipeline) as client:
        response = await client.post("/generate", json=VALID_BODY)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "Video generated successfully"
    assert data["video_url"].endswith("videos/output-1.mp4")
    assert data["duration"] == 10
    assert data["voice_type"] == "nova"
    assert pipeline.requests[0].headline == "A dog meets a cat"


@pytest.mark.anyio
async def test_numeric_string_duration_is_accepted() -> None:
    pipeline = _StubPipeline()
    async with _client(pipeline) as client:
        response = await client.post("/generate", json={**VALID_BODY, "target_duration": "15"})
    assert response.status_code == 200
    assert response.json()["duration"] == 15


@pytest.mark.anyio
async def test_duration_below_range_rejected_without_running_pipeline() -> None:
    pipeline = _StubPipeline()
    async with _client(pipeline) as client:
        response = await client.post("/generate", json={**VALID_BODY, "target_duration": 3})

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "error": "Target duration must be between 5 and 60 seconds",
    }
    assert pipeline.requests == []


@pytest.mark.anyio
@pytest.mark.parametrize("missing", ["headline", "target_duration", "voice_type"])
async def test_missing_field_rejected(missing: str) -> None:
    body = {k: v for k, v in VALID_BODY.items() if k != missing}
    async with _client(_StubPipeline()) as client:
        response = await client.post("/generate", json=body)
    assert response.status_code == 400
    assert response.json()["error"] == "Headline, target_duration, and voice_type are required"


@pytest.mark.anyio
async def test_unknown_voice_rejected() -> None:
    async with _client(_StubPipeline()) as client:
        response = await client.post("/generate", json={**VALID_BODY, "voice_type": "robot"})
    assert response.status_code == 400
    assert response.json()["error"] == "Voice type must be one of: alloy, echo, fable, onyx, nova, shimmer"


@pytest.mark.anyio
async def test_malformed_body_gets_uniform_400() -> None:
    async with _client(_StubPipeline()) as client:
        response = await client.post(
            "/generate", content=b"{not json", headers={"Content-Type": "application/json"}
        )
    assert response.status_code == 400
    assert response.json()["success"] is False


@pytest.mark.anyio
async def test_fourth_request_in_window_is_rate_limited() -> None:
    pipeline = _StubPipeline()
    async with _client(pipeline, RateLimiter(window_seconds=3600, max_requests=3)) as client:
        statuses = [(await client.post("/generate", json=VALID_BODY)).status_code for _ in range(3)]
        limited = await client.post("/generate", json=VALID_BODY)

    assert statuses == [200, 200, 200]
    assert limited.status_code == 429
    assert limited.json()["success"] is False
    assert "minutes" in limited.json()["error"]
    assert len(pipeline.requests) == 3


@pytest.mark.anyio
async def test_invalid_requests_do_not_consume_rate_limit() -> None:
    pipeline = _StubPipeline()
    async with _client(pipeline, RateLimiter(window_seconds=3600, max_requests=1)) as client:
        rejected = await client.post("/generate", json={**VALID_BODY, "target_duration": 61})
        accepted = await client.post("/generate", json=VALID_BODY)
    assert rejected.status_code == 400
    assert accepted.status_code == 200


@pytest.mark.anyio
async def test_pipeline_failure_maps_to_500() -> None:
    error = DurationOutOfBandError("Video is too long (13.5s vs target 10s)", measured=13.5, target=10)
    async with _client(_StubPipeline(error)) as client:
        response = await client.post("/generate", json=VALID_BODY)
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Video is too long (13.5s vs target 10s)"}


@pytest.mark.anyio
async def test_pipeline_failure_without_message_uses_generic_error() -> None:
    async with _client(_StubPipeline(RuntimeError())) as client:
        response = await client.post("/generate", json=VALID_BODY)
    assert response.status_code == 500
    assert response.json()["error"] == "An error occurred during video generation"


def test_startup_without_openai_key_fails() -> None:
    app = create_app(settings=Settings(openai_api_key=None))
    with pytest.raises(RuntimeError, match="OPENAI_API_KEY"):
        with TestClient(app):
            pass


def test_injected_pipeline_needs_no_credentials() -> None:
    app = create_app(settings=Settings(openai_api_key=None), pipeline=_StubPipeline())
    with TestClient(app) as client:
        response = client.post("/generate", json=VALID_BODY)
    assert response.status_code == 200


@pytest.mark.anyio
async def test_fractional_duration_is_truncated() -> None:
    pipeline = _StubPipeline()
    async with _client(pipeline) as client:
        response = await client.post("/generate", json={**VALID_BODY, "target_duration": 10.7})

    assert response.status_code == 200
    assert response.json()["duration"] == 10
    assert pipeline.requests[0].target_duration_seconds == 10


@pytest.mark.anyio
async def test_fractional_duration_below_range_gets_duration_error() -> None:
    pipeline = _StubPipeline()
    async with _client(pipeline) as client:
        response = await client.post("/generate", json={**VALID_BODY, "target_duration": 4.9})

    assert response.status_code == 400
    assert response.json()["error"] == "Target duration must be between 5 and 60 seconds"
    assert pipeline.requests == []
