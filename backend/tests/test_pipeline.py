"""End-to-end pipeline runs with every external capability stubbed."""

from __future__ import annotations

import os

import httpx
import pytest

from models.request import GenerationRequest
from models.upload import UploadedPart, UploadSession
from services.cleanup import CleanupScheduler
from services.errors import DurationOutOfBandError, UpstreamCapabilityError
from services.image_generator import ImageSetGenerator
from services.narration_renderer import NarrationRenderer
from services.pipeline import RunPaths, VideoPipeline
from services.publisher import DurablePublisher
from services.script_synthesizer import EDGE_PAUSE, SENTENCE_PAUSE, ScriptSynthesizer
from services.video_compositor import VideoCompositor
from services.video_verifier import VideoVerifier

SCRIPT_REPLY = (
    "A playful dog trotted into the sunny backyard looking for a new friend. "
    "Under the apple tree a wary cat watched every move with bright green eyes. "
    "Slowly they touched noses and spent the whole afternoon chasing leaves together #friends"
)


class _FakeText:
    async def complete(self, prompt: str) -> str:
        return SCRIPT_REPLY


class _FakeImages:
    def __init__(self) -> None:
        self.prompts: list[str] = []

    async def generate(self, prompt: str, *, size: str, quality: str) -> str:
        self.prompts.append(prompt)
        return f"https://images.example/{len(self.prompts)}.png"


class _FakeSpeech:
    def __init__(self) -> None:
        self.texts: list[str] = []

    async def synthesize(self, text: str, *, voice: str, response_format: str) -> bytes:
        self.texts.append(text)
        return b"raw-mp3"


class _FakeMedia:
    """Audio probes at 17.0s raw / 14.9s corrected; videos probe at ``video_duration``."""

    def __init__(self, video_duration: float) -> None:
        self.video_duration = video_duration
        self._audio_probes = [17.0, 14.9, 14.9]
        self.runs: list[list[str]] = []

    async def probe_duration(self, path: str) -> float:
        if path.endswith(".mp4"):
            return self.video_duration
        return self._audio_probes.pop(0)

    async def run(self, args: list[str], *, on_progress=None) -> None:
        self.runs.append(args)
        with open(args[-1], "wb") as fh:
            fh.write(b"encoded")


class _FakeStore:
    def __init__(self) -> None:
        self.keys: list[str] = []
        self.completed: list[list[UploadedPart]] = []

    def create_multipart_upload(self, key: str, *, source_path: str, content_type: str) -> UploadSession:
        self.keys.append(key)
        return UploadSession(upload_id=f"up-{len(self.keys)}", key=key, source_path=source_path)

    def upload_part(self, session: UploadSession, part_number: int, start: int, end: int) -> UploadedPart:
        return UploadedPart(part_number, f'"{part_number}"')

    def complete_multipart_upload(self, session: UploadSession, parts: list[UploadedPart]) -> None:
        self.completed.append(parts)

    def abort_multipart_upload(self, session: UploadSession) -> None:
        pass


def _image_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, content=b"\x89PNG" + request.url.path.encode())


def _build(tmp_path, client: httpx.AsyncClient, *, video_duration: float = 10.3):
    media = _FakeMedia(video_duration)
    speech = _FakeSpeech()
    store = _FakeStore()
    static = tmp_path / "static"
    pipeline = VideoPipeline(
        script=ScriptSynthesizer(_FakeText()),
        images=ImageSetGenerator(_FakeImages()),
        narration=NarrationRenderer(speech, media),
        compositor=VideoCompositor(media, temp_dir=str(tmp_path / "temp")),
        verifier=VideoVerifier(media),
        publisher=DurablePublisher(store, public_base_url="https://storage.googleapis.com/headline-reels"),
        http_client=client,
        images_dir=str(static / "images"),
        audio_dir=str(static / "audio"),
        videos_dir=str(static / "videos"),
        cleanup=CleanupScheduler(),
    )
    return pipeline, media, speech, store


def _files_under(path) -> list[str]:
    return [os.path.join(root, name) for root, _, names in os.walk(path) for name in names]


def test_run_paths_are_unique_per_run() -> None:
    a = RunPaths("1-aa", images_dir="i", audio_dir="a", videos_dir="v")
    b = RunPaths("1-bb", images_dir="i", audio_dir="a", videos_dir="v")
    assert set(a.artifacts()).isdisjoint(b.artifacts())
    assert a.object_key == "videos/output-1-aa.mp4"
    assert [os.path.basename(p) for p in a.image_paths] == ["image_1.png", "image_2.png", "image_3.png"]


@pytest.mark.anyio
async def test_dog_meets_cat_scenario(tmp_path) -> None:
    transport = httpx.MockTransport(_image_handler)
    async with httpx.AsyncClient(transport=transport) as client:
        pipeline, media, speech, store = _build(tmp_path, client)
        request = GenerationRequest.from_payload("A dog meets a cat", 10, "nova")

        result = await pipeline.run(request)
        await pipeline.cleanup.drain()

    spoken = speech.texts[0].replace(EDGE_PAUSE, " ").replace(SENTENCE_PAUSE, " ").split()
    assert len(spoken) <= 20
    assert "#friends" not in speech.texts[0]

    # One tempo pass (17.0s raw > 15.5s) then the compositor encode.
    assert len(media.runs) == 2
    assert "atempo=1.13" in media.runs[0]
    concat_list = media.runs[1][media.runs[1].index("concat") + 4]
    assert concat_list.endswith(".txt")

    assert result.video_url.endswith(result.object_key)
    assert result.video_url == f"https://storage.googleapis.com/headline-reels/{result.object_key}"
    assert result.duration_seconds == 10
    assert result.voice == "nova"
    assert store.keys == [result.object_key]
    assert [p.part_number for p in store.completed[0]] == [1]

    assert _files_under(tmp_path / "static") == []
    assert _files_under(tmp_path / "temp") == []
    assert os.listdir(tmp_path / "static" / "images") == []


@pytest.mark.anyio
async def test_out_of_band_video_is_not_published(tmp_path) -> None:
    async with httpx.AsyncClient(transport=httpx.MockTransport(_image_handler)) as client:
        pipeline, _media, _speech, store = _build(tmp_path, client, video_duration=13.5)
        with pytest.raises(DurationOutOfBandError, match="too long"):
            await pipeline.run(GenerationRequest.from_payload("A dog meets a cat", 10, "nova"))

    assert store.keys == []
    assert _files_under(tmp_path / "static") == []
    assert os.listdir(tmp_path / "static" / "images") == []


@pytest.mark.anyio
async def test_image_download_failure_stops_before_narration(tmp_path) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        pipeline, media, speech, store = _build(tmp_path, client)
        with pytest.raises(UpstreamCapabilityError):
            await pipeline.run(GenerationRequest.from_payload("A dog meets a cat", 10, "nova"))

    assert speech.texts == []
    assert media.runs == []
    assert store.keys == []
    assert _files_under(tmp_path / "static") == []


@pytest.mark.anyio
async def test_identical_requests_produce_independent_artifacts(tmp_path) -> None:
    async with httpx.AsyncClient(transport=httpx.MockTransport(_image_handler)) as client:
        pipeline, media, _speech, store = _build(tmp_path, client)
        request = GenerationRequest.from_payload("A dog meets a cat", 10, "nova")

        first = await pipeline.run(request)
        media._audio_probes = [17.0, 14.9, 14.9]
        second = await pipeline.run(request)
        await pipeline.cleanup.drain()

    assert first.object_key != second.object_key
    assert store.keys == [first.object_key, second.object_key]
    assert first.video_url != second.video_url
