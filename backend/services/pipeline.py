"""
Generation pipeline: headline -> script -> images -> narration -> video -> verify -> publish.

Stages run strictly in order and each receives its capability dependencies through
its constructor. Any stage failure removes the run's local files and propagates.
"""

from __future__ import annotations

import asyncio
import logging
import os
import secrets
import time

import httpx
from openai import AsyncOpenAI

from models.media import PipelineResult
from models.request import GenerationRequest
from services.capabilities import ObjectStore
from services.cleanup import CleanupScheduler, remove_artifacts
from services.gcs import GcsMultipartStore
from services.image_generator import IMAGE_COUNT, ImageSetGenerator, download_images
from services.media import FFmpegToolkit
from services.narration_renderer import NarrationRenderer
from services.openai_clients import OpenAIImageGenerator, OpenAISpeechSynthesizer, OpenAITextGenerator
from services.publisher import DurablePublisher
from services.script_synthesizer import ScriptSynthesizer
from services.settings import Settings
from services.video_compositor import VideoCompositor
from services.video_verifier import VideoVerifier

logger = logging.getLogger(__name__)


def new_run_id() -> str:
    """Millisecond timestamp plus a random suffix; unique across concurrent runs."""
    return f"{int(time.time() * 1000)}-{secrets.token_hex(3)}"


class RunPaths:
    """Every local path and the object key one run may create."""

    def __init__(self, run_id: str, *, images_dir: str, audio_dir: str, videos_dir: str) -> None:
        self.run_id = run_id
        self.image_dir = os.path.join(images_dir, run_id)
        self.image_paths = [os.path.join(self.image_dir, f"image_{n}.png") for n in range(1, IMAGE_COUNT + 1)]
        self.audio_path = os.path.join(audio_dir, f"audio_{run_id}.mp3")
        self.video_path = os.path.join(videos_dir, f"output_{run_id}.mp4")
        self.object_key = f"videos/output-{run_id}.mp4"

    def artifacts(self) -> tuple[str, ...]:
        return (*self.image_paths, self.audio_path, self.video_path, self.image_dir)


class VideoPipeline:
    def __init__(
        self,
        *,
        script: ScriptSynthesizer,
        images: ImageSetGenerator,
        narration: NarrationRenderer,
        compositor: VideoCompositor,
        verifier: VideoVerifier,
        publisher: DurablePublisher,
        http_client: httpx.AsyncClient,
        images_dir: str,
        audio_dir: str,
        videos_dir: str,
        cleanup: CleanupScheduler | None = None,
    ) -> None:
        self._script = script
        self._images = images
        self._narration = narration
        self._compositor = compositor
        self._verifier = verifier
        self._publisher = publisher
        self._http = http_client
        self._images_dir = images_dir
        self._audio_dir = audio_dir
        self._videos_dir = videos_dir
        self._cleanup = cleanup or CleanupScheduler()

    @property
    def cleanup(self) -> CleanupScheduler:
        return self._cleanup

    async def run(self, request: GenerationRequest) -> PipelineResult:
        paths = RunPaths(
            new_run_id(),
            images_dir=self._images_dir,
            audio_dir=self._audio_dir,
            videos_dir=self._videos_dir,
        )
        target = request.target_duration_seconds
        voice = request.voice.value
        logger.info(
            "[pipeline] Starting video generation run=%s headline=%r duration=%ss voice=%s",
            paths.run_id,
            request.headline,
            target,
            voice,
        )

        try:
            await asyncio.to_thread(self._ensure_directories)

            narration = await self._script.synthesize(request.headline, target)
            logger.info("[pipeline] [1/6] Script generated successfully")

            urls = await self._images.generate(narration.text)
            assets = await download_images(urls, paths.image_dir, self._http)
            logger.info("[pipeline] [2/6] Generated and downloaded %d images", len(assets))

            await self._narration.render(narration.text, paths.audio_path, voice)
            logger.info("[pipeline] [3/6] Audio generated successfully")

            await self._compositor.compose(
                [asset.local_path for asset in assets],
                paths.audio_path,
                paths.video_path,
                target,
            )
            logger.info("[pipeline] [4/6] Video created successfully")

            await self._verifier.verify(paths.video_path, target)
            logger.info("[pipeline] [5/6] Video verified")

            video_url = await self._publisher.publish(paths.video_path, paths.object_key)
            logger.info("[pipeline] [6/6] Video uploaded successfully")
        except Exception:
            logger.exception("[pipeline] Run %s failed; removing local artifacts", paths.run_id)
            await remove_artifacts(paths.artifacts())
            raise

        self._cleanup.schedule(paths.artifacts())
        return PipelineResult(
            video_url=video_url,
            object_key=paths.object_key,
            duration_seconds=target,
            voice=voice,
            artifacts=paths.artifacts(),
        )

    def _ensure_directories(self) -> None:
        for directory in (self._images_dir, self._audio_dir, self._videos_dir):
            os.makedirs(directory, exist_ok=True)


def build_pipeline(
    settings: Settings,
    *,
    openai_client: AsyncOpenAI,
    http_client: httpx.AsyncClient,
    store: ObjectStore | None = None,
) -> VideoPipeline:
    """Wire the production stages: OpenAI generation, ffmpeg/PyAV media, GCS storage."""
    media = FFmpegToolkit(binary=settings.ffmpeg_binary)
    return VideoPipeline(
        script=ScriptSynthesizer(OpenAITextGenerator(openai_client, model=settings.text_model)),
        images=ImageSetGenerator(OpenAIImageGenerator(openai_client, model=settings.image_model)),
        narration=NarrationRenderer(OpenAISpeechSynthesizer(openai_client, model=settings.tts_model), media),
        compositor=VideoCompositor(media, temp_dir=settings.temp_dir),
        verifier=VideoVerifier(media),
        publisher=DurablePublisher(
            store or GcsMultipartStore(settings.bucket_name),
            public_base_url=settings.public_base_url,
            max_concurrency=settings.upload_max_concurrency,
        ),
        http_client=http_client,
        images_dir=settings.images_dir,
        audio_dir=settings.audio_dir,
        videos_dir=settings.videos_dir,
    )
