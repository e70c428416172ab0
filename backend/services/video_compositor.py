"""Video assembly: still images timed to the narration track, muxed to H.264/AAC MP4."""

from __future__ import annotations

import asyncio
import logging
import math
import os
import uuid

from models.media import VideoArtifact
from services.media import FFmpegToolkit, log_progress

logger = logging.getLogger(__name__)

OUTPUT_OPTIONS = [
    "-c:v", "libx264",
    "-pix_fmt", "yuv420p",
    "-preset", "ultrafast",
    "-r", "30",
    "-c:a", "aac",
    "-shortest",
]


def duration_per_image(audio_duration: float, image_count: int) -> float:
    """Two-decimal ceiling so the image sequence never finishes before the audio."""
    return math.ceil((audio_duration / image_count) * 100) / 100


def build_concat_list(image_paths: list[str], seconds_per_image: float) -> str:
    """
    Concat-demuxer edit-decision list. The last image is listed once more without a
    duration; the demuxer needs it to close the final segment.
    """
    content = ""
    for image in image_paths:
        content += f"file '{os.path.abspath(image)}'\nduration {seconds_per_image}\n"
    content += f"file '{os.path.abspath(image_paths[-1])}'"
    return content


class VideoCompositor:
    def __init__(self, media: FFmpegToolkit, *, temp_dir: str = "temp") -> None:
        self._media = media
        self._temp_dir = temp_dir

    async def compose(
        self,
        image_paths: list[str],
        audio_path: str,
        output_path: str,
        target_duration: int,
    ) -> VideoArtifact:
        """Render ``output_path``; ``target_duration`` is only logged here, the verifier enforces it."""
        if not image_paths:
            raise ValueError("compose() needs at least one image")

        logger.info("[compositor] Starting video creation process")
        list_path = os.path.join(self._temp_dir, f"input_{uuid.uuid4().hex}.txt")
        try:
            await asyncio.to_thread(os.makedirs, self._temp_dir, exist_ok=True)

            audio_duration = await self._media.probe_duration(audio_path)
            logger.info("[compositor] Audio duration for video creation: %s seconds", audio_duration)

            per_image = duration_per_image(audio_duration, len(image_paths))
            logger.info("[compositor] Duration per image: %s seconds", per_image)

            await asyncio.to_thread(_write_text, list_path, build_concat_list(image_paths, per_image))

            await self._media.run(
                [
                    "-f", "concat", "-safe", "0", "-i", list_path,
                    "-i", audio_path,
                    *OUTPUT_OPTIONS,
                    output_path,
                ],
                on_progress=log_progress("compositor"),
            )

            video_duration = await self._media.probe_duration(output_path)
            logger.info(
                "[compositor] Final video duration: %ss (target: %ss)",
                video_duration,
                target_duration,
            )
            return VideoArtifact(local_path=output_path, duration_seconds=video_duration)
        except Exception as exc:
            logger.error("[compositor] Error in compose: %s", exc)
            raise
        finally:
            try:
                if os.path.exists(list_path):
                    os.remove(list_path)
                    logger.info("[compositor] Cleaned up input list file")
            except OSError as cleanup_exc:
                logger.error("[compositor] Error during cleanup: %s", cleanup_exc)


def _write_text(path: str, content: str) -> None:
    with open(path, "w", encoding="utf-8") as fh:
        fh.write(content)
