"""Narration audio: speech synthesis plus a single-pass tempo correction for long takes."""

from __future__ import annotations

import asyncio
import logging
import os

from models.media import AudioAsset
from services.capabilities import SpeechSynthesizer
from services.media import FFmpegToolkit, log_progress

logger = logging.getLogger(__name__)

AUDIO_FORMAT = "mp3"
TEMPO_THRESHOLD_SECONDS = 15.5
TEMPO_TARGET_SECONDS = 15.0
# ffmpeg's atempo filter accepts factors in [0.5, 2.0] per instance.
ATEMPO_MAX = 2.0
ATEMPO_MIN = 0.5


def compute_tempo_factor(duration_seconds: float) -> float | None:
    """Speed multiplier for audio longer than the threshold, rounded to 2 decimals; None otherwise."""
    if duration_seconds <= TEMPO_THRESHOLD_SECONDS:
        return None
    return round(duration_seconds / TEMPO_TARGET_SECONDS, 2)


def build_atempo_filter(factor: float) -> str:
    """Chain atempo instances so each stays within ffmpeg's accepted range."""
    filters: list[str] = []
    remaining = factor
    while remaining > ATEMPO_MAX:
        filters.append(f"atempo={ATEMPO_MAX}")
        remaining /= ATEMPO_MAX
    while remaining < ATEMPO_MIN:
        filters.append(f"atempo={ATEMPO_MIN}")
        remaining /= ATEMPO_MIN
    filters.append(f"atempo={remaining:.6g}")
    return ",".join(filters)


class NarrationRenderer:
    def __init__(self, speech: SpeechSynthesizer, media: FFmpegToolkit) -> None:
        self._speech = speech
        self._media = media

    async def render(self, text: str, output_path: str, voice: str) -> AudioAsset:
        logger.info("[narration] Starting audio generation (voice=%s)", voice)
        temp_path = f"{output_path}.temp.{AUDIO_FORMAT}"
        try:
            audio = await self._speech.synthesize(text, voice=voice, response_format=AUDIO_FORMAT)
            await asyncio.to_thread(_write_bytes, output_path, audio)

            duration = await self._media.probe_duration(output_path)
            logger.info("[narration] Initial audio duration: %.2f seconds", duration)

            factor = compute_tempo_factor(duration)
            if factor is not None:
                logger.info("[narration] Adjusting audio speed by factor %.2f", factor)
                await self._media.run(
                    ["-i", output_path, "-filter:a", build_atempo_filter(factor), temp_path],
                    on_progress=log_progress("narration"),
                )
                await asyncio.to_thread(os.replace, temp_path, output_path)
                duration = await self._media.probe_duration(output_path)
                logger.info(
                    "[narration] Final audio duration after speed adjustment: %.2f seconds",
                    duration,
                )

            logger.info("[narration] Audio generation completed successfully")
            return AudioAsset(local_path=output_path, duration_seconds=duration, tempo_factor=factor)
        except Exception as exc:
            logger.error("[narration] Error generating audio: %s", exc)
            for path in (output_path, temp_path):
                await asyncio.to_thread(_discard, path)
            raise


def _write_bytes(path: str, data: bytes) -> None:
    with open(path, "wb") as fh:
        fh.write(data)


def _discard(path: str) -> None:
    try:
        if os.path.exists(path):
            os.remove(path)
    except OSError as exc:
        logger.warning("[narration] Could not remove %s: %s", path, exc)
