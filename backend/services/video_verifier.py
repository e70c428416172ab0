"""Acceptance gate: the rendered video must land within ±20% of the requested duration."""

from __future__ import annotations

import logging
import math
import os

from services.errors import DurationOutOfBandError, MediaProcessingError
from services.media import FFmpegToolkit

logger = logging.getLogger(__name__)

# Band edges in percent of the target, kept integral so 6s -> [4.8s, 7.2s] exactly.
LOWER_PERCENT = 80
UPPER_PERCENT = 120


def check_duration_band(measured: float, target: int) -> None:
    """Raise DurationOutOfBandError outside [0.8 x target, 1.2 x target]; both bounds accepted."""
    min_duration = target * LOWER_PERCENT / 100
    max_duration = target * UPPER_PERCENT / 100
    if measured < min_duration and not math.isclose(measured, min_duration):
        raise DurationOutOfBandError(
            f"Video is too short ({measured:.1f}s vs target {target}s)",
            measured=measured,
            target=target,
        )
    if measured > max_duration and not math.isclose(measured, max_duration):
        raise DurationOutOfBandError(
            f"Video is too long ({measured:.1f}s vs target {target}s)",
            measured=measured,
            target=target,
        )


class VideoVerifier:
    def __init__(self, media: FFmpegToolkit) -> None:
        self._media = media

    async def verify(self, video_path: str, target_duration: int) -> float:
        """Probe the rendered file and return its duration once it passes the band check."""
        try:
            size = os.path.getsize(video_path)
        except OSError as exc:
            raise MediaProcessingError(f"Invalid video file generated: {exc}") from exc
        if not size:
            raise MediaProcessingError("Generated video file is empty")

        measured = await self._media.probe_duration(video_path)
        logger.info("[verifier] Video verification - Target: %ss, Actual: %ss", target_duration, measured)
        check_duration_band(measured, target_duration)
        logger.info("[verifier] Video duration verification passed: %.1f seconds", measured)
        return measured
