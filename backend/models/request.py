from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum

from services.errors import InputValidationError

MIN_TARGET_DURATION = 5
MAX_TARGET_DURATION = 60


class Voice(str, Enum):
    ALLOY = "alloy"
    ECHO = "echo"
    FABLE = "fable"
    ONYX = "onyx"
    NOVA = "nova"
    SHIMMER = "shimmer"


VALID_VOICES = tuple(v.value for v in Voice)

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _parse_duration(raw: object) -> int | None:
    """Accept ints, finite floats and numeric strings (10.7, "10.7" -> 10); anything else is None."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        return int(raw) if math.isfinite(raw) else None
    if isinstance(raw, str):
        match = _LEADING_INT.match(raw)
        return int(match.group(1)) if match else None
    return None


@dataclass(frozen=True)
class GenerationRequest:
    headline: str
    target_duration_seconds: int   # 5..60
    voice: Voice

    @classmethod
    def from_payload(
        cls,
        headline: object,
        target_duration: object,
        voice_type: object,
    ) -> GenerationRequest:
        """Validate raw request fields; raises InputValidationError before any stage runs."""
        if not headline or not target_duration or not voice_type:
            raise InputValidationError("Headline, target_duration, and voice_type are required")

        duration = _parse_duration(target_duration)
        if duration is None or duration < MIN_TARGET_DURATION or duration > MAX_TARGET_DURATION:
            raise InputValidationError(
                f"Target duration must be between {MIN_TARGET_DURATION} and {MAX_TARGET_DURATION} seconds"
            )

        if voice_type not in VALID_VOICES:
            raise InputValidationError(f"Voice type must be one of: {', '.join(VALID_VOICES)}")

        return cls(headline=str(headline), target_duration_seconds=duration, voice=Voice(voice_type))
