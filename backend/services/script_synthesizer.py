"""Narration script generation: headline + target duration -> word-capped script with pause markers."""

from __future__ import annotations

import logging
import math

from models.media import Narration
from services.capabilities import TextGenerator

logger = logging.getLogger(__name__)

WORDS_PER_SECOND = 2.0
EDGE_PAUSE = '<break time="0.2s"/>'
SENTENCE_PAUSE = '<break time="0.3s"/>'


def target_word_count(target_duration_seconds: int) -> int:
    return math.floor(target_duration_seconds * WORDS_PER_SECOND)


def build_script_prompt(headline: str, word_count: int) -> str:
    return (
        f"Create a concise Instagram story script about {headline}.\n"
        "Important requirements:\n"
        f"1. The script MUST be exactly {word_count} words\n"
        "2. Create exactly 3 sentences that flow naturally\n"
        "3. DO NOT use any hashtags or social media tags\n"
        "4. Use simple, engaging language\n"
        "5. Each sentence should be descriptive and clear\n"
        "Style: Clear and engaging, like a story"
    )


def postprocess_script(raw: str, word_count: int) -> Narration:
    """
    Drop hashtags, cap (never pad) to ``word_count`` words, then add pause markers
    after each sentence and at both ends.
    """
    words = [w for w in raw.split() if not w.startswith("#")]
    spoken = " ".join(words[:word_count])

    pauses: list[str] = [EDGE_PAUSE]
    sentence_breaks = spoken.count(". ")
    pauses.extend([SENTENCE_PAUSE] * sentence_breaks)
    pauses.append(EDGE_PAUSE)

    text = spoken.replace(". ", f". {SENTENCE_PAUSE} ")
    text = f"{EDGE_PAUSE} {text} {EDGE_PAUSE}"
    return Narration(text=text, word_count=len(spoken.split()), pauses=tuple(pauses))


class ScriptSynthesizer:
    def __init__(self, text_generator: TextGenerator) -> None:
        self._text = text_generator

    async def synthesize(self, headline: str, target_duration_seconds: int) -> Narration:
        word_count = target_word_count(target_duration_seconds)
        try:
            raw = await self._text.complete(build_script_prompt(headline, word_count))
        except Exception as exc:
            logger.error("[script] Error generating script: %s", exc)
            raise

        narration = postprocess_script(raw, word_count)
        logger.info(
            "[script] Script generated with %d words (cap %d) for %d seconds",
            narration.word_count,
            word_count,
            target_duration_seconds,
        )
        return narration
