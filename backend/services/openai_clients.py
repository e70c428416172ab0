"""OpenAI-backed text, image and speech capabilities."""

from __future__ import annotations

import logging

import openai
from openai import AsyncOpenAI

from services.errors import UpstreamCapabilityError

logger = logging.getLogger(__name__)


class OpenAITextGenerator:
    def __init__(self, client: AsyncOpenAI, *, model: str = "gpt-3.5-turbo") -> None:
        self.client = client
        self.model = model

    async def complete(self, prompt: str) -> str:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
            )
        except openai.OpenAIError as exc:
            raise UpstreamCapabilityError(f"Text generation failed: {exc}") from exc

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise UpstreamCapabilityError("Text generation returned an empty completion")
        return content.strip()


class OpenAIImageGenerator:
    def __init__(self, client: AsyncOpenAI, *, model: str = "dall-e-3") -> None:
        self.client = client
        self.model = model

    async def generate(self, prompt: str, *, size: str, quality: str) -> str:
        try:
            response = await self.client.images.generate(
                model=self.model,
                prompt=prompt,
                size=size,
                quality=quality,
                n=1,
            )
        except openai.OpenAIError as exc:
            raise UpstreamCapabilityError(f"Image generation failed: {exc}") from exc

        url = response.data[0].url if response.data else None
        if not url:
            raise UpstreamCapabilityError("Image generation returned no image URL")
        return url


class OpenAISpeechSynthesizer:
    def __init__(self, client: AsyncOpenAI, *, model: str = "tts-1") -> None:
        self.client = client
        self.model = model

    async def synthesize(self, text: str, *, voice: str, response_format: str = "mp3") -> bytes:
        try:
            response = await self.client.audio.speech.create(
                model=self.model,
                voice=voice,
                input=text,
                response_format=response_format,
                speed=1.0,
            )
        except openai.OpenAIError as exc:
            raise UpstreamCapabilityError(f"Speech synthesis failed: {exc}") from exc

        audio = response.content
        if not audio:
            raise UpstreamCapabilityError("Speech synthesis returned no audio")
        logger.info("[openai] Synthesized %d bytes of %s audio (voice=%s)", len(audio), response_format, voice)
        return audio
