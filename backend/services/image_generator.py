"""Image set generation: three photorealistic stills per narration, downloaded to local storage."""

from __future__ import annotations

import asyncio
import logging
import os

import httpx

from models.media import ImageAsset
from services.capabilities import ImageGenerator
from services.errors import UpstreamCapabilityError

logger = logging.getLogger(__name__)

IMAGE_COUNT = 3
IMAGE_SIZE = "1024x1024"
IMAGE_QUALITY = "hd"

_VARIATIONS = (
    "Professional 4K photograph of {prompt}, natural lighting, photojournalistic style, real-life scene",
    "High-resolution documentary photograph of {prompt}, captured in real location, natural colors, photorealistic",
    "Candid photograph of {prompt}, shot on professional camera, realistic lighting, authentic scene",
)
_REALISM_SUFFIX = (
    "Ensure photorealistic quality, no artificial or CGI elements, shot on professional camera "
    "with natural lighting. Style: photojournalism, documentary photography."
)


def build_image_prompts(narration_text: str) -> list[str]:
    """Three distinct prompt variations, each biased toward documentary photography."""
    return [f"{template.format(prompt=narration_text)}. {_REALISM_SUFFIX}" for template in _VARIATIONS]


class ImageSetGenerator:
    def __init__(self, image_generator: ImageGenerator) -> None:
        self._images = image_generator

    async def generate(self, narration_text: str) -> list[str]:
        """
        Request one image per prompt variation and return the remote URLs in order.

        Calls are made one after another to avoid concurrent quota pressure on the
        image service.
        """
        logger.info("[images] Generating images for prompt: %.80s...", narration_text)
        urls: list[str] = []
        try:
            for i, prompt in enumerate(build_image_prompts(narration_text), start=1):
                url = await self._images.generate(prompt, size=IMAGE_SIZE, quality=IMAGE_QUALITY)
                urls.append(url)
                logger.info("[images] Image %d generated successfully", i)
        except Exception as exc:
            logger.error("[images] Error generating image: %s", exc)
            raise
        return urls


async def download_images(
    urls: list[str],
    dest_dir: str,
    client: httpx.AsyncClient,
) -> list[ImageAsset]:
    """
    Download each URL to ``dest_dir/image_{n}.png`` (n from 1), preserving order.

    Any failed fetch aborts the whole set; files already written by this call are
    removed before the error propagates.
    """
    await asyncio.to_thread(os.makedirs, dest_dir, exist_ok=True)
    assets: list[ImageAsset] = []
    try:
        for index, url in enumerate(urls):
            save_path = os.path.join(dest_dir, f"image_{index + 1}.png")
            response = await client.get(url)
            if not response.is_success:
                raise UpstreamCapabilityError(f"Failed to fetch image: {response.reason_phrase}")
            await asyncio.to_thread(_write_bytes, save_path, response.content)
            assets.append(ImageAsset(source_url=url, local_path=save_path, index=index))
    except Exception as exc:
        logger.error("[images] Error downloading image: %s", exc)
        for asset in assets:
            try:
                os.remove(asset.local_path)
            except OSError as cleanup_exc:
                logger.warning("[images] Could not remove %s: %s", asset.local_path, cleanup_exc)
        if isinstance(exc, httpx.HTTPError):
            raise UpstreamCapabilityError(f"Failed to fetch image: {exc}") from exc
        raise
    logger.info("[images] All %d images downloaded successfully", len(assets))
    return assets


def _write_bytes(path: str, data: bytes) -> None:
    with open(path, "wb") as fh:
        fh.write(data)
