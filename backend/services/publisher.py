"""Durable publishing: chunked multipart upload of the finished video, then local cleanup."""

from __future__ import annotations

import asyncio
import logging
import os

from models.upload import UploadedPart, UploadSession
from services.capabilities import ObjectStore

logger = logging.getLogger(__name__)

PART_SIZE = 5 * 1024 * 1024  # 5 MiB
VIDEO_CONTENT_TYPE = "video/mp4"


def split_into_parts(size: int, part_size: int = PART_SIZE) -> list[tuple[int, int, int]]:
    """Fixed-size (part_number, start, end) byte ranges numbered from 1. An empty file still yields one part."""
    if not size:
        return [(1, 0, 0)]
    return [
        (index + 1, start, min(start + part_size, size))
        for index, start in enumerate(range(0, size, part_size))
    ]


class DurablePublisher:
    """
    Upload a local file to object storage and return its public URL.

    Parts are dispatched concurrently (bounded by ``max_concurrency``); the
    completion call receives them sorted by part number, so acknowledgement order
    does not matter. On failure the multipart session is aborted so no orphaned
    part data stays on the store. The local file is removed either way.
    """

    def __init__(
        self,
        store: ObjectStore,
        *,
        public_base_url: str,
        max_concurrency: int = 4,
        part_size: int = PART_SIZE,
    ) -> None:
        self._store = store
        self._public_base_url = public_base_url.rstrip("/")
        self._max_concurrency = max(1, max_concurrency)
        self._part_size = part_size

    def public_url(self, key: str) -> str:
        return f"{self._public_base_url}/{key}"

    async def publish(self, file_path: str, key: str) -> str:
        logger.info("[publisher] Uploading %s with key %s", file_path, key)
        session: UploadSession | None = None
        try:
            size = await asyncio.to_thread(os.path.getsize, file_path)
            logger.info("[publisher] File size: %.2f MB", size / (1024 * 1024))

            session = await asyncio.to_thread(
                self._store.create_multipart_upload,
                key,
                source_path=file_path,
                content_type=VIDEO_CONTENT_TYPE,
            )
            parts = await self._upload_parts(session, size)
            session.parts = parts
            await asyncio.to_thread(self._store.complete_multipart_upload, session, session.ordered_parts())

            url = self.public_url(key)
            logger.info("[publisher] File uploaded successfully to %s", url)
        except Exception as exc:
            logger.error("[publisher] Error uploading %s: %s", file_path, exc)
            if session is not None:
                await self._abort(session)
            await _remove_local(file_path, after_error=True)
            raise

        await _remove_local(file_path, after_error=False)
        return url

    async def _upload_parts(self, session: UploadSession, size: int) -> list[UploadedPart]:
        ranges = split_into_parts(size, self._part_size)
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _send(part_number: int, start: int, end: int) -> UploadedPart:
            async with semaphore:
                logger.info("[publisher] Uploading part %d/%d", part_number, len(ranges))
                return await asyncio.to_thread(self._store.upload_part, session, part_number, start, end)

        # Wait for every in-flight part before reporting failure so an abort never
        # races a part upload.
        results = await asyncio.gather(
            *(_send(number, start, end) for number, start, end in ranges),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        return list(results)  # type: ignore[arg-type]

    async def _abort(self, session: UploadSession) -> None:
        try:
            await asyncio.to_thread(self._store.abort_multipart_upload, session)
        except Exception as abort_exc:  # noqa: BLE001
            logger.warning(
                "[publisher] Failed to abort multipart upload %s: %s",
                session.upload_id,
                abort_exc,
            )


async def _remove_local(file_path: str, *, after_error: bool) -> None:
    suffix = " after failed upload" if after_error else ""
    try:
        await asyncio.to_thread(os.remove, file_path)
        logger.info("[publisher] Local file deleted%s: %s", suffix, file_path)
    except OSError as exc:
        logger.warning("[publisher] Failed to delete local file%s: %s", suffix, exc)
