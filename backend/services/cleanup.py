from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Iterable

logger = logging.getLogger(__name__)


async def remove_artifacts(paths: Iterable[str]) -> None:
    """
    Delete local files, then any listed per-run directories (which must be empty by
    then). Missing paths are skipped; failures are only logged.
    """
    paths = list(paths)
    files = [p for p in paths if not os.path.isdir(p)]
    dirs = [p for p in paths if os.path.isdir(p)]

    results = await asyncio.gather(
        *(asyncio.to_thread(_remove_file, path) for path in files),
        return_exceptions=True,
    )
    for path, result in zip(files, results):
        if isinstance(result, Exception):
            logger.error("[cleanup] Error deleting %s: %s", path, result)

    for path in dirs:
        try:
            await asyncio.to_thread(os.rmdir, path)
        except OSError as exc:
            logger.error("[cleanup] Error deleting directory %s: %s", path, exc)

    logger.info("[cleanup] Cleanup completed for %d artifact(s)", len(paths))


def _remove_file(path: str) -> None:
    if os.path.exists(path):
        os.remove(path)


class CleanupScheduler:
    """
    Runs artifact removal as detached tasks so the response is not held up.
    Holds strong references until each task finishes.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[None]] = set()

    def schedule(self, paths: Iterable[str]) -> asyncio.Task[None]:
        task = asyncio.get_running_loop().create_task(remove_artifacts(list(paths)))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for outstanding cleanups (app shutdown, tests)."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
