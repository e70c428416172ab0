"""Media probe (PyAV) and encode (ffmpeg subprocess) helpers shared by the render stages."""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from typing import Callable

import av

from services.errors import MediaProcessingError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[dict[str, str]], None]

# Lines of ffmpeg stderr kept for error messages.
_STDERR_TAIL_LINES = 20


def probe_duration(path: str) -> float:
    """
    Open a media file with PyAV and return its container duration in seconds.

    Raises MediaProcessingError when the file cannot be opened or carries no
    duration metadata.
    """
    try:
        with av.open(path) as container:
            if container.format is None:
                raise MediaProcessingError(f"No format metadata for {path}")
            if container.duration is None:
                # Fall back to the longest stream; some muxers only set stream durations.
                durations = [
                    float(stream.duration * stream.time_base)
                    for stream in container.streams
                    if stream.duration is not None and stream.time_base is not None
                ]
                if not durations:
                    raise MediaProcessingError(f"No duration metadata for {path}")
                return max(durations)
            return container.duration / av.time_base
    except (av.error.FFmpegError, OSError) as exc:
        raise MediaProcessingError(f"Unreadable media file {path}: {exc}") from exc


class FFmpegToolkit:
    """Async facade over probe_duration and the ffmpeg binary."""

    def __init__(self, *, binary: str = "ffmpeg") -> None:
        self._binary = binary

    async def probe_duration(self, path: str) -> float:
        return await asyncio.to_thread(probe_duration, path)

    async def run(self, args: list[str], *, on_progress: ProgressCallback | None = None) -> None:
        cmd = [self._binary, "-y", "-hide_banner", "-nostats", "-progress", "pipe:1", *args]
        logger.info("[media] FFmpeg command: %s", " ".join(cmd))
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise MediaProcessingError(f"ffmpeg binary not found: {self._binary}") from exc

        stderr_tail: deque[str] = deque(maxlen=_STDERR_TAIL_LINES)
        try:
            await asyncio.gather(
                _read_progress(proc.stdout, on_progress),
                _read_stderr(proc.stderr, stderr_tail),
            )
            returncode = await proc.wait()
        finally:
            if proc.returncode is None:
                # Cancelled or failed mid-read: the child must not outlive this call.
                logger.warning("[media] Stopping ffmpeg (pid %s)", proc.pid)
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass
                await proc.wait()
        if returncode != 0:
            detail = "\n".join(stderr_tail) or "no output"
            logger.error("[media] FFmpeg error (exit %s): %s", returncode, detail)
            raise MediaProcessingError(f"ffmpeg exited with code {returncode}: {detail}")
        logger.info("[media] FFmpeg process completed")


async def _read_progress(stream: asyncio.StreamReader, on_progress: ProgressCallback | None) -> None:
    # -progress emits key=value blocks, each terminated by a "progress=continue|end" line.
    block: dict[str, str] = {}
    async for raw in stream:
        line = raw.decode(errors="replace").strip()
        if "=" not in line:
            continue
        key, _, value = line.partition("=")
        block[key] = value
        if key == "progress":
            if on_progress is not None:
                on_progress(block)
            block = {}


async def _read_stderr(stream: asyncio.StreamReader, tail: deque[str]) -> None:
    async for raw in stream:
        line = raw.decode(errors="replace").rstrip()
        if line:
            tail.append(line)


def log_progress(label: str) -> ProgressCallback:
    """Progress callback that logs ffmpeg's out_time and speed for one encode."""

    def _log(block: dict[str, str]) -> None:
        logger.info(
            "[%s] FFmpeg progress: out_time=%s speed=%s state=%s",
            label,
            block.get("out_time", "?"),
            block.get("speed", "?"),
            block.get("progress", "?"),
        )

    return _log
