"""Capability interfaces the pipeline stages depend on. Tests substitute stubs."""

from __future__ import annotations

from typing import Protocol

from models.upload import UploadedPart, UploadSession


class TextGenerator(Protocol):
    async def complete(self, prompt: str) -> str: ...


class ImageGenerator(Protocol):
    async def generate(self, prompt: str, *, size: str, quality: str) -> str:
        """Return a remote locator for the generated image."""
        ...


class SpeechSynthesizer(Protocol):
    async def synthesize(self, text: str, *, voice: str, response_format: str) -> bytes: ...


class ObjectStore(Protocol):
    def create_multipart_upload(self, key: str, *, source_path: str, content_type: str) -> UploadSession: ...

    def upload_part(self, session: UploadSession, part_number: int, start: int, end: int) -> UploadedPart:
        """Upload bytes [start, end) of the session's source file as one part."""
        ...

    def complete_multipart_upload(self, session: UploadSession, parts: list[UploadedPart]) -> None: ...

    def abort_multipart_upload(self, session: UploadSession) -> None: ...
