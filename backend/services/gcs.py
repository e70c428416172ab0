"""GCS object storage: XML API multipart uploads for finished videos."""

from __future__ import annotations

import logging
import os
from typing import Any

import requests
from google.resumable_media import InvalidResponse
from google.resumable_media.requests import XMLMPUContainer, XMLMPUPart

from models.upload import UploadedPart, UploadSession
from services.errors import PublishError

logger = logging.getLogger(__name__)

DEFAULT_BUCKET = "headline-reels"
STORAGE_SCOPES = ("https://www.googleapis.com/auth/devstorage.read_write",)
PART_CHECKSUM = "md5"

_TRANSFER_ERRORS = (InvalidResponse, requests.RequestException)


def get_bucket_name() -> str:
    """Bucket name from env or default."""
    return os.environ.get("GCS_BUCKET", "").strip() or DEFAULT_BUCKET


class GcsMultipartStore:
    """
    Multipart session lifecycle against the GCS XML API, driven through
    google-resumable-media's XMLMPUContainer (initiate / finalize / cancel) and
    XMLMPUPart (one byte range of the source file per part).

    Object URLs come from google-cloud-storage's Blob.public_url; requests go
    through a google-auth AuthorizedSession (default credentials / ADC).
    """

    def __init__(
        self,
        bucket_name: str | None = None,
        *,
        session: Any | None = None,
        client: Any | None = None,
    ) -> None:
        self._bucket_name = bucket_name or get_bucket_name()
        self._session = session
        self._client = client

    @property
    def bucket_name(self) -> str:
        return self._bucket_name

    def _get_session(self) -> Any:
        if self._session is None:
            import google.auth
            from google.auth.transport.requests import AuthorizedSession

            credentials, _project = google.auth.default(scopes=list(STORAGE_SCOPES))
            self._session = AuthorizedSession(credentials)
        return self._session

    def object_url(self, key: str) -> str:
        if self._client is None:
            from google.cloud import storage

            # Building a URL needs no credentials.
            self._client = storage.Client.create_anonymous_client()
        bucket = self._client.bucket(self._bucket_name)
        return bucket.blob(key).public_url

    def _container(self, session: UploadSession) -> XMLMPUContainer:
        return XMLMPUContainer(
            self.object_url(session.key),
            session.source_path,
            upload_id=session.upload_id,
        )

    def create_multipart_upload(self, key: str, *, source_path: str, content_type: str) -> UploadSession:
        container = XMLMPUContainer(self.object_url(key), source_path)
        try:
            container.initiate(self._get_session(), content_type)
        except _TRANSFER_ERRORS as exc:
            raise PublishError(f"GCS create multipart upload failed: {exc}") from exc
        if not container.upload_id:
            raise PublishError("GCS create multipart upload returned no upload id")
        logger.info("[gcs] Multipart upload created: key=%s upload_id=%s", key, container.upload_id)
        return UploadSession(upload_id=container.upload_id, key=key, source_path=source_path)

    def upload_part(self, session: UploadSession, part_number: int, start: int, end: int) -> UploadedPart:
        part = XMLMPUPart(
            self.object_url(session.key),
            session.upload_id,
            session.source_path,
            start,
            end,
            part_number,
            checksum=PART_CHECKSUM,
        )
        try:
            part.upload(self._get_session())
        except _TRANSFER_ERRORS as exc:
            raise PublishError(f"GCS upload part {part_number} failed: {exc}") from exc
        if not part.etag:
            raise PublishError(f"GCS upload part {part_number} returned no ETag")
        return UploadedPart(part_number=part_number, etag=part.etag)

    def complete_multipart_upload(self, session: UploadSession, parts: list[UploadedPart]) -> None:
        container = self._container(session)
        for part in parts:
            container.register_part(part.part_number, part.etag)
        try:
            container.finalize(self._get_session())
        except _TRANSFER_ERRORS as exc:
            raise PublishError(f"GCS complete multipart upload failed: {exc}") from exc
        logger.info("[gcs] Multipart upload completed: key=%s parts=%d", session.key, len(parts))

    def abort_multipart_upload(self, session: UploadSession) -> None:
        try:
            self._container(session).cancel(self._get_session())
        except _TRANSFER_ERRORS as exc:
            raise PublishError(f"GCS abort multipart upload failed: {exc}") from exc
        logger.info("[gcs] Multipart upload aborted: key=%s upload_id=%s", session.key, session.upload_id)
