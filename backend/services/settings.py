"""Process configuration read from the environment (and backend/.env via python-dotenv)."""

from __future__ import annotations

import os
from dataclasses import dataclass

from services.gcs import DEFAULT_BUCKET, get_bucket_name

DEFAULT_PORT = 3000


def _env_str(name: str, default: str) -> str:
    return os.environ.get(name, "").strip() or default


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    return int(raw) if raw else default


@dataclass(frozen=True)
class Settings:
    openai_api_key: str | None = None
    text_model: str = "gpt-3.5-turbo"
    image_model: str = "dall-e-3"
    tts_model: str = "tts-1"
    bucket_name: str = DEFAULT_BUCKET
    public_base_url: str = f"https://storage.googleapis.com/{DEFAULT_BUCKET}"
    static_dir: str = "static"
    temp_dir: str = "temp"
    ffmpeg_binary: str = "ffmpeg"
    rate_limit_window_seconds: int = 60 * 60
    rate_limit_max_requests: int = 3
    upload_max_concurrency: int = 4
    log_level: str = "INFO"
    port: int = DEFAULT_PORT

    @property
    def images_dir(self) -> str:
        return os.path.join(self.static_dir, "images")

    @property
    def audio_dir(self) -> str:
        return os.path.join(self.static_dir, "audio")

    @property
    def videos_dir(self) -> str:
        return os.path.join(self.static_dir, "videos")

    @classmethod
    def from_env(cls) -> Settings:
        bucket = get_bucket_name()
        return cls(
            openai_api_key=os.environ.get("OPENAI_API_KEY", "").strip() or None,
            text_model=_env_str("OPENAI_TEXT_MODEL", cls.text_model),
            image_model=_env_str("OPENAI_IMAGE_MODEL", cls.image_model),
            tts_model=_env_str("OPENAI_TTS_MODEL", cls.tts_model),
            bucket_name=bucket,
            # Without an explicit base, objects are addressed through the public GCS endpoint.
            public_base_url=_env_str("PUBLIC_BASE_URL", f"https://storage.googleapis.com/{bucket}").rstrip("/"),
            static_dir=_env_str("STATIC_DIR", cls.static_dir),
            temp_dir=_env_str("TEMP_DIR", cls.temp_dir),
            ffmpeg_binary=_env_str("FFMPEG_BINARY", cls.ffmpeg_binary),
            rate_limit_window_seconds=_env_int("RATE_LIMIT_WINDOW_SECONDS", cls.rate_limit_window_seconds),
            rate_limit_max_requests=_env_int("RATE_LIMIT_MAX_REQUESTS", cls.rate_limit_max_requests),
            upload_max_concurrency=_env_int("UPLOAD_MAX_CONCURRENCY", cls.upload_max_concurrency),
            log_level=_env_str("LOG_LEVEL", cls.log_level).upper(),
            port=_env_int("PORT", DEFAULT_PORT),
        )
