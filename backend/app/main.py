import logging
import os
from contextlib import asynccontextmanager

import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from openai import AsyncOpenAI

from routes.generate import error_response, router as generate_router
from services.pipeline import VideoPipeline, build_pipeline
from services.rate_limiter import RateLimiter
from services.settings import Settings

# Load .env from backend dir
load_dotenv(os.path.join(os.path.dirname(os.path.dirname(__file__)), ".env"))

logger = logging.getLogger(__name__)

DOWNLOAD_TIMEOUT_SECONDS = 60.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logging.basicConfig(level=settings.log_level)

    http_client: httpx.AsyncClient | None = None
    openai_client: AsyncOpenAI | None = None
    if app.state.pipeline is None:
        if not settings.openai_api_key:
            raise RuntimeError(
                "OPENAI_API_KEY is not set. Set it in backend/.env or the environment."
            )
        http_client = httpx.AsyncClient(timeout=DOWNLOAD_TIMEOUT_SECONDS, follow_redirects=True)
        openai_client = AsyncOpenAI(api_key=settings.openai_api_key)
        app.state.pipeline = build_pipeline(settings, openai_client=openai_client, http_client=http_client)
        logger.info("[app] Pipeline ready (bucket=%s)", settings.bucket_name)
    try:
        yield
    finally:
        cleanup = getattr(app.state.pipeline, "cleanup", None)
        if cleanup is not None:
            await cleanup.drain()
        if http_client is not None:
            await http_client.aclose()
        if openai_client is not None:
            await openai_client.close()


def create_app(
    *,
    settings: Settings | None = None,
    pipeline: VideoPipeline | None = None,
    rate_limiter: RateLimiter | None = None,
) -> FastAPI:
    settings = settings or Settings.from_env()
    app = FastAPI(title="Headline Reels API", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.settings = settings
    app.state.pipeline = pipeline
    app.state.rate_limiter = rate_limiter or RateLimiter(
        window_seconds=settings.rate_limit_window_seconds,
        max_requests=settings.rate_limit_max_requests,
    )

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.exception_handler(RequestValidationError)
    async def invalid_body(_request: Request, exc: RequestValidationError):
        logger.info("[app] Malformed request body: %s", exc.errors())
        return error_response(400, "Headline, target_duration, and voice_type are required")

    app.include_router(generate_router)
    return app


app = create_app()
