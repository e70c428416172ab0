"""POST /generate: validate, rate-limit, run the pipeline, map failures to one error shape."""

import logging
import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.models import ErrorResponse, GenerateRequestBody, GenerateResponse
from models.request import GenerationRequest
from services.errors import InputValidationError, RateLimitedError

router = APIRouter(tags=["generate"])
logger = logging.getLogger(__name__)

GENERIC_FAILURE = "An error occurred during video generation"


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ErrorResponse(error=message).model_dump())


@router.post(
    "/generate",
    response_model=GenerateResponse,
    responses={400: {"model": ErrorResponse}, 429: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def generate(body: GenerateRequestBody, request: Request):
    """Run one generation pipeline and return the published video's URL."""
    try:
        generation = GenerationRequest.from_payload(body.headline, body.target_duration, body.voice_type)
    except InputValidationError as exc:
        logger.info("[generate] Rejected request: %s", exc)
        return error_response(400, str(exc))

    decision = request.app.state.rate_limiter.try_acquire(time.time())
    if not decision.allowed:
        limited = RateLimitedError(decision.retry_after_minutes)
        logger.warning("[generate] %s", limited)
        return error_response(429, str(limited))

    try:
        result = await request.app.state.pipeline.run(generation)
    except Exception as exc:
        logger.error("[generate] Error in video generation (%s): %s", type(exc).__name__, exc)
        return error_response(500, str(exc) or GENERIC_FAILURE)

    return GenerateResponse(
        video_url=result.video_url,
        duration=result.duration_seconds,
        voice_type=result.voice,
    )
