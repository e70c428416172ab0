from pydantic import BaseModel


class GenerateRequestBody(BaseModel):
    """Raw /generate body. Fields stay optional so missing ones get the same 400 as bad ones."""

    headline: str | None = None
    target_duration: int | float | str | None = None
    voice_type: str | None = None


class GenerateResponse(BaseModel):
    success: bool = True
    message: str = "Video generated successfully"
    video_url: str
    duration: int
    voice_type: str


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
