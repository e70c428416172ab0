"""Error taxonomy for the generation pipeline.

Adapters translate library exceptions into these types; pipeline stages clean up
their own partial files and re-raise unchanged.
"""


class VideoGenerationError(Exception):
    """Base class for every failure the /generate route reports."""


class InputValidationError(VideoGenerationError):
    """Missing or out-of-range request fields. Raised before any stage runs."""


class RateLimitedError(VideoGenerationError):
    def __init__(self, retry_after_minutes: int) -> None:
        self.retry_after_minutes = retry_after_minutes
        super().__init__(f"Rate limit exceeded. Please try again in {retry_after_minutes} minutes.")


class UpstreamCapabilityError(VideoGenerationError):
    """Text, image or speech generation failed or returned unusable data."""


class MediaProcessingError(VideoGenerationError):
    """Probe or encode failed, or produced unreadable output."""


class DurationOutOfBandError(VideoGenerationError):
    def __init__(self, message: str, *, measured: float, target: int) -> None:
        self.measured = measured
        self.target = target
        super().__init__(message)


class PublishError(VideoGenerationError):
    """Object storage rejected a part, the completion call, or the session itself."""
