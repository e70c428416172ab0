from .errors import (
    DurationOutOfBandError,
    InputValidationError,
    MediaProcessingError,
    PublishError,
    RateLimitedError,
    UpstreamCapabilityError,
    VideoGenerationError,
)

__all__ = [
    "VideoGenerationError",
    "InputValidationError",
    "RateLimitedError",
    "UpstreamCapabilityError",
    "MediaProcessingError",
    "DurationOutOfBandError",
    "PublishError",
]
