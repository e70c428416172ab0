from .media import AudioAsset, ImageAsset, Narration, PipelineResult, VideoArtifact
from .request import MAX_TARGET_DURATION, MIN_TARGET_DURATION, VALID_VOICES, GenerationRequest, Voice
from .upload import UploadedPart, UploadSession

__all__ = [
    "GenerationRequest",
    "Voice",
    "VALID_VOICES",
    "MIN_TARGET_DURATION",
    "MAX_TARGET_DURATION",
    "Narration",
    "ImageAsset",
    "AudioAsset",
    "VideoArtifact",
    "PipelineResult",
    "UploadSession",
    "UploadedPart",
]
