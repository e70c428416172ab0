from dataclasses import dataclass, field


@dataclass(frozen=True)
class Narration:
    text: str                      # spoken script including pause markers
    word_count: int                # spoken words only, markers excluded
    pauses: tuple[str, ...] = ()   # markers in the order they appear in text


@dataclass(frozen=True)
class ImageAsset:
    source_url: str
    local_path: str
    index: int                     # 0..2


@dataclass
class AudioAsset:
    local_path: str
    duration_seconds: float
    tempo_factor: float | None = None   # set when the speed correction ran


@dataclass(frozen=True)
class VideoArtifact:
    local_path: str
    duration_seconds: float


@dataclass(frozen=True)
class PipelineResult:
    video_url: str
    object_key: str
    duration_seconds: int          # echoed target duration
    voice: str
    artifacts: tuple[str, ...] = field(default_factory=tuple)
