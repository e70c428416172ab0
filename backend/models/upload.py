from dataclasses import dataclass, field


@dataclass(frozen=True)
class UploadedPart:
    part_number: int               # 1-based
    etag: str


@dataclass
class UploadSession:
    upload_id: str
    key: str
    source_path: str = ""          # local file the parts are read from
    parts: list[UploadedPart] = field(default_factory=list)

    def ordered_parts(self) -> list[UploadedPart]:
        return sorted(self.parts, key=lambda p: p.part_number)
