"""Conversion data model: codecs, presets, input files and per-file records."""
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from PIL import Image


class RecordStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class SizePreset(str, Enum):
    SAME = "same"
    LARGE = "large"
    MEDIUM = "medium"
    SMALL = "small"
    CUSTOM = "custom"


class OutputCodec(str, Enum):
    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"
    AVIF = "avif"
    HEIC = "heic"

    @property
    def mime_type(self) -> str:
        # HEIC has no encoder here, so it has no output MIME type either
        return _CODEC_MIME.get(self, "")

    @property
    def extension(self) -> str:
        return "jpg" if self is OutputCodec.JPEG else self.value

    @property
    def pil_format(self) -> str:
        return self.value.upper()

    @property
    def quality_adjustable(self) -> bool:
        return self in (OutputCodec.JPEG, OutputCodec.WEBP, OutputCodec.AVIF)

    @property
    def label(self) -> str:
        names = {OutputCodec.WEBP: "WebP"}
        return f"{names.get(self, self.value.upper())} (.{self.extension})"

    @classmethod
    def parse(cls, value: Optional[str]) -> Optional["OutputCodec"]:
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return None


_CODEC_MIME = {
    OutputCodec.JPEG: "image/jpeg",
    OutputCodec.PNG: "image/png",
    OutputCodec.WEBP: "image/webp",
    OutputCodec.AVIF: "image/avif",
}


@dataclass(frozen=True)
class InputFile:
    name: str
    content_type: str
    data: bytes = field(repr=False)

    @property
    def size(self) -> int:
        return len(self.data)


class PixelSurface:
    """Decoded bitmap owned by a single conversion. Close it once encoding is done."""

    def __init__(self, image: Image.Image):
        self.image = image

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    def release(self) -> None:
        self.image.close()

    def __enter__(self) -> "PixelSurface":
        return self

    def __exit__(self, *exc) -> None:
        self.release()


@dataclass(frozen=True)
class EncodedResult:
    data: bytes = field(repr=False)
    codec: OutputCodec
    download_name: str

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def mime_type(self) -> str:
        return self.codec.mime_type


@dataclass(frozen=True)
class ConversionRecord:
    filename: str
    input_type: str
    input_size: int
    status: RecordStatus
    target_bytes: Optional[int] = None
    result: Optional[EncodedResult] = None
    error: Optional[str] = None
    record_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def ok(self) -> bool:
        return self.status is RecordStatus.COMPLETED


@dataclass(frozen=True)
class BatchResult:
    records: list[ConversionRecord]
    status_message: str
    is_error: bool = False
    last_error: Optional[str] = None

    @property
    def converted_count(self) -> int:
        return sum(1 for r in self.records if r.ok)
