"""HTTP byte-range streaming of stored video files."""
import os
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

CONTENT_TYPES = {
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".ogg": "video/ogg",
    ".mov": "video/quicktime",
}
DEFAULT_CONTENT_TYPE = "video/mp4"
READ_BLOCK_SIZE = 64 * 1024


class RangeNotSatisfiable(Exception):
    def __init__(self, range_header: str, file_size: int):
        self.range_header = range_header
        self.file_size = file_size
        super().__init__(f"Requested range not satisfiable: {range_header!r} (size {file_size})")


@dataclass(frozen=True)
class ByteRange:
    start: int
    end: int  # inclusive

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    def content_range(self, file_size: int) -> str:
        return f"bytes {self.start}-{self.end}/{file_size}"


def videos_dir(upload_dir: str) -> Path:
    return Path(upload_dir).resolve() / "videos"


def sanitize_video_filename(filename: str) -> str:
    """Normalize a stored video filename: no whitespace, always an extension."""
    clean = "".join(filename.split())
    if not clean or "/" in clean or "\\" in clean or clean in (".", ".."):
        raise ValueError(f"Invalid video filename: {filename!r}")
    # Some uploads lost the last character of their extension
    if clean.endswith(".mp"):
        clean += "4"
    if not os.path.splitext(clean)[1]:
        clean += ".mp4"
    return clean


def video_content_type(filename: str) -> str:
    return CONTENT_TYPES.get(os.path.splitext(filename)[1].lower(), DEFAULT_CONTENT_TYPE)


def parse_range(range_header: str, file_size: int, max_chunk: int) -> ByteRange:
    """Parse a ``bytes=start-[end]`` header, clamping the span to ``max_chunk`` bytes past start."""
    value = range_header.strip()
    if value.startswith("bytes="):
        value = value[len("bytes="):]
    start_s, _, end_s = value.partition("-")
    try:
        start = int(start_s)
    except ValueError:
        raise RangeNotSatisfiable(range_header, file_size)
    if start < 0 or start >= file_size:
        raise RangeNotSatisfiable(range_header, file_size)
    try:
        end = int(end_s) if end_s.strip() else file_size - 1
    except ValueError:
        raise RangeNotSatisfiable(range_header, file_size)
    if end < start:
        raise RangeNotSatisfiable(range_header, file_size)
    end = min(end, file_size - 1, start + max_chunk)
    return ByteRange(start, end)


def iter_file_range(path: Path, start: int, length: int, block_size: int = READ_BLOCK_SIZE) -> Iterator[bytes]:
    with open(path, "rb") as f:
        f.seek(start)
        remaining = length
        while remaining > 0:
            chunk = f.read(min(block_size, remaining))
            if not chunk:
                break
            remaining -= len(chunk)
            yield chunk
