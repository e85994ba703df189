"""Data models for the webdav_uploader library."""

from __future__ import annotations

import enum
import io
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO


class DirectoryState(enum.Enum):
    """Outcome of probing a remote collection."""

    ABSENT = "absent"
    PRESENT = "present"
    UNAUTHORIZED = "unauthorized"


@dataclass(frozen=True)
class UploadTarget:
    """A byte source paired with its destination on the server.

    ``source`` is either a local file path or an open binary stream. Streams
    are closed by the uploader once the transfer finishes, whatever its
    outcome.
    """

    remote_path: str
    source: Path | BinaryIO
    size: int | None = None

    def __post_init__(self) -> None:
        if not self.remote_path or self.remote_path.startswith("/"):
            raise ValueError(f"Invalid remote path: {self.remote_path!r}")
        if self.remote_path.endswith("/"):
            raise ValueError(f"Remote path names a directory: {self.remote_path!r}")
        if isinstance(self.source, str):
            object.__setattr__(self, "source", Path(self.source))

    @classmethod
    def from_bytes(cls, remote_path: str, data: bytes) -> UploadTarget:
        """Build a target from an in-memory payload."""
        return cls(remote_path, io.BytesIO(data), size=len(data))

    @property
    def filesize(self) -> int | None:
        """Size in bytes, or None when the stream length is unknown."""
        if self.size is not None:
            return self.size
        if isinstance(self.source, Path):
            return self.source.stat().st_size
        return None

    @property
    def parent(self) -> str:
        """Remote directory containing this target ("" for the root)."""
        return self.remote_path.rpartition("/")[0]

    @contextmanager
    def open(self) -> Iterator[BinaryIO]:
        """Open the byte source, closing it on exit."""
        stream = self.source.open("rb") if isinstance(self.source, Path) else self.source
        try:
            yield stream
        finally:
            stream.close()


@dataclass(frozen=True)
class UploadResult:
    """Result of a successful publish."""

    published: list[str]
    uploaded: list[str]
    bytes_sent: int
    timestamp: int | None = None
