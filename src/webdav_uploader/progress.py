"""Progress reporting for uploads."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import BinaryIO, Protocol

CHUNK_SIZE = 16384


class ProgressListener(Protocol):
    """Receives progress events from an upload, on the uploading thread."""

    def set_title(self, title: str) -> None: ...

    def add_item(self, item: str) -> None: ...

    def set_item_count(self, count: int, total: int) -> None: ...

    def set_count(self, count: int, total: int) -> None: ...

    def item_done(self, item: str) -> None: ...

    def done(self) -> None: ...


class NullProgress:
    """Listener that ignores every event."""

    def set_title(self, title: str) -> None:
        pass

    def add_item(self, item: str) -> None:
        pass

    def set_item_count(self, count: int, total: int) -> None:
        pass

    def set_count(self, count: int, total: int) -> None:
        pass

    def item_done(self, item: str) -> None:
        pass

    def done(self) -> None:
        pass


class RecordingProgress(NullProgress):
    """Listener that keeps every event, handy for diagnostics and tests."""

    def __init__(self) -> None:
        self.titles: list[str] = []
        self.items: list[str] = []
        self.item_counts: dict[str, list[int]] = {}
        self.counts: list[tuple[int, int]] = []
        self.finished: list[str] = []
        self.is_done = False
        self._current: str | None = None

    def set_title(self, title: str) -> None:
        self.titles.append(title)

    def add_item(self, item: str) -> None:
        self.items.append(item)
        self.item_counts.setdefault(item, [])
        self._current = item

    def set_item_count(self, count: int, total: int) -> None:
        if self._current is not None:
            self.item_counts[self._current].append(count)

    def set_count(self, count: int, total: int) -> None:
        self.counts.append((count, total))

    def item_done(self, item: str) -> None:
        self.finished.append(item)
        self._current = None

    def done(self) -> None:
        self.is_done = True


def iter_chunks(
    stream: BinaryIO,
    on_progress: Callable[[int], None],
    chunk_size: int = CHUNK_SIZE,
) -> Iterator[bytes]:
    """Yield ``stream`` in order, reporting the cumulative byte count.

    The count for a chunk is reported once the transport has taken it and
    asks for the next one.
    """
    count = 0
    on_progress(count)
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        yield chunk
        count += len(chunk)
        on_progress(count)
