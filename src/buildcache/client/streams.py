"""Readable stream adapters used while transferring cache entries."""

from __future__ import annotations

import io
from typing import Iterable, Iterator


class ResponseStream(io.RawIOBase):
    """Expose an iterator of byte chunks (e.g. ``httpx.Response.iter_bytes()``) as a raw stream."""

    def __init__(self, chunks: Iterable[bytes]) -> None:
        self._chunks: Iterator[bytes] = iter(chunks)
        self._pending = memoryview(b"")
        self._exhausted = False

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        target = memoryview(buffer).cast("B")
        if not len(target):
            return 0
        while not len(self._pending):
            if self._exhausted:
                return 0
            try:
                self._pending = memoryview(next(self._chunks))
            except StopIteration:
                self._exhausted = True
                return 0
        size = min(len(target), len(self._pending))
        target[:size] = self._pending[:size]
        self._pending = self._pending[size:]
        return size


class CountingStream(io.RawIOBase):
    """Decorate a readable stream and count every byte handed to the consumer.

    The count is final once the consumer has drained the stream.
    """

    def __init__(self, raw) -> None:
        self._raw = raw
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        if hasattr(self._raw, "readinto"):
            result = self._raw.readinto(buffer)
        else:
            data = self._raw.read(len(buffer))
            result = len(data) if data else 0
            if result:
                memoryview(buffer).cast("B")[:result] = data
        if result is None:
            return None  # type: ignore[return-value]
        if result > 0:
            self._count += result
        return result

    def close(self) -> None:
        try:
            close = getattr(self._raw, "close", None)
            if close is not None:
                close()
        finally:
            super().close()
