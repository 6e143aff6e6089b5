"""Sources and sinks for cache entry payloads."""

from __future__ import annotations

import os
import shutil
import tempfile
from pathlib import Path
from typing import BinaryIO, Protocol


class EntryReader(Protocol):
    """Consumes the body of a cache hit."""

    def read_from(self, stream: BinaryIO) -> None: ...


class EntryWriter(Protocol):
    """Produces the body of a cache store with a size known up front."""

    @property
    def size(self) -> int: ...

    def write_to(self, sink: BinaryIO) -> None: ...


class BytesEntryReader:
    def __init__(self) -> None:
        self.data = b""

    def read_from(self, stream: BinaryIO) -> None:
        self.data = stream.read()


class BytesEntryWriter:
    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)

    @property
    def size(self) -> int:
        return len(self._data)

    def write_to(self, sink: BinaryIO) -> None:
        sink.write(self._data)


class FileEntryReader:
    """Write a cache hit to ``path``, replacing it only once fully received."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def read_from(self, stream: BinaryIO) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
        try:
            with os.fdopen(fd, "wb") as handle:
                shutil.copyfileobj(stream, handle)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class FileEntryWriter:
    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._size = self.path.stat().st_size

    @property
    def size(self) -> int:
        return self._size

    def write_to(self, sink: BinaryIO) -> None:
        with self.path.open("rb") as handle:
            shutil.copyfileobj(handle, sink)

