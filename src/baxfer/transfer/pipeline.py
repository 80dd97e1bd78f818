"""Upload sources and download sinks for a single file transfer.

A transfer never changes the bytes it moves: the observing wrappers only count
them (for an optional progress display) and poll the cancellation token.
"""

from __future__ import annotations

import contextlib
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any

from baxfer.compression.compressor import open_zip_stream, should_compress
from baxfer.core.cancel import CancellationToken
from baxfer.core.models import UNKNOWN_SIZE

ByteObserver = Callable[[int], None]

# Called with (description, total bytes or None); the context yields the
# observer for that transfer.
ProgressFactory = Callable[[str, "int | None"], contextlib.AbstractContextManager[ByteObserver]]


def no_progress(_description: str, _total: int | None) -> contextlib.AbstractContextManager[None]:
    return contextlib.nullcontext()


class ObservedReader:
    """Read-through wrapper that reports byte counts and honours cancellation."""

    def __init__(
            self,
            reader: IO[bytes] | Any,
            on_bytes: ByteObserver | None = None,
            token: CancellationToken | None = None,
    ) -> None:
        self._reader = reader
        self._on_bytes = on_bytes
        self._token = token
        self.bytes_read = 0

    def read(self, size: int = -1) -> bytes:
        if self._token is not None:
            self._token.raise_if_cancelled()
        data = self._reader.read(size)
        if data:
            self.bytes_read += len(data)
            if self._on_bytes is not None:
                self._on_bytes(len(data))
        return data

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def close(self) -> None:
        self._reader.close()


class ObservedWriter:
    """Write-through wrapper that reports byte counts and honours cancellation."""

    def __init__(
            self,
            writer: IO[bytes] | Any,
            on_bytes: ByteObserver | None = None,
            token: CancellationToken | None = None,
    ) -> None:
        self._writer = writer
        self._on_bytes = on_bytes
        self._token = token
        self.bytes_written = 0

    def write(self, data: bytes) -> int:
        if self._token is not None:
            self._token.raise_if_cancelled()
        written = self._writer.write(data)
        count = len(data) if written is None else written
        self.bytes_written += count
        if self._on_bytes is not None:
            self._on_bytes(count)
        return count

    def writable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def flush(self) -> None:
        self._writer.flush()


@dataclass
class UploadSource:
    """The stream handed to an adapter's ``upload`` for one file."""

    reader: ObservedReader
    size: int
    compressed: bool


@contextlib.contextmanager
def open_upload_source(
        path: Path,
        *,
        compress: bool,
        size: int,
        on_bytes: ByteObserver | None = None,
        token: CancellationToken | None = None,
        log: Any | None = None,
) -> Iterator[UploadSource]:
    """Open *path* for upload, zipping it on the fly when requested.

    Compressed sources report ``UNKNOWN_SIZE``; raw sources report *size*.
    The underlying file (and the archiving worker, if any) is released on
    exit.
    """
    if should_compress(path, compress):
        raw: Any = open_zip_stream(path, log=log)
        source = UploadSource(ObservedReader(raw, on_bytes, token), UNKNOWN_SIZE, True)
    else:
        raw = open(path, "rb")
        source = UploadSource(ObservedReader(raw, on_bytes, token), size, False)
    try:
        yield source
    finally:
        raw.close()


@contextlib.contextmanager
def open_download_sink(
        path: Path,
        *,
        on_bytes: ByteObserver | None = None,
        token: CancellationToken | None = None,
) -> Iterator[ObservedWriter]:
    """Create or truncate *path* and yield an observed writer into it."""
    with open(path, "wb") as fout:
        yield ObservedWriter(fout, on_bytes, token)
