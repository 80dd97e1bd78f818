"""Bounded in-process byte pipe joining a producer thread to a consumer.

The producer writes into :attr:`StreamPipe.writer` and the consumer reads from
:attr:`StreamPipe.reader`. Writes block while the buffer is full, so a slow
consumer throttles the producer. The producer ends the stream with
``close_writer()``; passing an exception there makes the consumer's next
``read`` raise it instead of returning EOF. Closing the reader makes any
pending or later write raise ``BrokenPipeError`` so an abandoned producer
never blocks forever.
"""

from __future__ import annotations

import threading
from typing import Any

DEFAULT_CAPACITY = 4 * 1024 * 1024


class StreamPipe:
    """A bounded, thread-safe byte buffer with explicit error propagation."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._buffer = bytearray()
        self._cond = threading.Condition()
        self._writer_closed = False
        self._reader_closed = False
        self._error: BaseException | None = None
        self.reader = PipeReader(self)
        self.writer = PipeWriter(self)

    # ────────────── Producer side ───────────

    def write(self, data: Any) -> int:
        view = memoryview(data).cast("B")
        total = len(view)
        offset = 0
        with self._cond:
            while offset < total:
                while len(self._buffer) >= self.capacity and not self._reader_closed:
                    self._cond.wait()
                if self._reader_closed:
                    raise BrokenPipeError("pipe reader is closed")
                if self._writer_closed:
                    raise ValueError("write to a closed pipe")
                room = self.capacity - len(self._buffer)
                self._buffer += view[offset:offset + room]
                offset += room
                self._cond.notify_all()
        return total

    def close_writer(self, error: BaseException | None = None) -> None:
        with self._cond:
            if self._writer_closed:
                return
            self._writer_closed = True
            self._error = error
            self._cond.notify_all()

    # ────────────── Consumer side ───────────

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            parts = []
            while chunk := self.read(self.capacity):
                parts.append(chunk)
            return b"".join(parts)
        if size == 0:
            return b""

        with self._cond:
            while not self._buffer and not self._writer_closed and not self._reader_closed:
                self._cond.wait()
            if self._reader_closed:
                raise ValueError("read from a closed pipe")
            if self._buffer:
                data = bytes(self._buffer[:size])
                del self._buffer[:size]
                self._cond.notify_all()
                return data
            if self._error is not None:
                raise self._error
            return b""

    def close_reader(self) -> None:
        with self._cond:
            self._reader_closed = True
            self._buffer.clear()
            self._cond.notify_all()


class PipeReader:
    """Read end of a :class:`StreamPipe`. Not seekable."""

    def __init__(self, pipe: StreamPipe) -> None:
        self._pipe = pipe
        self._on_close: list[Any] = []
        self.closed = False

    def read(self, size: int = -1) -> bytes:
        return self._pipe.read(size)

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def add_close_callback(self, callback: Any) -> None:
        self._on_close.append(callback)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._pipe.close_reader()
        for callback in self._on_close:
            callback()

    def __enter__(self) -> PipeReader:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()


class PipeWriter:
    """Write end of a :class:`StreamPipe`.

    Deliberately has no ``tell``: writers such as :class:`zipfile.ZipFile`
    then treat it as an unseekable stream.
    """

    def __init__(self, pipe: StreamPipe) -> None:
        self._pipe = pipe

    def write(self, data: Any) -> int:
        return self._pipe.write(data)

    def writable(self) -> bool:
        return True

    def flush(self) -> None:
        pass

    def close(self, error: BaseException | None = None) -> None:
        self._pipe.close_writer(error)
