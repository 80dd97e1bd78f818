"""Streaming single-entry zip compression for uploads.

The archive is written by a worker thread into a bounded :class:`StreamPipe`
while the uploader reads from the other end, so a file of any size is
compressed and sent without ever being held in memory or staged on disk. The
final archive size is only known at the end of the stream.
"""

from __future__ import annotations

import threading
import zipfile
from pathlib import Path
from typing import Any

from baxfer.core.exceptions import CompressionError
from baxfer.logging import get_logger
from baxfer.transfer.pipe import DEFAULT_CAPACITY, PipeReader, PipeWriter, StreamPipe

# Extensions whose content is already compressed; zipping them again wastes CPU.
COMPRESSED_EXTENSIONS = frozenset({
    # archives
    ".zip", ".gz", ".tgz", ".bz2", ".tbz2", ".xz", ".txz", ".7z", ".rar",
    ".zst", ".lz4", ".lzma", ".z", ".cab", ".jar",
    # images
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".heic", ".avif",
    # audio
    ".mp3", ".aac", ".ogg", ".opus", ".m4a", ".flac", ".wma",
    # video
    ".mp4", ".m4v", ".mkv", ".mov", ".avi", ".webm", ".wmv",
})

ARCHIVE_EXTENSION = ".zip"

# Buffer size for streaming I/O (256 KB)
_CHUNK_SIZE = 256 * 1024
_JOIN_TIMEOUT = 5.0


def is_compressed_format(path: Path | str) -> bool:
    """True when the file extension marks an already-compressed format."""
    return Path(path).suffix.lower() in COMPRESSED_EXTENSIONS


def should_compress(path: Path | str, compress: bool) -> bool:
    """Whether an upload of *path* should be wrapped in a zip archive."""
    return compress and not is_compressed_format(path)


def write_archive(source: Path, sink: Any, arcname: str | None = None) -> None:
    """Write a single-entry deflated zip of *source* into *sink*.

    *sink* only needs ``write`` and ``flush``; an unseekable sink gets an
    archive with data descriptors, which every zip reader accepts.
    """
    zinfo = zipfile.ZipInfo.from_file(source, arcname or source.name, strict_timestamps=False)
    zinfo.compress_type = zipfile.ZIP_DEFLATED
    with zipfile.ZipFile(sink, mode="w", compression=zipfile.ZIP_DEFLATED) as archive:
        with open(source, "rb") as fin, archive.open(zinfo, mode="w") as entry:
            for chunk in iter(lambda: fin.read(_CHUNK_SIZE), b""):
                entry.write(chunk)


def open_zip_stream(
        source: Path,
        *,
        capacity: int = DEFAULT_CAPACITY,
        log: Any | None = None,
) -> PipeReader:
    """Start archiving *source* on a worker thread and return the read end.

    Any failure on the worker side (unreadable file, zip error) surfaces as a
    :class:`CompressionError` from the reader's next ``read``. Closing the
    reader early stops the worker.
    """
    log = log or get_logger(__name__)
    pipe = StreamPipe(capacity)

    def _produce(writer: PipeWriter) -> None:
        try:
            write_archive(source, writer)
        except BrokenPipeError:
            # Consumer went away; nothing left to report to.
            writer.close()
        except Exception as exc:
            log.error("compression_failed", file=str(source), error=str(exc))
            error = CompressionError(f"Compression failed for {source}: {exc}")
            error.__cause__ = exc
            writer.close(error)
        else:
            writer.close()

    worker = threading.Thread(
        target=_produce,
        args=(pipe.writer,),
        name=f"zip-{source.name}",
        daemon=True,
    )
    pipe.reader.add_close_callback(lambda: worker.join(_JOIN_TIMEOUT))
    worker.start()
    log.debug("compression_started", file=str(source))
    return pipe.reader
