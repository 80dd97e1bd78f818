"""Single-key download."""

from __future__ import annotations

import posixpath
from pathlib import Path
from typing import Any

from baxfer.core.cancel import CancellationToken
from baxfer.core.exceptions import NotFoundError, ValidationError
from baxfer.logging import get_logger
from baxfer.storage.base import BaseStorage
from baxfer.transfer.pipeline import ProgressFactory, no_progress, open_download_sink


def default_output_name(key: str) -> str:
    """Local file name used when no output path is given: the key's last element."""
    return posixpath.basename(key.rstrip("/"))


def download_file(
        storage: BaseStorage,
        key: str,
        output: Path | str | None = None,
        *,
        token: CancellationToken | None = None,
        progress: ProgressFactory | None = None,
        log: Any | None = None,
) -> Path:
    """Download *key* into *output* (default: the key's base name).

    The output file is created or truncated before the transfer starts. When
    the key does not exist the empty file is removed again.

    Raises:
        ValidationError: If *key* is empty.
        NotFoundError: If the key does not exist remotely.
    """
    log = log or get_logger(__name__)
    progress = progress or no_progress

    if not key:
        raise ValidationError("No key specified for download")
    target = Path(output) if output else Path(default_output_name(key))
    if not target.name:
        raise ValidationError(f"Cannot derive a local file name from key: {key}")
    if token is not None:
        token.raise_if_cancelled()

    log.info("download_started", key=key, output=str(target))
    try:
        with progress(f"Downloading {target.name}", None) as on_bytes:
            with open_download_sink(target, on_bytes=on_bytes, token=token) as sink:
                storage.download(key, sink)
    except NotFoundError:
        target.unlink(missing_ok=True)
        log.warning("download_not_found", key=key)
        raise
    except Exception as exc:
        log.error("download_failed", key=key, error=str(exc))
        raise

    log.info("file_downloaded", key=key, output=str(target), bytes=sink.bytes_written)
    return target
