"""Directory walk that uploads backup files incrementally."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from baxfer.compression.compressor import should_compress
from baxfer.core.cancel import CancellationToken
from baxfer.core.exceptions import BaxferError, ValidationError
from baxfer.core.models import LocalFile, UploadOptions, UploadOutcome, UploadSummary
from baxfer.logging import get_logger
from baxfer.storage.base import BaseStorage
from baxfer.sync.eligibility import check_eligibility
from baxfer.sync.keys import compressed_key, construct_key, file_extension
from baxfer.transfer.pipeline import ProgressFactory, no_progress, open_upload_source


class DirectoryUploader:
    """Walks a root directory and uploads every matching file that changed.

    Files are processed one at a time in a stable (sorted) order. Skips are
    logged and the walk moves on; any other failure is recorded in
    :attr:`summary` and aborts the walk.
    """

    def __init__(
            self,
            storage: BaseStorage,
            options: UploadOptions,
            *,
            token: CancellationToken | None = None,
            progress: ProgressFactory | None = None,
            log: Any | None = None,
    ) -> None:
        self.storage = storage
        self.options = options
        self.token = token or CancellationToken()
        self.progress = progress or no_progress
        self.log = log or get_logger(__name__)
        self.summary = UploadSummary()

    def run(self, root: Path | str | None) -> UploadSummary:
        """Upload every eligible file below *root*.

        Raises:
            ValidationError: If no root is given or it is not a directory.
            CancelledError: If the token is cancelled mid-walk.
            BaxferError: On the first unrecoverable per-file failure.
        """
        if not root:
            raise ValidationError("No root directory specified")
        root = Path(root)
        if not root.is_dir():
            raise ValidationError(f"Root directory does not exist: {root}")

        self.log.info(
            "upload_started",
            root=str(root),
            key_prefix=self.options.key_prefix,
            backup_ext=self.options.backup_ext,
            compress=self.options.compress,
        )

        for dirpath, dirnames, filenames in os.walk(root, onerror=self._walk_error):
            dirnames.sort()
            for name in sorted(filenames):
                self.token.raise_if_cancelled()
                path = Path(dirpath) / name
                if not path.is_file() or file_extension(name) != self.options.backup_ext:
                    continue
                self.upload_file(root, path)

        self.log.info(
            "upload_finished",
            uploaded=len(self.summary.uploaded),
            skipped=len(self.summary.skipped),
        )
        return self.summary

    def upload_file(self, root: Path, path: Path) -> UploadOutcome:
        """Run the skip check and, if needed, the transfer for one file."""
        key = str(path)
        compress = should_compress(path, self.options.compress)
        try:
            key = construct_key(root, self.options.key_prefix, path)
            if compress:
                key = compressed_key(key)

            local = LocalFile.from_path(path)
            decision = check_eligibility(
                self.storage, key, local, compressing=compress, log=self.log
            )
            if not decision.eligible:
                self.log.info("upload_skipped", file=str(path), key=key, reason=decision.reason)
                self.summary.record(key, UploadOutcome.SKIPPED)
                return UploadOutcome.SKIPPED

            self._transfer(local, key, compress)
        except BaxferError as exc:
            self._failed(path, key, exc)
            raise
        except OSError as exc:
            self._failed(path, key, exc)
            raise BaxferError(f"Failed to upload {path}: {exc}") from exc

        self.summary.record(key, UploadOutcome.UPLOADED)
        return UploadOutcome.UPLOADED

    def _transfer(self, local: LocalFile, key: str, compress: bool) -> None:
        total = None if compress else local.size
        with self.progress(f"Uploading {local.path.name}", total) as on_bytes:
            with open_upload_source(
                local.path,
                compress=compress,
                size=local.size,
                on_bytes=on_bytes,
                token=self.token,
                log=self.log,
            ) as source:
                self.storage.upload(key, source.reader, source.size)

        self.log.info(
            "file_uploaded",
            file=str(local.path),
            key=key,
            size=source.size,
            compressed=source.compressed,
            bytes_sent=source.reader.bytes_read,
        )

    def _failed(self, path: Path, key: str, exc: Exception) -> None:
        self.summary.record(key, UploadOutcome.FAILED)
        self.log.error("upload_failed", file=str(path), key=key, error=str(exc))

    @staticmethod
    def _walk_error(exc: OSError) -> None:
        raise BaxferError(f"Failed to walk directory: {exc}") from exc


def upload_directory(
        storage: BaseStorage,
        root: Path | str | None,
        options: UploadOptions,
        *,
        token: CancellationToken | None = None,
        progress: ProgressFactory | None = None,
        log: Any | None = None,
) -> UploadSummary:
    """Convenience wrapper around :class:`DirectoryUploader`."""
    uploader = DirectoryUploader(storage, options, token=token, progress=progress, log=log)
    return uploader.run(root)
