"""Local filesystem storage backend (a directory, e.g. a NAS mount)."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any

from baxfer.core.exceptions import TransportError
from baxfer.core.models import UNKNOWN_SIZE, FileMetadata
from baxfer.logging import get_logger
from baxfer.storage.base import BaseStorage
from baxfer.storage.errors import is_not_found, normalize_os_error

_CHUNK_SIZE = 256 * 1024


class LocalStorage(BaseStorage):
    """Store backup files under a directory on the local filesystem."""

    provider = "local"

    def __init__(self, base_path: Path, log: Any | None = None) -> None:
        self.base_path = base_path.expanduser().resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.log = log or get_logger(__name__)

    def _full_path(self, key: str) -> Path:
        return self.base_path / key.lstrip("/")

    def upload(self, key: str, reader: IO[bytes], size: int) -> None:
        """Stream *reader* into the destination file."""
        dest = self._full_path(key)
        written = 0
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            with open(dest, "wb") as out:
                for chunk in iter(lambda: reader.read(_CHUNK_SIZE), b""):
                    out.write(chunk)
                    written += len(chunk)
        except OSError as exc:
            raise normalize_os_error(self.provider, key, exc, "upload") from exc

        if size != UNKNOWN_SIZE and written != size:
            raise TransportError(f"Short upload for {key}: wrote {written} of {size} bytes")
        self.log.debug("local_upload_complete", destination=str(dest), size=written)

    def download(self, key: str, writer: IO[bytes]) -> None:
        source = self._full_path(key)
        try:
            with open(source, "rb") as src:
                for chunk in iter(lambda: src.read(_CHUNK_SIZE), b""):
                    writer.write(chunk)
        except OSError as exc:
            raise normalize_os_error(self.provider, key, exc, "download") from exc

    def list(self, prefix: str = "") -> list[str]:
        """List files under the base path, optionally below a prefix directory."""
        search = self._full_path(prefix) if prefix else self.base_path
        if search.is_file():
            return [search.relative_to(self.base_path).as_posix()]
        if not search.exists():
            return []

        return [
            file_path.relative_to(self.base_path).as_posix()
            for file_path in sorted(search.rglob("*"))
            if file_path.is_file()
        ]

    def delete(self, key: str) -> None:
        target = self._full_path(key)
        try:
            target.unlink()
        except OSError as exc:
            raise normalize_os_error(self.provider, key, exc, "delete") from exc
        self.log.debug("local_delete_complete", path=str(target))

    def exists(self, key: str) -> bool:
        try:
            self._full_path(key).stat()
            return True
        except OSError as exc:
            if is_not_found(exc):
                return False
            raise normalize_os_error(self.provider, key, exc, "existence check") from exc

    def stat(self, key: str) -> FileMetadata:
        try:
            st = self._full_path(key).stat()
        except OSError as exc:
            raise normalize_os_error(self.provider, key, exc, "stat") from exc
        return FileMetadata(
            last_modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            size=st.st_size,
        )

    def __repr__(self) -> str:
        return f"<LocalStorage {self.base_path}>"
