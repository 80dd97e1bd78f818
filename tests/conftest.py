"""Shared pytest fixtures."""

from __future__ import annotations

import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import IO

import pytest

from baxfer.core.exceptions import NotFoundError
from baxfer.core.models import FileMetadata, ProviderType, StorageConfig
from baxfer.storage.base import BaseStorage


class MemoryStorage(BaseStorage):
    """In-memory backend that records every call it receives."""

    provider = "memory"

    def __init__(self) -> None:
        self.objects: dict[str, bytes] = {}
        self.modified: dict[str, datetime] = {}
        self.upload_sizes: dict[str, int] = {}
        self.calls: list[tuple[str, str]] = []
        self.close_count = 0

    def put(self, key: str, data: bytes, modified: datetime) -> None:
        self.objects[key] = data
        self.modified[key] = modified

    def calls_to(self, method: str) -> list[str]:
        return [key for name, key in self.calls if name == method]

    def upload(self, key: str, reader: IO[bytes], size: int) -> None:
        self.calls.append(("upload", key))
        data = b"".join(iter(lambda: reader.read(64 * 1024), b""))
        self.put(key, data, datetime.now(timezone.utc))
        self.upload_sizes[key] = size

    def download(self, key: str, writer: IO[bytes]) -> None:
        self.calls.append(("download", key))
        if key not in self.objects:
            raise NotFoundError(f"memory download failed for {key}", hint=f"File not found: {key}")
        writer.write(self.objects[key])

    def list(self, prefix: str = "") -> list[str]:
        self.calls.append(("list", prefix))
        return sorted(k for k in self.objects if k.startswith(prefix))

    def delete(self, key: str) -> None:
        self.calls.append(("delete", key))
        self.objects.pop(key, None)
        self.modified.pop(key, None)

    def exists(self, key: str) -> bool:
        self.calls.append(("exists", key))
        return key in self.objects

    def stat(self, key: str) -> FileMetadata:
        self.calls.append(("stat", key))
        if key not in self.objects:
            raise NotFoundError(f"memory stat failed for {key}")
        return FileMetadata(last_modified=self.modified[key], size=len(self.objects[key]))

    def close(self) -> None:
        self.close_count += 1


def set_mtime(path: Path, when: datetime) -> None:
    ts = when.timestamp()
    os.utime(path, (ts, ts))


@pytest.fixture()
def memory_storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def sample_file(tmp_path: Path) -> Path:
    """Create a sample file with repeating content (good for compression)."""
    f = tmp_path / "sample.dat"
    content = b"The quick brown fox jumps over the lazy dog.\n" * 10_000
    f.write_bytes(content)
    return f


@pytest.fixture()
def backup_root(tmp_path: Path) -> Path:
    """A directory with one ``report.bak`` of 9 bytes, modified an hour ago."""
    root = tmp_path / "backups"
    root.mkdir()
    report = root / "report.bak"
    report.write_bytes(b"test data")
    set_mtime(report, datetime.now(timezone.utc) - timedelta(hours=1))
    return root


@pytest.fixture()
def local_storage_config(tmp_path: Path) -> StorageConfig:
    """Return a StorageConfig for local storage in a temp directory."""
    return StorageConfig(
        provider=ProviderType.LOCAL,
        local_path=tmp_path / "remote",
    )
