"""Tests for local storage backend."""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from baxfer.core.exceptions import NotFoundError, TransportError
from baxfer.core.models import UNKNOWN_SIZE, ProviderType, StorageConfig
from baxfer.storage import get_storage
from baxfer.storage.local import LocalStorage


class TestLocalStorage:
    def test_upload(self, sample_file: Path, tmp_path: Path) -> None:
        storage = LocalStorage(tmp_path / "store")
        with open(sample_file, "rb") as f:
            storage.upload("test/backup.dat", f, sample_file.stat().st_size)
        assert (tmp_path / "store" / "test" / "backup.dat").read_bytes() == sample_file.read_bytes()

    def test_upload_unknown_size(self, tmp_path: Path) -> None:
        storage = LocalStorage(tmp_path / "store")
        storage.upload("stream.zip", io.BytesIO(b"PK\x03\x04"), UNKNOWN_SIZE)
        assert storage.stat("stream.zip").size == 4

    def test_short_read(self, tmp_path: Path) -> None:
        storage = LocalStorage(tmp_path / "store")
        with pytest.raises(TransportError, match="Short upload"):
            storage.upload("short.bak", io.BytesIO(b"abc"), 10)

    def test_download(self, sample_file: Path, tmp_path: Path) -> None:
        storage = LocalStorage(tmp_path / "store")
        with open(sample_file, "rb") as f:
            storage.upload("test/backup.dat", f, UNKNOWN_SIZE)

        sink = io.BytesIO()
        storage.download("test/backup.dat", sink)
        assert sink.getvalue() == sample_file.read_bytes()

    def test_download_missing(self, tmp_path: Path) -> None:
        storage = LocalStorage(tmp_path / "store")
        with pytest.raises(NotFoundError) as excinfo:
            storage.download("nonexistent.dat", io.BytesIO())
        assert excinfo.value.user_message == "File not found: nonexistent.dat"

    def test_list(self, tmp_path: Path) -> None:
        storage = LocalStorage(tmp_path / "store")
        for key in ("db/backup1.bak", "db/backup2.bak", "other/backup3.bak"):
            storage.upload(key, io.BytesIO(b"x"), 1)

        assert storage.list() == ["db/backup1.bak", "db/backup2.bak", "other/backup3.bak"]
        assert storage.list("db") == ["db/backup1.bak", "db/backup2.bak"]
        assert storage.list("db/backup1.bak") == ["db/backup1.bak"]

    def test_list_empty(self, tmp_path: Path) -> None:
        storage = LocalStorage(tmp_path / "store")
        assert storage.list() == []
        assert storage.list("missing/") == []

    def test_delete(self, tmp_path: Path) -> None:
        storage = LocalStorage(tmp_path / "store")
        storage.upload("test/backup.bak", io.BytesIO(b"x"), 1)
        assert storage.exists("test/backup.bak")

        storage.delete("test/backup.bak")
        assert not storage.exists("test/backup.bak")

    def test_delete_missing(self, tmp_path: Path) -> None:
        storage = LocalStorage(tmp_path / "store")
        with pytest.raises(NotFoundError):
            storage.delete("nonexistent.dat")

    def test_stat(self, tmp_path: Path) -> None:
        storage = LocalStorage(tmp_path / "store")
        storage.upload("report.bak", io.BytesIO(b"test data"), 9)
        meta = storage.stat("report.bak")
        assert meta.size == 9
        assert meta.last_modified.tzinfo is not None

    def test_stat_missing(self, tmp_path: Path) -> None:
        storage = LocalStorage(tmp_path / "store")
        with pytest.raises(NotFoundError):
            storage.stat("nope.bak")

    def test_context_manager(self, tmp_path: Path) -> None:
        with LocalStorage(tmp_path / "store") as storage:
            assert storage.provider == "local"


class TestGetStorage:
    def test_local(self, local_storage_config: StorageConfig) -> None:
        storage = get_storage(local_storage_config)
        assert isinstance(storage, LocalStorage)

    def test_sftp_incomplete(self) -> None:
        from baxfer.core.exceptions import ValidationError

        with pytest.raises(ValidationError, match="SFTP provider requires host, user, and path"):
            get_storage(StorageConfig(provider=ProviderType.SFTP, sftp_host="nas"))

    def test_local_without_directory(self) -> None:
        from baxfer.core.exceptions import ValidationError

        with pytest.raises(ValidationError, match="requires a directory"):
            get_storage(StorageConfig(provider=ProviderType.LOCAL))
