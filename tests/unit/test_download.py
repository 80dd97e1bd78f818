"""Tests for the single-key download."""

from __future__ import annotations

from contextlib import nullcontext
from datetime import datetime, timezone
from pathlib import Path

import pytest

from baxfer.core.cancel import CancellationToken
from baxfer.core.exceptions import CancelledError, NotFoundError, ValidationError
from baxfer.sync.download import default_output_name, download_file

from conftest import MemoryStorage


class TestDefaultOutputName:
    def test_nested_key(self) -> None:
        assert default_output_name("nightly/db/report.bak") == "report.bak"

    def test_plain_key(self) -> None:
        assert default_output_name("report.zip") == "report.zip"


class TestDownloadFile:
    def test_download(self, memory_storage: MemoryStorage, tmp_path: Path) -> None:
        memory_storage.put("db/report.bak", b"test data", datetime.now(timezone.utc))
        target = tmp_path / "out.bak"

        result = download_file(memory_storage, "db/report.bak", target)

        assert result == target
        assert target.read_bytes() == b"test data"

    def test_default_output(
            self, memory_storage: MemoryStorage, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.chdir(tmp_path)
        memory_storage.put("db/report.bak", b"test data", datetime.now(timezone.utc))

        result = download_file(memory_storage, "db/report.bak")

        assert result == Path("report.bak")
        assert (tmp_path / "report.bak").read_bytes() == b"test data"

    def test_truncates_existing(self, memory_storage: MemoryStorage, tmp_path: Path) -> None:
        target = tmp_path / "out.bak"
        target.write_bytes(b"much longer previous content")
        memory_storage.put("k", b"new", datetime.now(timezone.utc))

        download_file(memory_storage, "k", target)

        assert target.read_bytes() == b"new"

    def test_not_found(self, memory_storage: MemoryStorage, tmp_path: Path) -> None:
        target = tmp_path / "missing.bak"

        with pytest.raises(NotFoundError) as excinfo:
            download_file(memory_storage, "missing.bak", target)

        assert excinfo.value.user_message == "File not found: missing.bak"
        assert not target.exists()

    def test_empty_key(self, memory_storage: MemoryStorage) -> None:
        with pytest.raises(ValidationError):
            download_file(memory_storage, "")

    def test_progress(self, memory_storage: MemoryStorage, tmp_path: Path) -> None:
        memory_storage.put("k", b"0123456789", datetime.now(timezone.utc))
        seen: list[int] = []

        download_file(
            memory_storage, "k", tmp_path / "k", progress=lambda _d, _t: nullcontext(seen.append)
        )

        assert sum(seen) == 10

    def test_cancelled(self, memory_storage: MemoryStorage, tmp_path: Path) -> None:
        memory_storage.put("k", b"data", datetime.now(timezone.utc))
        token = CancellationToken()
        token.cancel()

        with pytest.raises(CancelledError):
            download_file(memory_storage, "k", tmp_path / "k", token=token)

        assert memory_storage.calls_to("download") == []
