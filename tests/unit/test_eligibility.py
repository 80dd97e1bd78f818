"""Tests for the incremental upload decision."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from baxfer.core.exceptions import AccessDeniedError, StorageError, TransportError
from baxfer.core.models import FileMetadata, LocalFile
from baxfer.storage.base import BaseStorage
from baxfer.sync.eligibility import check_eligibility

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def _local(modified: datetime = NOW, size: int = 9) -> LocalFile:
    return LocalFile(path=Path("report.bak"), modified=modified, size=size)


def _storage(exists: bool = True, remote: FileMetadata | None = None) -> MagicMock:
    storage = MagicMock(spec=BaseStorage)
    storage.exists.return_value = exists
    if remote is not None:
        storage.stat.return_value = remote
    return storage


class TestCheckEligibility:
    def test_missing_remote_is_eligible(self) -> None:
        storage = _storage(exists=False)
        decision = check_eligibility(storage, "report.bak", _local(), compressing=False)
        assert decision.eligible
        storage.stat.assert_not_called()

    def test_local_newer_is_eligible(self) -> None:
        storage = _storage(remote=FileMetadata(last_modified=NOW - timedelta(seconds=1), size=9))
        decision = check_eligibility(storage, "report.bak", _local(), compressing=False)
        assert decision.eligible
        assert "newer" in decision.reason

    def test_size_differs_is_eligible(self) -> None:
        storage = _storage(remote=FileMetadata(last_modified=NOW + timedelta(hours=1), size=8))
        decision = check_eligibility(storage, "report.bak", _local(), compressing=False)
        assert decision.eligible
        assert "size" in decision.reason

    def test_size_ignored_when_compressing(self) -> None:
        storage = _storage(remote=FileMetadata(last_modified=NOW + timedelta(hours=1), size=3))
        decision = check_eligibility(storage, "report.zip", _local(), compressing=True)
        assert not decision.eligible

    def test_current_remote_is_skipped(self) -> None:
        storage = _storage(remote=FileMetadata(last_modified=NOW + timedelta(hours=1), size=9))
        decision = check_eligibility(storage, "report.bak", _local(), compressing=False)
        assert not decision.eligible
        storage.exists.assert_called_once_with("report.bak")
        storage.stat.assert_called_once_with("report.bak")

    def test_equal_times_and_sizes_skip(self) -> None:
        storage = _storage(remote=FileMetadata(last_modified=NOW, size=9))
        assert not check_eligibility(storage, "report.bak", _local(), compressing=False).eligible

    def test_exists_failure_propagates(self) -> None:
        storage = _storage()
        storage.exists.side_effect = AccessDeniedError("denied")
        with pytest.raises(AccessDeniedError):
            check_eligibility(storage, "report.bak", _local(), compressing=False)

    def test_stat_failure_propagates(self) -> None:
        storage = _storage()
        storage.stat.side_effect = TransportError("connection reset")
        with pytest.raises(StorageError):
            check_eligibility(storage, "report.bak", _local(), compressing=False)


class TestEligibilityProperties:
    @pytest.mark.parametrize("compressing", [True, False])
    @pytest.mark.parametrize("size", [0, 9, 1 << 40])
    def test_never_skips_missing_remote(self, compressing: bool, size: int) -> None:
        storage = _storage(exists=False)
        decision = check_eligibility(storage, "k", _local(size=size), compressing=compressing)
        assert decision.eligible

    @pytest.mark.parametrize("remote_size", [0, 8, 9, 10])
    def test_always_uploads_newer_local(self, remote_size: int) -> None:
        storage = _storage(remote=FileMetadata(last_modified=NOW - timedelta(days=1), size=remote_size))
        for compressing in (True, False):
            assert check_eligibility(storage, "k", _local(), compressing=compressing).eligible

    @pytest.mark.parametrize("local_size", [0, 8, 10, 123456])
    def test_size_mismatch_uploads_unless_compressing(self, local_size: int) -> None:
        storage = _storage(remote=FileMetadata(last_modified=NOW + timedelta(days=1), size=9))
        assert check_eligibility(storage, "k", _local(size=local_size), compressing=False).eligible
        assert not check_eligibility(storage, "k", _local(size=local_size), compressing=True).eligible
