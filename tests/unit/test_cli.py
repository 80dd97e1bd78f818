"""Tests for the CLI interface."""

from __future__ import annotations

import io
import os
import zipfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from typer.testing import CliRunner

from baxfer import __version__
from baxfer.cli.app import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the user's config file and environment out of CLI runs."""
    from baxfer.core import config

    monkeypatch.setattr(config, "CONFIG_FILE", tmp_path / "no-config.toml")
    for name in list(os.environ):
        if name.startswith("BAXFER_") or name.startswith("SFTP_"):
            monkeypatch.delenv(name)


def _local_args(remote: Path) -> list[str]:
    return ["--provider", "local", "--local-path", str(remote)]


class TestMainApp:
    def test_help(self) -> None:
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "upload" in result.output.lower()
        assert "prune" in result.output.lower()

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_no_args(self) -> None:
        result = runner.invoke(app)
        # Typer returns exit code 2 when showing help via no_args_is_help
        assert result.exit_code == 2

    def test_aliases_are_hidden(self) -> None:
        result = runner.invoke(app, ["u", "--help"])
        assert result.exit_code == 0
        assert "--backupext" in result.output


class TestUploadCommand:
    def test_upload_help(self) -> None:
        result = runner.invoke(app, ["upload", "--help"])
        assert result.exit_code == 0
        assert "--keyprefix" in result.output
        assert "--compress" in result.output

    def test_upload_and_skip(self, backup_root: Path, tmp_path: Path) -> None:
        remote = tmp_path / "remote"
        args = ["--non-interactive", "upload", str(backup_root), *_local_args(remote)]

        first = runner.invoke(app, args)
        assert first.exit_code == 0, first.output
        assert "Uploaded 1" in first.output
        assert (remote / "report.bak").read_bytes() == b"test data"

        second = runner.invoke(app, args)
        assert second.exit_code == 0, second.output
        assert "Uploaded 0, skipped 1" in second.output

    def test_upload_compressed_with_prefix(self, backup_root: Path, tmp_path: Path) -> None:
        remote = tmp_path / "remote"
        result = runner.invoke(app, [
            "--non-interactive",
            "upload", str(backup_root),
            "--keyprefix", "nightly",
            "--compress",
            *_local_args(remote),
        ])
        assert result.exit_code == 0, result.output

        archive_bytes = (remote / "nightly" / "report.zip").read_bytes()
        with zipfile.ZipFile(io.BytesIO(archive_bytes)) as archive:
            assert archive.read("report.bak") == b"test data"

    def test_missing_root(self, tmp_path: Path) -> None:
        result = runner.invoke(app, [
            "--non-interactive", "upload", str(tmp_path / "nope"), *_local_args(tmp_path / "r"),
        ])
        assert result.exit_code == 1
        assert "does not exist" in result.output

    def test_sftp_requires_parameters(self, backup_root: Path) -> None:
        result = runner.invoke(app, [
            "--non-interactive", "upload", str(backup_root), "--provider", "sftp",
        ])
        assert result.exit_code == 1
        assert "SFTP provider requires host, user, and path" in result.output


class TestDownloadCommand:
    def test_download(self, tmp_path: Path) -> None:
        remote = tmp_path / "remote"
        (remote / "db").mkdir(parents=True)
        (remote / "db" / "report.bak").write_bytes(b"test data")
        output = tmp_path / "restored.bak"

        result = runner.invoke(app, [
            "--non-interactive",
            "download", "db/report.bak",
            "--output", str(output),
            *_local_args(remote),
        ])

        assert result.exit_code == 0, result.output
        assert output.read_bytes() == b"test data"

    def test_not_found(self, tmp_path: Path) -> None:
        output = tmp_path / "out.bak"
        result = runner.invoke(app, [
            "--non-interactive",
            "download", "missing.bak",
            "--output", str(output),
            *_local_args(tmp_path / "remote"),
        ])

        assert result.exit_code == 1
        assert "File not found: missing.bak" in result.output
        assert not output.exists()


class TestPruneCommand:
    def test_prune(self, tmp_path: Path) -> None:
        remote = tmp_path / "remote"
        remote.mkdir()
        old = remote / "old.bak"
        new = remote / "new.bak"
        old.write_bytes(b"o")
        new.write_bytes(b"n")
        stamp = (datetime.now(timezone.utc) - timedelta(hours=49)).timestamp()
        os.utime(old, (stamp, stamp))

        result = runner.invoke(app, ["prune", "--age", "48h", *_local_args(remote)])

        assert result.exit_code == 0, result.output
        assert "deleted 1" in result.output
        assert not old.exists()
        assert new.exists()

    def test_age_required(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["prune", *_local_args(tmp_path / "remote")])
        assert result.exit_code == 1
        assert "No age specified for pruning" in result.output

    def test_invalid_age(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["prune", "--age", "soon", *_local_args(tmp_path / "remote")])
        assert result.exit_code == 1
        assert "Invalid duration" in result.output


class TestListCommand:
    def test_list(self, tmp_path: Path) -> None:
        remote = tmp_path / "remote"
        (remote / "db").mkdir(parents=True)
        (remote / "db" / "report.bak").write_bytes(b"test data")

        result = runner.invoke(app, ["list", *_local_args(remote)])

        assert result.exit_code == 0, result.output
        assert "db/report.bak" in result.output

    def test_list_empty(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["list", *_local_args(tmp_path / "remote")])
        assert result.exit_code == 0
        assert "No files found" in result.output


class TestConfigSubcommand:
    def test_config_help(self) -> None:
        result = runner.invoke(app, ["config", "--help"])
        assert result.exit_code == 0
        assert "init" in result.output.lower()
        assert "show" in result.output.lower()

    def test_config_path(self) -> None:
        result = runner.invoke(app, ["config", "path"])
        assert result.exit_code == 0
        assert "Config dir" in result.output

    def test_config_show_missing(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["config", "show", "--path", str(tmp_path / "none.toml")])
        assert result.exit_code == 0
        assert "No config file found" in result.output

    def test_config_init_local(self, tmp_path: Path) -> None:
        target = tmp_path / "config.toml"
        answers = "\n".join(["local", str(tmp_path / "store"), "nightly", ".bak", "n"]) + "\n"

        result = runner.invoke(app, ["config", "init", "--path", str(target)], input=answers)

        assert result.exit_code == 0, result.output
        text = target.read_text()
        assert 'provider = "local"' in text
        assert 'key_prefix = "nightly"' in text

    def test_config_init_rejects_unknown_provider(self, tmp_path: Path) -> None:
        target = tmp_path / "config.toml"
        answers = "\n".join(["dropbox", "local", str(tmp_path / "store"), "", ".bak", "n"]) + "\n"

        result = runner.invoke(app, ["config", "init", "--path", str(target)], input=answers)

        assert result.exit_code == 0, result.output
        assert "dropbox" in result.output
        assert 'provider = "local"' in target.read_text()
