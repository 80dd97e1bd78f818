"""Pydantic models for baxfer configuration, remote metadata and results."""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from baxfer.core.exceptions import ValidationError

# Size reported for uploads whose length is only known once the stream ends.
UNKNOWN_SIZE = -1

_MIB = 1024 * 1024


# ──────────────────────── Enums ──────────────────────────


class ProviderType(enum.StrEnum):
    """Supported storage providers."""

    S3 = "s3"
    R2 = "r2"
    B2S3 = "b2s3"
    B2 = "b2"
    SFTP = "sftp"
    LOCAL = "local"

    @property
    def is_object_store(self) -> bool:
        return self in (ProviderType.S3, ProviderType.R2, ProviderType.B2S3, ProviderType.B2)


class LogFormat(enum.StrEnum):
    """Structured log output format."""

    CONSOLE = "console"
    JSON = "json"


class UploadOutcome(enum.StrEnum):
    """Per-file result of an upload walk."""

    UPLOADED = "uploaded"
    SKIPPED = "skipped"
    FAILED = "failed"


# ──────────────────── Config Models ──────────────────────


class StorageConfig(BaseModel):
    """Provider selection and connection parameters.

    Credentials are never stored here; each adapter resolves its own from the
    environment (or the SDK's default chain).
    """

    provider: ProviderType = ProviderType.S3

    # Object stores
    bucket: str | None = None
    region: str | None = None
    endpoint_url: str | None = None
    part_size: int = 100 * _MIB
    concurrency: int | None = None  # None = provider default

    # SFTP
    sftp_host: str | None = None
    sftp_port: int = 22
    sftp_user: str | None = None
    sftp_path: str | None = None

    # Local directory
    local_path: Path | None = None

    @field_validator("part_size")
    @classmethod
    def validate_part_size(cls, v: int) -> int:
        if v < 5 * _MIB:
            msg = "Part size must be at least 5 MiB"
            raise ValueError(msg)
        return v

    @field_validator("concurrency")
    @classmethod
    def validate_concurrency(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            msg = "Concurrency must be at least 1"
            raise ValueError(msg)
        return v

    def validate_for_use(self) -> None:
        """Check that the selected provider has everything it needs.

        Raises:
            ValidationError: If a required parameter is missing.
        """
        if self.provider.is_object_store and not self.bucket:
            raise ValidationError(
                f"Provider '{self.provider.value}' requires a bucket (--bucket or BAXFER_BUCKET)"
            )
        if self.provider == ProviderType.SFTP:
            if not (self.sftp_host and self.sftp_user and self.sftp_path):
                raise ValidationError("SFTP provider requires host, user, and path")
        if self.provider == ProviderType.LOCAL and self.local_path is None:
            raise ValidationError("Local provider requires a directory (--local-path)")


class UploadOptions(BaseModel):
    """Options for a directory upload walk."""

    key_prefix: str = ""
    backup_ext: str = ".bak"
    compress: bool = False
    non_interactive: bool = False


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = "INFO"
    log_file: Path | None = None
    format: LogFormat = LogFormat.CONSOLE
    max_size_mb: int = 10
    max_backups: int = 5
    clear_on_start: bool = False
    quiet: bool = False


class AppConfig(BaseModel):
    """Top-level application configuration."""

    storage: StorageConfig = StorageConfig()
    upload: UploadOptions = UploadOptions()
    logging: LoggingConfig = LoggingConfig()


# ──────────────────── Remote / Local Files ───────────────


class FileMetadata(BaseModel):
    """Snapshot of a remote object's attributes at query time."""

    last_modified: datetime
    size: int

    @field_validator("last_modified")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @property
    def size_known(self) -> bool:
        return self.size != UNKNOWN_SIZE


class LocalFile(BaseModel):
    """A file visited during a directory walk."""

    path: Path
    modified: datetime
    size: int

    @field_validator("modified")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @classmethod
    def from_path(cls, path: Path) -> LocalFile:
        st = path.stat()
        return cls(
            path=path,
            modified=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            size=st.st_size,
        )


# ──────────────────── Results ────────────────────────────


class EligibilityDecision(BaseModel):
    """Outcome of the incremental upload check for one key."""

    eligible: bool
    reason: str


class UploadSummary(BaseModel):
    """Keys touched by an upload walk, grouped by outcome."""

    uploaded: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)

    def record(self, key: str, outcome: UploadOutcome) -> None:
        getattr(self, outcome.value).append(key)

    @property
    def total(self) -> int:
        return len(self.uploaded) + len(self.skipped) + len(self.failed)


class PruneSummary(BaseModel):
    """Result of a best-effort prune sweep."""

    examined: int = 0
    deleted: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)


# ──────────────────── Helpers ────────────────────────────


def _as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so local and remote times compare."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _human_size(nbytes: int) -> str:
    """Convert bytes to human-readable string."""
    if nbytes < 0:
        return "unknown"
    for unit in ("B", "KB", "MB", "GB", "TB"):
        if abs(nbytes) < 1024:
            return f"{nbytes:.1f} {unit}"
        nbytes /= 1024  # type: ignore[assignment]
    return f"{nbytes:.1f} PB"
