"""Configuration loading and management for baxfer.

Configuration sources (highest to lowest priority):
  1. CLI arguments (passed directly)
  2. Environment variables (BAXFER_* prefix, plus the SFTP_* variables)
  3. Config file (~/.config/baxfer/config.toml)
  4. Defaults
"""

from __future__ import annotations

import contextlib
import os
import re
import sys
import tomllib
from datetime import timedelta
from pathlib import Path
from typing import Any

import tomli_w
from pydantic import ValidationError as PydanticValidationError

from baxfer.core.exceptions import ValidationError
from baxfer.core.models import (
    AppConfig,
    LogFormat,
    LoggingConfig,
    ProviderType,
    StorageConfig,
    UploadOptions,
)

# ──────────────────── Paths ──────────────────────────────

_APP_NAME = "baxfer"


def _get_config_dir() -> Path:
    """Return the platform-appropriate config directory."""
    if sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    elif sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return base / _APP_NAME


def _get_data_dir() -> Path:
    """Return the platform-appropriate data directory."""
    if sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    elif sys.platform == "win32":
        base = Path(os.environ.get("LOCALAPPDATA", Path.home() / "AppData" / "Local"))
    else:
        base = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))
    return base / _APP_NAME


CONFIG_DIR = _get_config_dir()
DATA_DIR = _get_data_dir()
CONFIG_FILE = CONFIG_DIR / "config.toml"
LOG_DIR = DATA_DIR / "logs"

# ──────────────────── Environment Loading ────────────────

_ENV_PREFIX = "BAXFER_"


def _env(key: str, default: str | None = None) -> str | None:
    """Read an environment variable with the BAXFER_ prefix."""
    return os.environ.get(f"{_ENV_PREFIX}{key}", default)


def _load_storage_from_env() -> dict[str, Any]:
    """Load storage config overrides from environment."""
    overrides: dict[str, Any] = {}
    try:
        if p := _env("PROVIDER"):
            overrides["provider"] = ProviderType(p.lower())
        if b := _env("BUCKET"):
            overrides["bucket"] = b
        if r := _env("REGION"):
            overrides["region"] = r
        if e := _env("ENDPOINT_URL"):
            overrides["endpoint_url"] = e
        if lp := _env("LOCAL_PATH"):
            overrides["local_path"] = Path(lp)
        # The SFTP variables keep their historical, unprefixed names.
        if h := os.environ.get("SFTP_HOST"):
            overrides["sftp_host"] = h
        if port := os.environ.get("SFTP_PORT"):
            overrides["sftp_port"] = int(port)
        if u := os.environ.get("SFTP_USER"):
            overrides["sftp_user"] = u
        if sp := os.environ.get("SFTP_PATH"):
            overrides["sftp_path"] = sp
    except ValueError as exc:
        raise ValidationError(f"Invalid storage config in environment: {exc}") from exc
    return overrides


def _load_upload_from_env() -> dict[str, Any]:
    """Load upload option overrides from environment."""
    overrides: dict[str, Any] = {}
    if kp := _env("KEY_PREFIX"):
        overrides["key_prefix"] = kp
    if ext := _env("BACKUP_EXT"):
        overrides["backup_ext"] = ext
    if c := _env("COMPRESS"):
        overrides["compress"] = c.lower() in ("true", "1", "yes")
    return overrides


def _load_logging_from_env() -> dict[str, Any]:
    """Load logging config overrides from environment."""
    overrides: dict[str, Any] = {}
    if ll := _env("LOG_LEVEL"):
        overrides["level"] = ll.upper()
    if lf := _env("LOG_FILE"):
        overrides["log_file"] = Path(lf)
    if fmt := _env("LOG_FORMAT"):
        try:
            overrides["format"] = LogFormat(fmt.lower())
        except ValueError as exc:
            raise ValidationError(f"Invalid log format in environment: {fmt}") from exc
    return overrides


# ──────────────────── TOML File Loading ──────────────────


def load_config_file(path: Path | None = None) -> dict[str, Any]:
    """Load and return the raw TOML config dict. Returns empty dict if file missing."""
    config_path = path or CONFIG_FILE
    if not config_path.exists():
        return {}
    try:
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ValidationError(f"Invalid TOML in {config_path}: {exc}") from exc


def save_config_file(config: AppConfig, path: Path | None = None) -> Path:
    """Save AppConfig to a TOML file."""
    config_path = path or CONFIG_FILE
    config_path.parent.mkdir(parents=True, exist_ok=True)

    data = _config_to_toml_dict(config)
    with open(config_path, "wb") as f:
        tomli_w.dump(data, f)

    # Restrict file permissions (Unix only)
    with contextlib.suppress(OSError):
        config_path.chmod(0o600)

    return config_path


def _config_to_toml_dict(config: AppConfig) -> dict[str, Any]:
    """Convert an AppConfig to a TOML-serialisable dict."""
    data: dict[str, Any] = {}

    storage_dict = config.storage.model_dump(exclude_none=True)
    storage_dict["provider"] = config.storage.provider.value
    if config.storage.local_path:
        storage_dict["local_path"] = str(config.storage.local_path)
    data["storage"] = storage_dict

    data["upload"] = config.upload.model_dump()

    log_dict = config.logging.model_dump(exclude_none=True)
    log_dict["format"] = config.logging.format.value
    if config.logging.log_file:
        log_dict["log_file"] = str(config.logging.log_file)
    data["logging"] = log_dict

    return data


# ──────────────────── Main Loader ────────────────────────


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load the full application config (file + env overrides)."""
    raw = load_config_file(config_path)

    storage_data = raw.get("storage", {})
    storage_data.update(_load_storage_from_env())

    upload_data = raw.get("upload", {})
    upload_data.update(_load_upload_from_env())

    log_data = raw.get("logging", {})
    log_data.update(_load_logging_from_env())

    try:
        return AppConfig(
            storage=StorageConfig(**storage_data),
            upload=UploadOptions(**upload_data),
            logging=LoggingConfig(**log_data),
        )
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid configuration: {exc}") from exc


def ensure_dirs() -> None:
    """Create required application directories if they don't exist."""
    for d in (CONFIG_DIR, DATA_DIR, LOG_DIR):
        d.mkdir(parents=True, exist_ok=True)


# ──────────────────── Durations ──────────────────────────

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h|d)")

_UNIT_SECONDS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
    "d": 86400.0,
}


def parse_duration(value: str) -> timedelta:
    """Parse a Go-style duration such as ``720h``, ``1h30m`` or ``45s``.

    A ``d`` (day) unit is accepted as well. The bare string ``0`` is zero.

    Raises:
        ValidationError: If the string is not a valid duration.
    """
    text = value.strip()
    if text == "0":
        return timedelta(0)
    if not text:
        raise ValidationError("Empty duration")

    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        number, unit = match.groups()
        total += float(number) * _UNIT_SECONDS[unit]
        pos = match.end()

    if pos != len(text):
        raise ValidationError(f"Invalid duration: {value!r} (expected e.g. 720h, 1h30m, 2d)")
    return timedelta(seconds=total)
