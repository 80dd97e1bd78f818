"""Remote key construction from local paths."""

from __future__ import annotations

import os
import posixpath
from pathlib import Path

from baxfer.compression.compressor import ARCHIVE_EXTENSION
from baxfer.core.exceptions import ValidationError


def file_extension(name: str) -> str:
    """Return the suffix from the last dot of the final path element, dot included.

    Unlike :func:`os.path.splitext`, a leading-dot name such as ``.bak`` has
    the extension ``.bak``.
    """
    base = name.replace("\\", "/").rsplit("/", 1)[-1]
    idx = base.rfind(".")
    return base[idx:] if idx != -1 else ""


def construct_key(root: Path | str, key_prefix: str, path: Path | str) -> str:
    """Build the remote key for *path* found under *root*.

    The path relative to *root* has any drive stripped, is converted to
    forward slashes, joined under *key_prefix* and stripped of leading
    slashes. The same layout always produces the same keys.

    Raises:
        ValidationError: If *path* cannot be expressed relative to *root*.
    """
    try:
        rel = os.path.relpath(path, root)
    except ValueError as exc:
        raise ValidationError(f"Cannot construct key for {path} relative to {root}: {exc}") from exc

    rel = os.path.splitdrive(rel)[1].replace(os.sep, "/")
    if os.altsep:
        rel = rel.replace(os.altsep, "/")
    if rel == ".." or rel.startswith("../"):
        raise ValidationError(f"Cannot construct key for {path}: outside of {root}")

    prefix = key_prefix.replace("\\", "/")
    key = posixpath.normpath(posixpath.join(prefix, rel)) if prefix else posixpath.normpath(rel)
    key = key.lstrip("/")
    if key == ".." or key.startswith("../"):
        raise ValidationError(f"Key prefix {key_prefix!r} escapes the storage root")
    return key


def compressed_key(key: str) -> str:
    """Replace the extension of *key* with ``.zip``."""
    ext = file_extension(key)
    stem = key[: len(key) - len(ext)] if ext else key
    return stem + ARCHIVE_EXTENSION
