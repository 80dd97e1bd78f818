"""Normalization of backend failures into baxfer error kinds.

Every backend signals "not found" and "bad credentials" differently (HTTP
status codes, typed SDK errors, POSIX errno values). The helpers here are the
single place those shapes are recognised; adapters call them and raise the
result.
"""

from __future__ import annotations

import errno
import socket

from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionError as BotoConnectionError,
    NoCredentialsError,
    PartialCredentialsError,
)

from baxfer.core.exceptions import (
    AccessDeniedError,
    BaxferError,
    NotFoundError,
    StorageError,
    TransportError,
)

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound", "NoSuchBucket"})
_ACCESS_DENIED_CODES = frozenset({
    "401",
    "403",
    "AccessDenied",
    "Forbidden",
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
    "Unauthorized",
})
# Returned by some S3-compatible gateways when a HEAD request is rejected for
# lacking a Content-Length header.
_LENGTH_REQUIRED_CODES = frozenset({"411", "MissingContentLength", "LengthRequired"})

_PROVIDER_LABELS = {
    "s3": "S3",
    "r2": "R2",
    "b2s3": "B2 S3",
    "b2": "B2",
    "sftp": "SFTP",
    "local": "local storage",
}


# ──────────────────── botocore ───────────────────────────


def client_error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def client_error_status(exc: ClientError) -> int | None:
    return exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")


def is_not_found(exc: BaseException) -> bool:
    """True when *exc* is a definite "object does not exist" signal."""
    if isinstance(exc, ClientError):
        return client_error_code(exc) in _NOT_FOUND_CODES or client_error_status(exc) == 404
    if isinstance(exc, OSError):
        return isinstance(exc, FileNotFoundError) or exc.errno == errno.ENOENT
    return False


def is_length_required(exc: BaseException) -> bool:
    if not isinstance(exc, ClientError):
        return False
    return client_error_code(exc) in _LENGTH_REQUIRED_CODES or client_error_status(exc) == 411


def normalize_boto_error(provider: str, key: str, exc: Exception, action: str) -> BaxferError:
    """Map a botocore exception onto a baxfer error kind.

    Args:
        provider: Provider name, used to pick a credentials hint.
        key: Object key the call was about.
        exc: The exception raised by boto3/botocore.
        action: Short verb phrase for the message, e.g. ``"download"``.
    """
    label = _PROVIDER_LABELS.get(provider, provider)
    text = str(exc)

    if isinstance(exc, ClientError):
        code = client_error_code(exc)
        status = client_error_status(exc)
        if code in _NOT_FOUND_CODES or status == 404:
            return NotFoundError(
                f"{label} {action} failed for {key}: not found ({code or status})",
                hint=f"File not found: {key}",
            )
        if code in _ACCESS_DENIED_CODES or status in (401, 403):
            return AccessDeniedError(
                f"{label} {action} failed for {key}: {text}",
                hint=provider_hint(provider, text)
                or f"Access denied to file: {key}. Please check your credentials and permissions.",
            )
        return StorageError(
            f"{label} {action} failed for {key}: {text}",
            hint=provider_hint(provider, text) or f"Error during {label} {action}: {key}",
        )

    if isinstance(exc, (NoCredentialsError, PartialCredentialsError)):
        return AccessDeniedError(
            f"{label} credentials could not be resolved: {text}",
            hint=f"No usable {label} credentials found. Please check your environment.",
        )
    if isinstance(exc, BotoConnectionError):
        return TransportError(
            f"{label} {action} failed for {key}: {text}",
            hint=f"Could not reach {label}. Please check your network and endpoint settings.",
        )
    if isinstance(exc, BotoCoreError):
        return StorageError(f"{label} {action} failed for {key}: {text}")
    return StorageError(f"{label} {action} failed for {key}: {exc!r}")


# ──────────────────── POSIX / SFTP ───────────────────────


def normalize_os_error(provider: str, key: str, exc: Exception, action: str) -> BaxferError:
    """Map an ``OSError`` (or an SSH transport error) onto a baxfer error kind."""
    label = _PROVIDER_LABELS.get(provider, provider)
    text = str(exc)

    if is_not_found(exc):
        return NotFoundError(f"{label} {action} failed for {key}: {text}", hint=f"File not found: {key}")
    if isinstance(exc, PermissionError) or (
        isinstance(exc, OSError) and exc.errno in (errno.EACCES, errno.EPERM)
    ):
        return AccessDeniedError(
            f"{label} {action} failed for {key}: {text}",
            hint=provider_hint(provider, "permission denied")
            or f"Permission denied accessing file: {key}",
        )
    if isinstance(exc, (ConnectionError, socket.timeout, socket.gaierror)) or not isinstance(
        exc, OSError
    ):
        return TransportError(
            f"{label} {action} failed for {key}: {text}",
            hint=provider_hint(provider, text),
        )
    return StorageError(
        f"{label} {action} failed for {key}: {text}",
        hint=provider_hint(provider, text),
    )


# ──────────────────── Hints ──────────────────────────────


def provider_hint(provider: str, text: str) -> str | None:
    """Return a user-facing hint for well-known error substrings."""
    lowered = text.lower()
    if provider == "s3":
        if "InvalidAccessKeyId" in text:
            return "Invalid AWS credentials. Please check your access key ID."
        if "SignatureDoesNotMatch" in text:
            return "Invalid AWS credentials. Please check your secret access key."
    elif provider == "r2":
        if "InvalidAccessKeyId" in text:
            return "Invalid Cloudflare R2 credentials. Please check your access key ID."
    elif provider in ("b2s3", "b2"):
        if "InvalidAccessKeyId" in text or "401" in text:
            return "Invalid B2 credentials. Please check your application key and key ID."
    elif provider == "sftp":
        if "permission denied" in lowered:
            return "Permission denied. Please check your SFTP credentials and permissions."
        if "connection refused" in lowered:
            return "Could not connect to SFTP server. Please check your connection settings."
    return None
