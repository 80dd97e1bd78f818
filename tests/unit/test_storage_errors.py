"""Tests for backend error normalization."""

from __future__ import annotations

import errno

import paramiko
import pytest
from botocore.exceptions import ClientError, NoCredentialsError

from baxfer.core.exceptions import (
    AccessDeniedError,
    NotFoundError,
    StorageError,
    TransportError,
)
from baxfer.storage.errors import (
    is_length_required,
    is_not_found,
    normalize_boto_error,
    normalize_os_error,
    provider_hint,
)


def _client_error(code: str, status: int) -> ClientError:
    return ClientError(
        {"Error": {"Code": code, "Message": code}, "ResponseMetadata": {"HTTPStatusCode": status}},
        "HeadObject",
    )


class TestIsNotFound:
    def test_client_error_codes(self) -> None:
        assert is_not_found(_client_error("NoSuchKey", 404))
        assert is_not_found(_client_error("", 404))
        assert not is_not_found(_client_error("AccessDenied", 403))

    def test_os_errors(self) -> None:
        assert is_not_found(FileNotFoundError(errno.ENOENT, "missing"))
        assert is_not_found(OSError(errno.ENOENT, "missing"))
        assert not is_not_found(PermissionError(errno.EACCES, "denied"))

    def test_other(self) -> None:
        assert not is_not_found(ValueError("nope"))

    def test_length_required(self) -> None:
        assert is_length_required(_client_error("MissingContentLength", 411))
        assert is_length_required(_client_error("", 411))
        assert not is_length_required(_client_error("NoSuchKey", 404))


class TestNormalizeBotoError:
    def test_not_found(self) -> None:
        err = normalize_boto_error("s3", "k", _client_error("NoSuchKey", 404), "download")
        assert isinstance(err, NotFoundError)
        assert err.user_message == "File not found: k"

    def test_signature_hint(self) -> None:
        err = normalize_boto_error("s3", "k", _client_error("SignatureDoesNotMatch", 403), "upload")
        assert isinstance(err, AccessDeniedError)
        assert err.user_message == "Invalid AWS credentials. Please check your secret access key."

    def test_r2_hint(self) -> None:
        err = normalize_boto_error("r2", "k", _client_error("InvalidAccessKeyId", 403), "upload")
        assert "Cloudflare R2" in err.user_message

    def test_generic_access_denied(self) -> None:
        err = normalize_boto_error("s3", "k", _client_error("AccessDenied", 403), "delete")
        assert isinstance(err, AccessDeniedError)
        assert "Access denied to file: k" in err.user_message

    def test_other_client_error(self) -> None:
        err = normalize_boto_error("s3", "k", _client_error("SlowDown", 503), "upload")
        assert type(err) is StorageError

    def test_no_credentials(self) -> None:
        err = normalize_boto_error("s3", "k", NoCredentialsError(), "upload")
        assert isinstance(err, AccessDeniedError)


class TestNormalizeOsError:
    def test_not_found(self) -> None:
        err = normalize_os_error("sftp", "k", FileNotFoundError(errno.ENOENT, "missing"), "stat")
        assert isinstance(err, NotFoundError)

    def test_permission(self) -> None:
        err = normalize_os_error("sftp", "k", PermissionError(errno.EACCES, "denied"), "upload")
        assert isinstance(err, AccessDeniedError)

    def test_connection_refused(self) -> None:
        err = normalize_os_error("sftp", "k", ConnectionRefusedError("Connection refused"), "upload")
        assert isinstance(err, TransportError)
        assert "Could not connect to SFTP server" in err.user_message

    def test_ssh_exception(self) -> None:
        err = normalize_os_error("sftp", "k", paramiko.SSHException("channel closed"), "upload")
        assert isinstance(err, TransportError)

    def test_generic_io_error(self) -> None:
        err = normalize_os_error("local", "k", OSError(errno.ENOSPC, "No space left"), "upload")
        assert type(err) is StorageError


class TestProviderHint:
    @pytest.mark.parametrize(
        ("provider", "text", "expected"),
        [
            ("s3", "InvalidAccessKeyId", "access key ID"),
            ("b2s3", "HTTP 401", "Invalid B2 credentials"),
            ("b2", "InvalidAccessKeyId", "Invalid B2 credentials"),
            ("sftp", "Permission denied (publickey)", "Permission denied"),
        ],
    )
    def test_known(self, provider: str, text: str, expected: str) -> None:
        hint = provider_hint(provider, text)
        assert hint is not None
        assert expected in hint

    def test_unknown(self) -> None:
        assert provider_hint("s3", "something else") is None
        assert provider_hint("local", "InvalidAccessKeyId") is None
