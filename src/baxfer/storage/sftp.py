"""SFTP storage backend built on paramiko.

One authenticated session is opened when the adapter is created and kept for
the whole command; :meth:`SFTPStorage.close` tears it down. Uploads stream
sequentially into the remote file, so ``UNKNOWN_SIZE`` needs no special
handling.
"""

from __future__ import annotations

import os
import posixpath
import stat as stat_mod
from datetime import datetime, timezone
from typing import IO, Any

import paramiko

from baxfer.core.exceptions import (
    AccessDeniedError,
    TransportError,
    ValidationError,
)
from baxfer.core.models import UNKNOWN_SIZE, FileMetadata, StorageConfig
from baxfer.logging import get_logger
from baxfer.storage.base import BaseStorage
from baxfer.storage.errors import is_not_found, normalize_os_error, provider_hint

_CHUNK_SIZE = 256 * 1024
_KEY_TYPES: tuple[type[paramiko.PKey], ...] = (
    paramiko.Ed25519Key,
    paramiko.ECDSAKey,
    paramiko.RSAKey,
)

_SFTP_ERRORS = (OSError, paramiko.SSHException)


def _load_private_key(path: str, passphrase: str | None) -> paramiko.PKey:
    """Load a private key, trying each supported key type in turn."""
    last_exc: Exception | None = None
    for key_cls in _KEY_TYPES:
        try:
            return key_cls.from_private_key_file(path, password=passphrase)
        except paramiko.PasswordRequiredException as exc:
            raise ValidationError(f"Private key {path} is encrypted; set SFTP_KEY_PASSPHRASE") from exc
        except paramiko.SSHException as exc:
            last_exc = exc
        except OSError as exc:
            raise ValidationError(f"Unable to read private key {path}: {exc}") from exc
    raise ValidationError(f"Unable to parse private key {path}: {last_exc}")


class SFTPStorage(BaseStorage):
    """Store backup files on an SFTP server under a base directory."""

    provider = "sftp"

    def __init__(
            self,
            host: str,
            username: str,
            base_path: str,
            *,
            port: int = 22,
            password: str | None = None,
            private_key_path: str | None = None,
            private_key_passphrase: str | None = None,
            connect_timeout: float = 30.0,
            client: paramiko.SFTPClient | None = None,
            log: Any | None = None,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.base_path = base_path
        self.log = log or get_logger(__name__)
        self._transport: paramiko.Transport | None = None

        if client is None:
            client = self._connect(password, private_key_path, private_key_passphrase, connect_timeout)
        self._client: paramiko.SFTPClient | None = client

        try:
            self._makedirs(base_path)
        except _SFTP_ERRORS as exc:
            self.close()
            raise normalize_os_error(self.provider, base_path, exc, "create base directory") from exc

    def _connect(
            self,
            password: str | None,
            private_key_path: str | None,
            passphrase: str | None,
            timeout: float,
    ) -> paramiko.SFTPClient:
        pkey = _load_private_key(private_key_path, passphrase) if private_key_path else None
        if pkey is None and not password:
            raise ValidationError(
                "No authentication method provided: set either SFTP_PRIVATE_KEY or SFTP_PASSWORD"
            )

        try:
            transport = paramiko.Transport((self.host, self.port))
        except OSError as exc:
            raise TransportError(
                f"Failed to connect to SSH server {self.host}:{self.port}: {exc}",
                hint=provider_hint(self.provider, "connection refused"),
            ) from exc
        transport.banner_timeout = timeout
        transport.auth_timeout = timeout

        try:
            if pkey is not None:
                transport.connect(username=self.username, pkey=pkey)
            else:
                transport.connect(username=self.username, password=password)
            client = paramiko.SFTPClient.from_transport(transport)
        except paramiko.AuthenticationException as exc:
            transport.close()
            raise AccessDeniedError(
                f"SFTP authentication failed for {self.username}@{self.host}: {exc}",
                hint=provider_hint(self.provider, "permission denied"),
            ) from exc
        except _SFTP_ERRORS as exc:
            transport.close()
            raise TransportError(
                f"Failed to open SFTP session on {self.host}:{self.port}: {exc}",
                hint=provider_hint(self.provider, "connection refused"),
            ) from exc

        if client is None:
            transport.close()
            raise TransportError(f"Server {self.host} refused the SFTP subsystem")
        self._transport = transport
        return client

    @property
    def client(self) -> paramiko.SFTPClient:
        if self._client is None:
            raise TransportError("SFTP session is closed")
        return self._client

    def _full_path(self, key: str) -> str:
        return posixpath.join(self.base_path, key.lstrip("/"))

    def _makedirs(self, path: str) -> None:
        """Create *path* and any missing parents on the server."""
        if not path or path in ("/", "."):
            return
        current = "/" if path.startswith("/") else ""
        for part in path.strip("/").split("/"):
            current = posixpath.join(current, part) if current else part
            try:
                self.client.stat(current)
            except FileNotFoundError:
                self.client.mkdir(current)

    # ────────────── Transfers ───────────────

    def upload(self, key: str, reader: IO[bytes], size: int) -> None:
        full_path = self._full_path(key)
        try:
            self._makedirs(posixpath.dirname(full_path))
        except _SFTP_ERRORS as exc:
            raise normalize_os_error(self.provider, key, exc, "create directory") from exc

        written = 0
        try:
            with self.client.open(full_path, "wb") as remote:
                remote.set_pipelined(True)
                for chunk in iter(lambda: reader.read(_CHUNK_SIZE), b""):
                    remote.write(chunk)
                    written += len(chunk)
        except _SFTP_ERRORS as exc:
            raise normalize_os_error(self.provider, key, exc, "upload") from exc

        if size != UNKNOWN_SIZE and written != size:
            raise TransportError(f"Short upload for {key}: wrote {written} of {size} bytes")
        self.log.debug("sftp_upload_complete", path=full_path, size=written)

    def download(self, key: str, writer: IO[bytes]) -> None:
        full_path = self._full_path(key)
        try:
            remote = self.client.open(full_path, "rb")
        except _SFTP_ERRORS as exc:
            self.log.error("sftp_open_failed", path=full_path, error=str(exc))
            raise normalize_os_error(self.provider, key, exc, "download") from exc

        try:
            with remote:
                remote.prefetch()
                for chunk in iter(lambda: remote.read(_CHUNK_SIZE), b""):
                    writer.write(chunk)
        except _SFTP_ERRORS as exc:
            raise TransportError(
                f"Error reading SFTP file {full_path}: {exc}",
                hint=f"Error reading file content: {key}",
            ) from exc

    # ────────────── Catalogue ───────────────

    def list(self, prefix: str = "") -> list[str]:
        """Walk the tree under *prefix* and return file keys relative to the base path."""
        search_path = self._full_path(prefix) if prefix else self.base_path
        try:
            root_attr = self.client.stat(search_path)
        except _SFTP_ERRORS as exc:
            if is_not_found(exc):
                return []
            raise normalize_os_error(self.provider, prefix, exc, "list") from exc

        if not stat_mod.S_ISDIR(root_attr.st_mode or 0):
            return [self._key_for(search_path)]

        keys: list[str] = []
        pending = [search_path]
        try:
            while pending:
                directory = pending.pop()
                for entry in self.client.listdir_attr(directory):
                    path = posixpath.join(directory, entry.filename)
                    if stat_mod.S_ISDIR(entry.st_mode or 0):
                        pending.append(path)
                    else:
                        keys.append(self._key_for(path))
        except _SFTP_ERRORS as exc:
            raise normalize_os_error(self.provider, prefix, exc, "list") from exc
        return sorted(keys)

    def _key_for(self, path: str) -> str:
        return posixpath.relpath(path, self.base_path).lstrip("/")

    def delete(self, key: str) -> None:
        try:
            self.client.remove(self._full_path(key))
        except _SFTP_ERRORS as exc:
            raise normalize_os_error(self.provider, key, exc, "delete") from exc

    def exists(self, key: str) -> bool:
        try:
            self.client.stat(self._full_path(key))
            return True
        except _SFTP_ERRORS as exc:
            if is_not_found(exc):
                return False
            raise normalize_os_error(self.provider, key, exc, "existence check") from exc

    def stat(self, key: str) -> FileMetadata:
        try:
            attr = self.client.stat(self._full_path(key))
        except _SFTP_ERRORS as exc:
            raise normalize_os_error(self.provider, key, exc, "stat") from exc
        return FileMetadata(
            last_modified=datetime.fromtimestamp(attr.st_mtime or 0, tz=timezone.utc),
            size=attr.st_size if attr.st_size is not None else UNKNOWN_SIZE,
        )

    def close(self) -> None:
        """Close SFTP client + underlying transport."""
        try:
            if self._client is not None:
                self._client.close()
        finally:
            self._client = None
        try:
            if self._transport is not None:
                self._transport.close()
        finally:
            self._transport = None

    def __repr__(self) -> str:
        return f"<SFTPStorage {self.username}@{self.host}:{self.port}{self.base_path}>"


def new_sftp_storage(config: StorageConfig, log: Any | None = None) -> SFTPStorage:
    """Connect using SFTP_PRIVATE_KEY (preferred) or SFTP_PASSWORD from the environment."""
    log = log or get_logger(__name__)
    if not (config.sftp_host and config.sftp_user and config.sftp_path):
        raise ValidationError("SFTP provider requires host, user, and path")

    storage = SFTPStorage(
        config.sftp_host,
        config.sftp_user,
        config.sftp_path,
        port=config.sftp_port,
        password=os.environ.get("SFTP_PASSWORD") or None,
        private_key_path=os.environ.get("SFTP_PRIVATE_KEY") or None,
        private_key_passphrase=os.environ.get("SFTP_KEY_PASSPHRASE") or None,
        log=log,
    )
    log.info(
        "storage_provider_initialized",
        provider="SFTP",
        host=config.sftp_host,
        port=config.sftp_port,
        username=config.sftp_user,
        base_path=config.sftp_path,
    )
    return storage
