"""S3-compatible storage backend shared by AWS S3, Cloudflare R2 and Backblaze B2.

The providers differ only in endpoint, credential source, addressing style and
transfer tuning; :class:`S3CompatibleStorage` takes those as parameters and the
``new_*_storage`` factories supply the per-provider values.

Unknown-size uploads: boto3's managed transfer reads the stream in part-sized
chunks and switches to a multipart upload once more than one part is needed,
so ``UNKNOWN_SIZE`` is accepted without buffering the whole object. Peak memory
is roughly ``part_size * concurrency``.
"""

from __future__ import annotations

import os
from typing import IO, Any

import boto3
from boto3.exceptions import S3UploadFailedError
from boto3.s3.transfer import TransferConfig
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from baxfer.core.exceptions import StorageError, TransportError, ValidationError
from baxfer.core.models import UNKNOWN_SIZE, FileMetadata, ProviderType, StorageConfig
from baxfer.logging import get_logger
from baxfer.storage.base import BaseStorage
from baxfer.storage.errors import is_length_required, is_not_found, normalize_boto_error

# Transfer tuning
DEFAULT_PART_SIZE = 100 * 1024 * 1024  # 100 MB
_AWS_CONCURRENCY = 10
_GATEWAY_CONCURRENCY = 5
_DOWNLOAD_CHUNK = 1024 * 1024

_BOTO_ERRORS = (ClientError, BotoCoreError, S3UploadFailedError)


class S3CompatibleStorage(BaseStorage):
    """Store backup files in an S3-compatible bucket."""

    def __init__(
            self,
            bucket: str,
            *,
            provider: str = "s3",
            region: str | None = None,
            endpoint_url: str | None = None,
            path_style: bool = False,
            access_key_id: str | None = None,
            secret_access_key: str | None = None,
            part_size: int = DEFAULT_PART_SIZE,
            concurrency: int = _AWS_CONCURRENCY,
            length_required_as_missing: bool = False,
            client: Any | None = None,
            log: Any | None = None,
    ) -> None:
        self.bucket = bucket
        self.provider = provider
        self.region = region
        self.endpoint_url = endpoint_url
        self.path_style = path_style
        self.length_required_as_missing = length_required_as_missing
        self.log = log or get_logger(__name__)
        self._closed = False

        if client is None:
            boto_config = BotoConfig(
                region_name=region,
                retries={"max_attempts": 3, "mode": "adaptive"},
                s3={"addressing_style": "path" if path_style else "auto"},
            )

            session_kwargs: dict[str, Any] = {}
            if access_key_id and secret_access_key:
                session_kwargs["aws_access_key_id"] = access_key_id
                session_kwargs["aws_secret_access_key"] = secret_access_key
            client_kwargs: dict[str, Any] = {"config": boto_config}
            if endpoint_url:
                client_kwargs["endpoint_url"] = endpoint_url

            session = boto3.Session(**session_kwargs)
            client = session.client("s3", **client_kwargs)
        self._client = client

        self._transfer_config = TransferConfig(
            multipart_threshold=part_size,
            multipart_chunksize=part_size,
            max_concurrency=concurrency,
            use_threads=True,
        )

    # ────────────── Transfers ───────────────

    def upload(self, key: str, reader: IO[bytes], size: int) -> None:
        """Upload a stream, switching to multipart for large or unknown sizes."""
        self.log.debug(
            "s3_upload_start",
            provider=self.provider,
            bucket=self.bucket,
            key=key,
            size=size if size != UNKNOWN_SIZE else "unknown",
        )
        try:
            self._client.upload_fileobj(
                reader,
                self.bucket,
                key,
                Config=self._transfer_config,
            )
        except _BOTO_ERRORS as exc:
            raise normalize_boto_error(self.provider, key, exc, "upload") from exc
        self.log.debug("s3_upload_complete", provider=self.provider, key=key)

    def download(self, key: str, writer: IO[bytes]) -> None:
        """Stream an object into *writer*."""
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
        except _BOTO_ERRORS as exc:
            raise normalize_boto_error(self.provider, key, exc, "download") from exc

        body = response["Body"]
        try:
            for chunk in body.iter_chunks(chunk_size=_DOWNLOAD_CHUNK):
                writer.write(chunk)
        except BotoCoreError as exc:
            raise TransportError(
                f"Error reading {self.provider} object {key}: {exc}",
                hint=f"Error reading file content: {key}",
            ) from exc
        finally:
            body.close()

    # ────────────── Catalogue ───────────────

    def list(self, prefix: str = "") -> list[str]:
        """List every key under *prefix*, across all result pages."""
        keys: list[str] = []
        try:
            paginator = self._client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for obj in page.get("Contents", []):
                    keys.append(obj["Key"])
        except _BOTO_ERRORS as exc:
            raise normalize_boto_error(self.provider, prefix or "/", exc, "list") from exc
        return keys

    def delete(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=key)
        except _BOTO_ERRORS as exc:
            raise normalize_boto_error(self.provider, key, exc, "delete") from exc

    def exists(self, key: str) -> bool:
        """Check if an object exists, distinguishing not-found from failure."""
        try:
            self._client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as exc:
            if is_not_found(exc):
                return False
            if self.length_required_as_missing and is_length_required(exc):
                self.log.warning(
                    "s3_head_length_required",
                    provider=self.provider,
                    bucket=self.bucket,
                    key=key,
                )
                return False
            raise normalize_boto_error(self.provider, key, exc, "existence check") from exc
        except BotoCoreError as exc:
            raise normalize_boto_error(self.provider, key, exc, "existence check") from exc

    def stat(self, key: str) -> FileMetadata:
        try:
            head = self._client.head_object(Bucket=self.bucket, Key=key)
        except _BOTO_ERRORS as exc:
            raise normalize_boto_error(self.provider, key, exc, "stat") from exc

        if head.get("LastModified") is None or head.get("ContentLength") is None:
            raise StorageError(f"Incomplete response from {self.provider} HeadObject for key: {key}")
        return FileMetadata(last_modified=head["LastModified"], size=head["ContentLength"])

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        close = getattr(self._client, "close", None)
        if close is not None:
            close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} provider={self.provider} bucket={self.bucket}>"


# ──────────────────── Provider glue ──────────────────────


def _require_env(provider: str, *names: str) -> list[str]:
    values = [os.environ.get(name, "") for name in names]
    if not all(values):
        raise ValidationError(
            f"{provider} credentials not found in environment variables ({', '.join(names)})"
        )
    return values


def new_s3_storage(config: StorageConfig, log: Any | None = None) -> S3CompatibleStorage:
    """AWS S3 using the default boto3 credential chain."""
    log = log or get_logger(__name__)
    region = config.region or os.environ.get("AWS_REGION") or "us-east-1"
    storage = S3CompatibleStorage(
        config.bucket or "",
        provider=ProviderType.S3.value,
        region=region,
        endpoint_url=config.endpoint_url,
        part_size=config.part_size,
        concurrency=config.concurrency or _AWS_CONCURRENCY,
        log=log,
    )
    log.info("storage_provider_initialized", provider="AWS S3", region=region, bucket=config.bucket)
    return storage


def new_r2_storage(config: StorageConfig, log: Any | None = None) -> S3CompatibleStorage:
    """Cloudflare R2: account endpoint, path-style addressing, tolerant HEAD."""
    log = log or get_logger(__name__)
    account_id, key_id, key_secret = _require_env(
        "Cloudflare R2", "CF_ACCOUNT_ID", "CF_ACCESS_KEY_ID", "CF_ACCESS_KEY_SECRET"
    )
    storage = S3CompatibleStorage(
        config.bucket or "",
        provider=ProviderType.R2.value,
        region="auto",
        endpoint_url=config.endpoint_url or f"https://{account_id}.r2.cloudflarestorage.com",
        path_style=True,
        access_key_id=key_id,
        secret_access_key=key_secret,
        part_size=config.part_size,
        concurrency=config.concurrency or _GATEWAY_CONCURRENCY,
        length_required_as_missing=True,
        log=log,
    )
    log.info("storage_provider_initialized", provider="Cloudflare R2", account=account_id, bucket=config.bucket)
    return storage


def new_b2_storage(config: StorageConfig, log: Any | None = None) -> S3CompatibleStorage:
    """Backblaze B2 through its S3-compatible API."""
    log = log or get_logger(__name__)
    key_id, app_key = _require_env("Backblaze B2", "B2_KEY_ID", "B2_APP_KEY")
    region = config.region or os.environ.get("AWS_REGION") or "us-west-002"
    storage = S3CompatibleStorage(
        config.bucket or "",
        provider=config.provider.value,
        region=region,
        endpoint_url=config.endpoint_url or f"https://s3.{region}.backblazeb2.com",
        path_style=True,
        access_key_id=key_id,
        secret_access_key=app_key,
        part_size=config.part_size,
        concurrency=config.concurrency or _GATEWAY_CONCURRENCY,
        log=log,
    )
    log.info("storage_provider_initialized", provider="Backblaze B2 S3", region=region, bucket=config.bucket)
    return storage
