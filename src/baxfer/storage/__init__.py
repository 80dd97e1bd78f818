"""Storage backend registry."""

from __future__ import annotations

from typing import Any

from baxfer.core.exceptions import ValidationError
from baxfer.core.models import ProviderType, StorageConfig
from baxfer.storage.base import BaseStorage


def get_storage(config: StorageConfig, log: Any | None = None) -> BaseStorage:
    """Instantiate the appropriate storage backend.

    Raises:
        ValidationError: If the provider is not supported or misconfigured.
    """
    config.validate_for_use()

    if config.provider == ProviderType.S3:
        from baxfer.storage.s3 import new_s3_storage

        return new_s3_storage(config, log)

    if config.provider == ProviderType.R2:
        from baxfer.storage.s3 import new_r2_storage

        return new_r2_storage(config, log)

    if config.provider in (ProviderType.B2S3, ProviderType.B2):
        from baxfer.storage.s3 import new_b2_storage

        return new_b2_storage(config, log)

    if config.provider == ProviderType.SFTP:
        from baxfer.storage.sftp import new_sftp_storage

        return new_sftp_storage(config, log)

    if config.provider == ProviderType.LOCAL:
        from baxfer.storage.local import LocalStorage

        if config.local_path is None:
            raise ValidationError("Local provider requires a directory (--local-path)")
        return LocalStorage(base_path=config.local_path, log=log)

    raise ValidationError(f"Unsupported storage provider: {config.provider}")


__all__ = ["BaseStorage", "get_storage"]
