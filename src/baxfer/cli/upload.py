"""CLI upload command."""

from __future__ import annotations

from pathlib import Path

import typer

from baxfer.cli.common import (
    BucketOption,
    EndpointOption,
    KeyPrefixOption,
    LocalPathOption,
    ProviderOption,
    RegionOption,
    SftpHostOption,
    SftpPathOption,
    SftpPortOption,
    SftpUserOption,
    build_storage_config,
    console,
    get_state,
    storage_session,
)
from baxfer.core.models import ProviderType


def upload(
        ctx: typer.Context,
        root_dir: Path = typer.Argument(..., help="Local directory to walk for backup files."),
        key_prefix: str | None = KeyPrefixOption,
        backup_ext: str | None = typer.Option(
            None, "--backupext", "-x", help="Extension of the files to upload (default .bak)."
        ),
        compress: bool = typer.Option(
            False, "--compress", "-c", help="Zip each file on the fly before upload."
        ),
        provider: ProviderType | None = ProviderOption,
        bucket: str | None = BucketOption,
        region: str | None = RegionOption,
        endpoint_url: str | None = EndpointOption,
        sftp_host: str | None = SftpHostOption,
        sftp_port: int | None = SftpPortOption,
        sftp_user: str | None = SftpUserOption,
        sftp_path: str | None = SftpPathOption,
        local_path: Path | None = LocalPathOption,
) -> None:
    """Upload new or changed backup files below ROOT_DIR.

    Examples:
        baxfer upload /var/backups -b my-bucket -k nightly
        baxfer upload ./dumps -p sftp --sftp-host nas --sftp-user bk --sftp-path /srv/backups -c
    """
    from baxfer.cli.progress import TransferProgress
    from baxfer.logging import get_logger
    from baxfer.sync.upload import DirectoryUploader

    state = get_state(ctx)
    log = get_logger("baxfer.upload")

    options = state.config.upload.model_copy(update={
        k: v
        for k, v in {
            "key_prefix": key_prefix,
            "backup_ext": backup_ext,
        }.items()
        if v is not None
    })
    options.compress = compress or options.compress
    options.non_interactive = state.non_interactive or options.non_interactive

    storage_config = build_storage_config(
        state.config.storage,
        provider=provider,
        bucket=bucket,
        region=region,
        endpoint_url=endpoint_url,
        sftp_host=sftp_host,
        sftp_port=sftp_port,
        sftp_user=sftp_user,
        sftp_path=sftp_path,
        local_path=local_path,
    )

    progress = None if options.non_interactive else TransferProgress()

    with storage_session(storage_config, "upload", log) as (storage, token):
        uploader = DirectoryUploader(storage, options, token=token, progress=progress, log=log)
        summary = uploader.run(root_dir)

    console.print(
        f"[green]✓[/green] Uploaded {len(summary.uploaded)}, "
        f"skipped {len(summary.skipped)} (provider: {storage_config.provider.value})"
    )
