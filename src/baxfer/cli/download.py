"""CLI download command."""

from __future__ import annotations

from pathlib import Path

import typer

from baxfer.cli.common import (
    BucketOption,
    EndpointOption,
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


def download(
        ctx: typer.Context,
        key: str = typer.Argument(..., help="Remote key to download."),
        output: Path | None = typer.Option(
            None, "--output", "-o", help="Local file name (default: last element of the key)."
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
    """Download a single remote file."""
    from baxfer.cli.progress import TransferProgress
    from baxfer.logging import get_logger
    from baxfer.sync.download import download_file

    state = get_state(ctx)
    log = get_logger("baxfer.download")

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
    non_interactive = state.non_interactive or state.config.upload.non_interactive
    progress = None if non_interactive else TransferProgress()

    with storage_session(storage_config, "download", log) as (storage, token):
        target = download_file(storage, key, output, token=token, progress=progress, log=log)

    console.print(f"[green]✓[/green] Downloaded {key} → {target}")
