"""CLI prune and list commands."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

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
    err_console,
    get_state,
    storage_session,
)
from baxfer.core.models import ProviderType


def prune(
        ctx: typer.Context,
        age: str | None = typer.Option(
            None, "--age", "-a", help="Delete files older than this (e.g. 720h, 1h30m, 30d)."
        ),
        key_prefix: str | None = KeyPrefixOption,
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
    """Delete remote files older than --age.

    Examples:
        baxfer prune -b my-bucket -k nightly -a 720h
    """
    from baxfer.core.config import parse_duration
    from baxfer.core.exceptions import BaxferError, ValidationError
    from baxfer.logging import get_logger
    from baxfer.sync.prune import prune as prune_remote

    state = get_state(ctx)
    log = get_logger("baxfer.prune")

    try:
        if not age:
            raise ValidationError("No age specified for pruning")
        max_age = parse_duration(age)
    except BaxferError as exc:
        err_console.print(f"[bold red]✗ {exc.user_message}[/bold red]")
        raise typer.Exit(code=1) from exc

    prefix = key_prefix if key_prefix is not None else state.config.upload.key_prefix
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

    with storage_session(storage_config, "prune", log) as (storage, token):
        summary = prune_remote(storage, prefix, max_age, token=token, log=log)

    console.print(
        f"[green]✓[/green] Examined {summary.examined}, deleted {len(summary.deleted)}"
        + (f", [yellow]{len(summary.failed)} failed[/yellow]" if summary.failed else "")
    )


def list_files(
        ctx: typer.Context,
        key_prefix: str | None = KeyPrefixOption,
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
    """List remote files with their size and modification time."""
    from baxfer.core.models import _human_size
    from baxfer.logging import get_logger

    state = get_state(ctx)
    log = get_logger("baxfer.list")

    prefix = key_prefix if key_prefix is not None else state.config.upload.key_prefix
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

    rows: list[tuple[str, str, str]] = []
    with storage_session(storage_config, "list", log) as (storage, token):
        for key in storage.list(prefix):
            token.raise_if_cancelled()
            meta = storage.stat(key)
            rows.append((key, _human_size(meta.size), meta.last_modified.strftime("%Y-%m-%d %H:%M:%S")))

    if not rows:
        console.print("[yellow]No files found.[/yellow]")
        return

    table = Table(title="Remote Files", show_lines=True)
    table.add_column("Key", style="cyan")
    table.add_column("Size", style="green", justify="right")
    table.add_column("Last Modified (UTC)", style="magenta")
    for row in rows:
        table.add_row(*row)

    console.print(table)
