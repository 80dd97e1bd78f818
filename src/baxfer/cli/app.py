"""Main Typer application entry point for the baxfer CLI."""

from __future__ import annotations

from pathlib import Path

import typer

from baxfer import __version__
from baxfer.cli.common import CliState, err_console
from baxfer.cli.config_cmd import config_app
from baxfer.cli.download import download
from baxfer.cli.prune import list_files, prune
from baxfer.cli.upload import upload
from baxfer.core.exceptions import BaxferError
from baxfer.logging import setup_logging

app = typer.Typer(
    name="baxfer",
    help="Sync local backup files to S3-compatible object stores and SFTP servers.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=True,
)

# Register commands, with the short aliases as hidden commands
app.command("upload")(upload)
app.command("u", hidden=True)(upload)
app.command("download")(download)
app.command("d", hidden=True)(download)
app.command("prune")(prune)
app.command("p", hidden=True)(prune)
app.command("list")(list_files)
app.add_typer(config_app, name="config", help="Configuration management")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"baxfer {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
        ctx: typer.Context,
        version: bool = typer.Option(
            False,
            "--version",
            "-V",
            help="Show version and exit.",
            callback=_version_callback,
            is_eager=True,
        ),
        verbose: bool = typer.Option(
            False,
            "--verbose",
            "-v",
            help="Enable verbose (DEBUG) logging.",
        ),
        quiet: bool = typer.Option(
            False,
            "--quiet",
            "-q",
            help="Only log errors.",
        ),
        log_json: bool = typer.Option(
            False,
            "--log-json",
            help="Output logs in JSON format.",
        ),
        logfile: Path | None = typer.Option(
            None,
            "--logfile",
            "-l",
            help="Also write JSON logs to this file.",
        ),
        log_max_size: int | None = typer.Option(
            None,
            "--log-max-size",
            help="Rotate the log file at this size in MiB (default 10).",
        ),
        log_max_backups: int | None = typer.Option(
            None,
            "--log-max-backups",
            help="Number of rotated log files to keep (default 5).",
        ),
        log_clear: bool = typer.Option(
            False,
            "--log-clear",
            help="Clear the log file on start.",
        ),
        non_interactive: bool = typer.Option(
            False,
            "--non-interactive",
            help="Disable progress bars.",
        ),
) -> None:
    """baxfer: backup file transfer to S3, R2, B2 and SFTP."""
    from baxfer.core.config import ensure_dirs, load_config
    from baxfer.core.models import LogFormat

    try:
        ensure_dirs()
        config = load_config()
    except BaxferError as exc:
        err_console.print(f"[bold red]✗ {exc.user_message}[/bold red]")
        raise typer.Exit(code=1) from exc

    log_config = config.logging
    if verbose:
        level = "DEBUG"
    elif quiet or log_config.quiet:
        level = "ERROR"
    else:
        level = log_config.level
    fmt = LogFormat.JSON if log_json else log_config.format
    max_size_mb = log_max_size if log_max_size is not None else log_config.max_size_mb
    max_backups = log_max_backups if log_max_backups is not None else log_config.max_backups

    setup_logging(
        level=level,
        log_file=logfile or log_config.log_file,
        log_format=fmt,
        max_bytes=max_size_mb * 1024 * 1024,
        backup_count=max_backups,
        clear_on_start=log_clear or log_config.clear_on_start,
    )

    ctx.obj = CliState(config=config, non_interactive=non_interactive)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
