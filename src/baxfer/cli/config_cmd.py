"""CLI config subcommands for managing baxfer configuration."""

from __future__ import annotations

from pathlib import Path

import click
import typer
from rich.console import Console
from rich.syntax import Syntax

from baxfer.core.models import LogFormat, LoggingConfig, ProviderType

config_app = typer.Typer(no_args_is_help=True, rich_markup_mode="rich")
console = Console()


@config_app.command("init")
def config_init(
        path: Path | None = typer.Option(
            None, "--path", help="Custom config file location."
        ),
) -> None:
    """Create or update the configuration file interactively.

    If no --path is given, writes to the default location:
      macOS:  ~/Library/Application Support/baxfer/config.toml
      Linux:  ~/.config/baxfer/config.toml

    Credentials are never written; they are read from the environment.
    """
    from baxfer.core.config import CONFIG_FILE, save_config_file
    from baxfer.core.models import AppConfig, StorageConfig, UploadOptions

    target = path or CONFIG_FILE

    if target.exists():
        overwrite = typer.confirm(f"Config already exists at {target}. Overwrite?")
        if not overwrite:
            console.print("[yellow]Aborted.[/yellow]")
            raise typer.Exit()

    console.print("[bold]baxfer configuration wizard[/bold]\n")

    # ── Storage ──
    console.print("[bold blue]Storage[/bold blue]")
    provider = typer.prompt(
        "Provider",
        type=click.Choice([p.value for p in ProviderType]),
        default="s3",
    )
    storage_kwargs: dict = {"provider": ProviderType(provider)}

    if ProviderType(provider).is_object_store:
        storage_kwargs["bucket"] = typer.prompt("Bucket name")
        region = typer.prompt("Region (leave empty for the provider default)", default="")
        if region:
            storage_kwargs["region"] = region
    elif provider == ProviderType.SFTP:
        storage_kwargs["sftp_host"] = typer.prompt("SFTP host")
        storage_kwargs["sftp_port"] = typer.prompt("SFTP port", default=22, type=int)
        storage_kwargs["sftp_user"] = typer.prompt("SFTP user")
        storage_kwargs["sftp_path"] = typer.prompt("Base path on the server")
    else:
        storage_kwargs["local_path"] = Path(
            typer.prompt("Target directory", default="./backups")
        )

    storage = StorageConfig(**storage_kwargs)

    # ── Upload ──
    console.print("\n[bold blue]Upload[/bold blue]")
    upload = UploadOptions(
        key_prefix=typer.prompt("Key prefix", default=""),
        backup_ext=typer.prompt("Backup file extension", default=".bak"),
        compress=typer.confirm("Zip files before upload?", default=False),
    )

    # ── Logging ──
    logging_config = LoggingConfig(level="INFO", format=LogFormat.CONSOLE)

    # ── Save ──
    config = AppConfig(storage=storage, upload=upload, logging=logging_config)

    saved_path = save_config_file(config, target)
    console.print(f"\n[green]✓[/green] Config saved to: {saved_path}")
    console.print("  File permissions set to 600 (owner-only read/write).")


@config_app.command("show")
def config_show(
        path: Path | None = typer.Option(
            None, "--path", help="Custom config file location."
        ),
) -> None:
    """Display the current configuration."""
    from baxfer.core.config import CONFIG_FILE

    target = path or CONFIG_FILE

    if not target.exists():
        console.print(
            f"[yellow]No config file found at {target}.[/yellow]\n"
            f"Run [bold]baxfer config init[/bold] to create one."
        )
        raise typer.Exit()

    content = target.read_text()
    syntax = Syntax(content, "toml", theme="monokai", line_numbers=True)
    console.print(f"[bold]Config: {target}[/bold]\n")
    console.print(syntax)


@config_app.command("path")
def config_path() -> None:
    """Show config and data directory paths."""
    from baxfer.core.config import CONFIG_DIR, CONFIG_FILE, DATA_DIR, LOG_DIR

    console.print("[bold]baxfer paths:[/bold]")
    console.print(f"  Config dir:    {CONFIG_DIR}")
    console.print(f"  Config file:   {CONFIG_FILE}")
    console.print(f"  Data dir:      {DATA_DIR}")
    console.print(f"  Logs dir:      {LOG_DIR}")
