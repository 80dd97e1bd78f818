"""Shared CLI plumbing: provider options, storage setup and error reporting."""

from __future__ import annotations

import contextlib
import signal
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import typer
from rich.console import Console

from baxfer.core.cancel import CancellationToken
from baxfer.core.exceptions import BaxferError
from baxfer.core.models import AppConfig, ProviderType, StorageConfig
from baxfer.logging import get_logger
from baxfer.storage import BaseStorage, get_storage

console = Console()
err_console = Console(stderr=True)


@dataclass
class CliState:
    """Settings resolved by the top-level callback, shared with every command."""

    config: AppConfig = field(default_factory=AppConfig)
    non_interactive: bool = False


def get_state(ctx: typer.Context) -> CliState:
    if not isinstance(ctx.obj, CliState):
        ctx.obj = CliState()
    return ctx.obj


# ──────────────────── Provider options ───────────────────

ProviderOption = typer.Option(
    None, "--provider", "-p", help="Storage provider (s3, r2, b2s3, b2, sftp, local). Default: s3.",
    case_sensitive=False,
)
BucketOption = typer.Option(None, "--bucket", "-b", help="Bucket name (object stores).")
RegionOption = typer.Option(None, "--region", "-r", help="Bucket region (object stores).")
EndpointOption = typer.Option(None, "--endpoint-url", help="Custom S3-compatible endpoint URL.")
SftpHostOption = typer.Option(None, "--sftp-host", envvar="SFTP_HOST", help="SFTP server host.")
SftpPortOption = typer.Option(None, "--sftp-port", envvar="SFTP_PORT", help="SFTP server port (default 22).")
SftpUserOption = typer.Option(None, "--sftp-user", envvar="SFTP_USER", help="SFTP user name.")
SftpPathOption = typer.Option(None, "--sftp-path", envvar="SFTP_PATH", help="Base path on the SFTP server.")
LocalPathOption = typer.Option(None, "--local-path", help="Target directory for the local provider.")
KeyPrefixOption = typer.Option(None, "--keyprefix", "-k", help="Key prefix for remote objects.")


def build_storage_config(
        base: StorageConfig,
        *,
        provider: ProviderType | None = None,
        bucket: str | None = None,
        region: str | None = None,
        endpoint_url: str | None = None,
        sftp_host: str | None = None,
        sftp_port: int | None = None,
        sftp_user: str | None = None,
        sftp_path: str | None = None,
        local_path: Path | None = None,
) -> StorageConfig:
    """Overlay the options given on the command line onto *base*."""
    overrides: dict[str, Any] = {
        "provider": provider,
        "bucket": bucket,
        "region": region,
        "endpoint_url": endpoint_url,
        "sftp_host": sftp_host,
        "sftp_port": sftp_port,
        "sftp_user": sftp_user,
        "sftp_path": sftp_path,
        "local_path": local_path,
    }
    return base.model_copy(update={k: v for k, v in overrides.items() if v is not None})


# ──────────────────── Running an operation ───────────────


@contextlib.contextmanager
def cancel_on_signals(token: CancellationToken) -> Iterator[None]:
    """Route SIGINT/SIGTERM to *token* for the duration of the block.

    A second SIGINT falls back to the previous handler and interrupts
    immediately.
    """
    previous: dict[int, Any] = {}

    def _handler(signum: int, _frame: Any) -> None:
        token.cancel()
        if signum == signal.SIGINT:
            signal.signal(signal.SIGINT, previous[signal.SIGINT])

    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            previous[signum] = signal.signal(signum, _handler)
        except ValueError:
            # Not on the main thread; signals stay with their current owner.
            pass
    try:
        yield
    finally:
        for signum, handler in previous.items():
            signal.signal(signum, handler)


@contextlib.contextmanager
def storage_session(
        config: StorageConfig,
        command: str,
        log: Any | None = None,
) -> Iterator[tuple[BaseStorage, CancellationToken]]:
    """Open the configured backend and report any failure as one line.

    Every :class:`BaxferError` ends the command with exit code 1 and its
    user-facing message on stderr; the full error goes to the log. The
    backend is closed exactly once, whatever happened.
    """
    log = log or get_logger(f"baxfer.{command}")
    token = CancellationToken()
    storage: BaseStorage | None = None
    try:
        with cancel_on_signals(token):
            storage = get_storage(config, log=log)
            yield storage, token
    except BaxferError as exc:
        log.error(
            f"{command}_failed",
            error=exc.message,
            error_type=type(exc).__name__,
            exc_info=True,
        )
        err_console.print(f"[bold red]✗ {exc.user_message}[/bold red]")
        raise typer.Exit(code=1) from exc
    except KeyboardInterrupt as exc:
        log.warning(f"{command}_interrupted")
        err_console.print("[bold red]✗ Operation cancelled[/bold red]")
        raise typer.Exit(code=1) from exc
    except Exception as exc:
        log.error(f"{command}_failed", error=str(exc), error_type=type(exc).__name__, exc_info=True)
        err_console.print(
            f"[bold red]✗ An unexpected error occurred during {command}: {exc}[/bold red]"
        )
        raise typer.Exit(code=1) from exc
    finally:
        if storage is not None:
            storage.close()
