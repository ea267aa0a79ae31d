"""CLI commands for snapshot synchronization.

This module provides commands for configuring the remote store, running and
scheduling syncs, and inspecting sync state.
"""

import time
from datetime import datetime, timezone
from typing import Annotated, Optional

import cyclopts
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from snapsync.sync.attempt_log import SyncAttemptLog
from snapsync.sync.exceptions import NotReadyError, SyncError, TransportError
from snapsync.sync.local_state import JsonLocalState
from snapsync.sync.models import from_millis
from snapsync.sync.orchestrator import SyncAttemptResult
from snapsync.sync.sync_config import SyncConfig
from snapsync.sync.sync_strategy import (
    RemoteSync,
    create_orchestrator,
    create_sync_strategy,
)

# Create the sync command group
sync_app = cyclopts.App(name="sync", help="Synchronize local data with the remote copy")


def _get_console() -> Console:
    """Get a Rich console for output."""
    return Console()


def _format_instant(instant: int) -> str:
    if not instant:
        return "Never"

    moment = from_millis(instant)
    delta = datetime.now(timezone.utc) - moment
    seconds = delta.total_seconds()

    if seconds < 60:
        time_ago = f"{int(seconds)} seconds ago"
    elif seconds < 3600:
        time_ago = f"{int(seconds / 60)} minutes ago"
    elif seconds < 86400:
        time_ago = f"{int(seconds / 3600)} hours ago"
    else:
        time_ago = f"{int(seconds / 86400)} days ago"

    return f"{moment.strftime('%Y-%m-%d %H:%M:%S UTC')} ({time_ago})"


_ACTION_LABELS = {
    "none": ("Nothing to do", "green"),
    "upload": ("Uploaded local data", "green"),
    "import": ("Imported remote data", "green"),
    "repair": ("Advanced last sync time", "green"),
    "deferred": ("Conflict deferred until next sync", "yellow"),
    "skipped": ("Another sync is running", "yellow"),
}


def _print_result(console: Console, result: SyncAttemptResult) -> None:
    label, color = _ACTION_LABELS.get(result.action, (result.action, "white"))

    body = Text.assemble(
        ("✓ " if color == "green" else "! ", f"{color} bold"),
        (f"{label}\n\n", color),
        ("Outcome: ", "cyan"),
        (result.outcome.value if result.outcome else "-", "white"),
        ("\n"),
        ("Path: ", "cyan"),
        (result.path or "-", "white"),
        ("\n"),
        ("Transfers: ", "cyan"),
        (f"{result.uploads} up, {result.downloads} down", "white"),
    )
    if result.revision:
        body.append_text(Text.assemble(("\nRevision: ", "cyan"), (result.revision, "white")))

    console.print(Panel(body, title="Sync Complete", border_style=color))


@sync_app.command
def setup(
    backend: Annotated[
        str, cyclopts.Parameter(help="Remote store backend: dropbox or directory")
    ],
    *,
    token: Annotated[
        Optional[str], cyclopts.Parameter(help="Dropbox access token (or ${VAR})")
    ] = None,
    remote_dir: Annotated[
        Optional[str], cyclopts.Parameter(help="Shared directory for the directory backend")
    ] = None,
    remote_path: Annotated[
        Optional[str], cyclopts.Parameter(help="Path of the document in the remote store")
    ] = None,
    enable: Annotated[bool, cyclopts.Parameter(help="Enable sync after setup")] = True,
):
    """Configure the remote store.

    Example:
        snapsync sync setup dropbox --token '${DROPBOX_TOKEN}'
        snapsync sync setup directory --remote-dir /mnt/shared/snapsync
    """
    console = _get_console()
    config = SyncConfig()

    try:
        config.setup(
            backend=backend,
            access_token=token,
            remote_dir=remote_dir,
            remote_path=remote_path,
            enable=enable,
        )
    except ValueError as e:
        console.print(f"[red]Error during setup: {e}[/red]")
        return

    is_valid, errors = config.validate()
    if not is_valid:
        console.print("[yellow]Saved, but the configuration is incomplete:[/yellow]")
        for error in errors:
            console.print(f"  • {error}")
        return

    console.print(
        Panel(
            Text.assemble(
                ("✓ ", "green bold"),
                ("Sync configured successfully\n\n", "green"),
                ("Backend: ", "cyan"),
                (config.backend, "white"),
                ("\n"),
                ("Remote path: ", "cyan"),
                (config.remote_path, "white"),
                ("\n"),
                ("Enabled: ", "cyan"),
                (str(enable), "white"),
            ),
            title="Setup Complete",
            border_style="green",
        )
    )


@sync_app.command
def enable():
    """Enable sync."""
    console = _get_console()
    config = SyncConfig()

    if not config.is_configured:
        console.print(
            "[red]Error: Sync not configured. Run 'snapsync sync setup' first.[/red]"
        )
        return

    config.set_enabled(True)
    console.print("[green]✓ Sync enabled[/green]")


@sync_app.command
def disable():
    """Disable sync."""
    console = _get_console()
    SyncConfig().set_enabled(False)
    console.print("[yellow]Sync disabled[/yellow]")


@sync_app.command
def status():
    """Show sync configuration and bookkeeping."""
    console = _get_console()
    config = SyncConfig()

    table = Table(title="Sync Status", show_header=False, box=None)
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Value", style="white")

    table.add_row("Configured", "✓ Yes" if config.is_configured else "✗ No")

    if not config.is_configured:
        table.add_row("", "[yellow]Run 'snapsync sync setup' to configure[/yellow]")
        console.print(table)
        return

    table.add_row("Backend", config.backend)
    if config.backend == "directory":
        table.add_row("Remote Directory", str(config.remote_dir))
    table.add_row("Remote Path", config.remote_path)
    table.add_row("Enabled", "✓ Yes" if config.is_enabled else "✗ No")
    table.add_row("Conflict Policy", config.conflict_policy)
    table.add_row("Interval", f"{config.sync_interval} seconds")

    state = JsonLocalState(config.state_file)
    table.add_row("Revision", state.get_revision() or "None")
    table.add_row("Last Sync", _format_instant(state.get_last_sync()))
    table.add_row("Last Check", _format_instant(state.get_last_sync_check()))

    last_success = SyncAttemptLog(config.log_file).get_last_success()
    if last_success:
        table.add_row(
            "Last Success",
            f"{last_success.timestamp.strftime('%Y-%m-%d %H:%M:%S UTC')} "
            f"({last_success.action})",
        )

    is_valid, errors = config.validate()
    if not is_valid:
        table.add_row("Validation", "[red]✗ Failed[/red]")
        for error in errors:
            table.add_row("", f"  • {error}")
    else:
        table.add_row("Validation", "✓ Passed")

    console.print(table)


@sync_app.command
def run(
    *,
    policy: Annotated[
        Optional[str],
        cyclopts.Parameter(help="Conflict policy override: prompt, local, remote, defer"),
    ] = None,
):
    """Run one sync attempt now.

    Example:
        snapsync sync run
        snapsync sync run --policy defer
    """
    console = _get_console()
    config = SyncConfig()

    try:
        orchestrator = create_orchestrator(config, policy=policy, console=console)
        if (policy or config.conflict_policy) == "prompt":
            # A live spinner would redraw over the conflict prompt
            result = orchestrator.sync()
        else:
            with console.status("[cyan]Syncing...[/cyan]"):
                result = orchestrator.sync()
    except NotReadyError:
        console.print(
            "[red]Error: Sync is not enabled or not configured. "
            "Run 'snapsync sync setup' first.[/red]"
        )
        return
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return
    except TransportError as e:
        console.print(f"[red]Remote store unavailable, try again later: {e}[/red]")
        return
    except SyncError as e:
        console.print(f"[red]Sync failed: {e}[/red]")
        raise

    _print_result(console, result)


@sync_app.command
def watch(
    *,
    interval: Annotated[
        Optional[int], cyclopts.Parameter(help="Seconds between syncs (default: configured)")
    ] = None,
    policy: Annotated[
        Optional[str], cyclopts.Parameter(help="Conflict policy override")
    ] = None,
):
    """Sync periodically until interrupted.

    Conflicts default to the configured policy; use --policy defer for
    unattended runs.
    """
    console = _get_console()
    config = SyncConfig()
    strategy = create_sync_strategy(config, policy=policy)

    if not isinstance(strategy, RemoteSync):
        console.print(
            "[red]Error: Sync is not enabled or not configured. "
            "Run 'snapsync sync setup' first.[/red]"
        )
        return

    if interval is not None:
        strategy.interval = interval

    console.print(
        f"[cyan]Syncing every {strategy.interval} seconds, Ctrl+C to stop[/cyan]"
    )
    try:
        while True:
            if strategy.is_due():
                report = strategy.sync(blocking=False)
                if report and "error" in report:
                    console.print(f"[red]Sync failed: {report['error']}[/red]")
                elif report:
                    console.print(
                        f"[dim]{datetime.now().strftime('%H:%M:%S')}[/dim] "
                        f"{report['outcome']} ({report['action']})"
                    )
            time.sleep(1)
    except KeyboardInterrupt:
        console.print("[yellow]Stopped[/yellow]")


@sync_app.command
def log(
    *,
    limit: Annotated[int, cyclopts.Parameter(help="Number of attempts to show")] = 20,
):
    """Show recent sync attempts."""
    console = _get_console()
    config = SyncConfig()
    attempt_log = SyncAttemptLog(config.log_file)
    attempts = attempt_log.get_recent_attempts(limit)

    if not attempts:
        console.print("[yellow]No sync attempts recorded[/yellow]")
        return

    table = Table(title="Recent Sync Attempts")
    table.add_column("Time", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("Outcome")
    table.add_column("Action")
    table.add_column("Error", style="red")

    status_styles = {"success": "green", "failed": "red", "deferred": "yellow"}
    for attempt in attempts:
        style = status_styles.get(attempt.status, "white")
        table.add_row(
            attempt.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            f"[{style}]{attempt.status}[/{style}]",
            attempt.outcome or "-",
            attempt.action,
            attempt.error or "",
        )

    console.print(table)

    stats = attempt_log.get_statistics()
    console.print(
        f"[dim]{stats['total_attempts']} attempts, "
        f"{stats['recent_failures']} failures in the last 24 hours[/dim]"
    )


@sync_app.command
def reset(
    *,
    yes: Annotated[bool, cyclopts.Parameter(help="Skip confirmation")] = False,
):
    """Forget the stored revision and last sync time.

    The next sync compares both copies from scratch and may ask to resolve a
    conflict.
    """
    console = _get_console()
    config = SyncConfig()

    if not yes:
        console.print(
            "[yellow]This clears sync bookkeeping. Re-run with --yes to confirm.[/yellow]"
        )
        return

    JsonLocalState(config.state_file).clear()
    console.print("[green]✓ Sync bookkeeping cleared[/green]")
