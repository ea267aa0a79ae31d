"""Conflict arbitration for snapshot sync.

An arbiter is consulted only when both sides changed since the last sync. It
answers with the side that should receive the update, or defers.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional

from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from snapsync.sync.exceptions import ConflictResolutionError
from snapsync.sync.models import from_millis

logger = logging.getLogger(__name__)


class ConflictResolution(str, Enum):
    """Arbiter answer, naming the side that gets overwritten.

    REMOTE uploads the local snapshot, LOCAL imports the remote one.
    """

    LOCAL = "LOCAL"
    REMOTE = "REMOTE"
    DEFER = "DEFER"


class ConflictArbiter(ABC):
    """Abstract interface for settling diverged data."""

    @abstractmethod
    def resolve(
        self, local: int, remote: int, last_sync: int
    ) -> Optional[ConflictResolution]:
        """Pick a side for diverged data.

        Args:
            local: Local change time (ms)
            remote: Remote change time (ms)
            last_sync: Last sync time (ms)

        Returns:
            The side to update, DEFER, or None for no answer

        Raises:
            ConflictResolutionError: If the arbiter cannot answer
        """


class FixedConflictArbiter(ConflictArbiter):
    """Arbiter that always gives the same answer.

    Can be configured to pick local, remote, defer, or raise errors.
    """

    def __init__(self, strategy: str = "defer"):
        """Initialize fixed arbiter.

        Args:
            strategy: One of "local", "remote", "defer" or "error"
        """
        if strategy not in ("local", "remote", "defer", "error"):
            raise ValueError(f"Invalid strategy: {strategy}")
        self.strategy = strategy

    def resolve(
        self, local: int, remote: int, last_sync: int
    ) -> Optional[ConflictResolution]:
        if self.strategy == "error":
            raise ConflictResolutionError("Arbiter configured to fail")
        return ConflictResolution(self.strategy.upper())


class PromptConflictArbiter(ConflictArbiter):
    """Ask a human on the terminal which side to keep."""

    CHOICES = {
        "upload": ConflictResolution.REMOTE,
        "download": ConflictResolution.LOCAL,
        "later": ConflictResolution.DEFER,
    }

    def __init__(self, console: Console | None = None):
        self.console = console or Console()

    def resolve(
        self, local: int, remote: int, last_sync: int
    ) -> Optional[ConflictResolution]:
        if not self.console.is_interactive:
            logger.info("Diverged data with no interactive terminal, deferring")
            return ConflictResolution.DEFER

        table = Table(title="Sync Conflict", show_header=False, box=None)
        table.add_column("Key", style="cyan", no_wrap=True)
        table.add_column("Value", style="white")
        table.add_row("Local changed", _format_instant(local))
        table.add_row("Remote changed", _format_instant(remote))
        table.add_row("Last sync", _format_instant(last_sync))
        self.console.print(table)
        self.console.print(
            "[yellow]Both copies changed since the last sync.[/yellow]\n"
            "  [bold]upload[/bold]   overwrite the remote copy with local data\n"
            "  [bold]download[/bold] overwrite local data with the remote copy\n"
            "  [bold]later[/bold]    decide on the next sync"
        )

        answer = Prompt.ask(
            "Resolve conflict",
            choices=list(self.CHOICES),
            default="later",
            console=self.console,
        )
        return self.CHOICES[answer]


def _format_instant(instant: int) -> str:
    if not instant:
        return "never"
    return from_millis(instant).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3] + " UTC"


def create_conflict_arbiter(policy: str, console: Console | None = None) -> ConflictArbiter:
    """Build an arbiter from a configured policy name.

    Args:
        policy: "prompt", "local", "remote" or "defer"
        console: Console for the interactive prompt (optional)
    """
    if policy == "prompt":
        return PromptConflictArbiter(console)
    if policy in ("local", "remote", "defer"):
        return FixedConflictArbiter(policy)
    raise ValueError(f"Invalid conflict policy: {policy}")
