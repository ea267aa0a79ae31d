"""Sync strategy interface and implementations.

Lets callers (the CLI, a periodic scheduler, an application hook) trigger a
sync without checking whether sync is configured: a disabled setup gets a
:class:`NoOpSync`.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

from rich.console import Console

from snapsync.sync.attempt_log import SyncAttemptLog
from snapsync.sync.conflict_arbiter import create_conflict_arbiter
from snapsync.sync.data_store import JsonFileDataStore
from snapsync.sync.dropbox_client import DropboxRemoteStore
from snapsync.sync.exceptions import SyncError
from snapsync.sync.local_state import JsonLocalState
from snapsync.sync.models import now_millis
from snapsync.sync.orchestrator import SyncOrchestrator
from snapsync.sync.remote_store import DirectoryRemoteStore, RemoteStore
from snapsync.sync.sync_config import SyncConfig

logger = logging.getLogger(__name__)


class SyncStrategy(ABC):
    """Abstract interface for triggering a sync."""

    @abstractmethod
    def sync(self, blocking: bool = True) -> Optional[dict]:
        """Run one sync attempt.

        Returns:
            Optional dict with attempt results (for logging/debugging):
            {
                "outcome": str,
                "action": str,
                "transfers": int,
                "error": str (if error occurred)
            }
        """

    @abstractmethod
    def is_due(self, now: int | None = None) -> bool:
        """Check whether the sync interval has elapsed since the last attempt."""


class NoOpSync(SyncStrategy):
    """No-op implementation - sync is disabled."""

    def sync(self, blocking: bool = True) -> None:
        return None

    def is_due(self, now: int | None = None) -> bool:
        return False


class RemoteSync(SyncStrategy):
    """Sync through an orchestrator, throttled by a minimum interval."""

    def __init__(self, orchestrator: SyncOrchestrator, interval: int = 300):
        """Initialize remote sync.

        Args:
            orchestrator: Orchestrator for the synced document
            interval: Minimum seconds between attempts
        """
        self.orchestrator = orchestrator
        self.interval = interval

    def is_due(self, now: int | None = None) -> bool:
        now = now if now is not None else now_millis()
        last_check = self.orchestrator.local_state.get_last_sync_check()
        return now - last_check >= self.interval * 1000

    def sync(self, blocking: bool = True) -> Optional[dict]:
        """Run one attempt, reporting failures instead of raising."""
        try:
            result = self.orchestrator.sync(blocking=blocking)
        except SyncError as e:
            logger.warning(f"Sync failed: {e}")
            return {"error": str(e)}

        return {
            "outcome": result.outcome.value if result.outcome else None,
            "action": result.action,
            "transfers": result.transfers,
        }


def create_remote_store(config: SyncConfig) -> RemoteStore:
    """Create the remote store for the configured backend.

    Raises:
        ValueError: If the backend is unknown or incomplete
    """
    if config.backend == "dropbox":
        if not config.access_token:
            raise ValueError("Dropbox backend requires an access token")
        return DropboxRemoteStore(config.access_token)
    if config.backend == "directory":
        if config.remote_dir is None:
            raise ValueError("Directory backend requires remote_dir")
        return DirectoryRemoteStore(config.remote_dir)
    raise ValueError(f"Invalid backend: {config.backend}")


def create_orchestrator(
    config: SyncConfig,
    policy: str | None = None,
    console: Console | None = None,
) -> SyncOrchestrator:
    """Wire an orchestrator from configuration.

    Args:
        config: Sync configuration
        policy: Conflict policy override (defaults to the configured one)
        console: Console for interactive conflict prompts
    """
    return SyncOrchestrator(
        remote=create_remote_store(config),
        local_state=JsonLocalState(config.state_file),
        data_store=JsonFileDataStore(config.data_file),
        arbiter=create_conflict_arbiter(policy or config.conflict_policy, console),
        remote_path=config.remote_path,
        is_ready=config.is_sync_enabled,
        attempt_log=SyncAttemptLog(config.log_file),
    )


def create_sync_strategy(
    config: SyncConfig | None = None, policy: str | None = None
) -> SyncStrategy:
    """Factory returning RemoteSync when sync is enabled, NoOpSync otherwise."""
    try:
        config = config or SyncConfig()

        if not config.is_sync_enabled():
            return NoOpSync()

        return RemoteSync(
            create_orchestrator(config, policy=policy),
            interval=config.sync_interval,
        )

    except ValueError as e:
        logger.warning(f"Failed to create sync strategy: {e}, using NoOpSync")
        return NoOpSync()
