"""Sync orchestration between one local snapshot and its remote copy.

One attempt walks these branches and stops at the first that applies:

1. Capability gate: sync disabled or unauthorized -> NotReadyError
2. Revision fast path: remote revision unchanged and no local change since
   the last sync -> in sync, no transfer
3. Upload fast path: remote revision unchanged, local changed after the last
   sync -> upload without downloading
4. General path: download the remote snapshot, compare change times and
   dispatch (upload, import, arbitrate, repair, or nothing)

Bookkeeping is written only after a transfer has fully completed.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from snapsync.sync.attempt_log import SyncAttemptLog
from snapsync.sync.clock import REMOTE_RESOLUTION, ClockPolicy
from snapsync.sync.conflict_arbiter import ConflictArbiter, ConflictResolution
from snapsync.sync.data_store import DataStore
from snapsync.sync.decision import Outcome, SyncPoint, check_for_update
from snapsync.sync.exceptions import (
    ConflictResolutionError,
    MissingRevisionError,
    NotReadyError,
    RemoteNotFoundError,
)
from snapsync.sync.local_state import LocalState
from snapsync.sync.models import Snapshot, now_millis
from snapsync.sync.remote_store import RemoteStore

logger = logging.getLogger(__name__)


@dataclass
class SyncAttemptResult:
    """Result of one sync attempt."""

    outcome: Outcome | None = None
    action: str = "none"  # "none", "upload", "import", "repair", "deferred", "skipped"
    path: str | None = None  # "revision_fast_path", "upload_fast_path", "general", "initial_upload"
    resolution: ConflictResolution | None = None
    revision: str | None = None
    last_sync: int | None = None
    uploads: int = 0
    downloads: int = 0
    duration: float = 0.0

    @property
    def skipped(self) -> bool:
        return self.action == "skipped"

    @property
    def transfers(self) -> int:
        return self.uploads + self.downloads


class SyncOrchestrator:
    """Drive sync attempts for one document.

    At most one attempt runs at a time. ``sync()`` waits for an active attempt
    to finish; ``sync(blocking=False)`` drops the request instead.
    """

    def __init__(
        self,
        remote: RemoteStore,
        local_state: LocalState,
        data_store: DataStore,
        arbiter: ConflictArbiter,
        remote_path: str,
        is_ready: Callable[[], bool] | None = None,
        clock: ClockPolicy = REMOTE_RESOLUTION,
        attempt_log: SyncAttemptLog | None = None,
        now: Callable[[], int] = now_millis,
    ):
        """Initialize orchestrator.

        Args:
            remote: Remote store holding the shared copy
            local_state: Persisted sync bookkeeping
            data_store: Local application data
            arbiter: Consulted when both sides changed
            remote_path: Path of the document in the remote store
            is_ready: Capability gate, e.g. "enabled and token present"
            clock: Resolution of the remote store's modified times
            attempt_log: Log every attempt here (optional)
            now: Clock for the attempt-observed timestamp
        """
        self.remote = remote
        self.local_state = local_state
        self.data_store = data_store
        self.arbiter = arbiter
        self.remote_path = remote_path
        self.is_ready = is_ready or (lambda: True)
        self.clock = clock
        self.attempt_log = attempt_log
        self.now = now

        self._lock = threading.Lock()

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    def sync(self, blocking: bool = True) -> SyncAttemptResult:
        """Run one sync attempt.

        Args:
            blocking: Wait for an attempt already in flight (default), or
                return a skipped result immediately

        Returns:
            SyncAttemptResult describing what happened

        Raises:
            NotReadyError: Sync disabled or not authorized
            TransportError: Remote store failed, retry on a later attempt
            MissingRevisionError: Transfer completed without a revision
            InvalidBookkeepingError: Bookkeeping rejected a value
        """
        if not self._lock.acquire(blocking=blocking):
            logger.info("Sync already in progress, dropping request")
            result = SyncAttemptResult(action="skipped")
            self._log_attempt("skipped", result)
            return result

        try:
            return self._run_attempt()
        finally:
            self._lock.release()

    def _run_attempt(self) -> SyncAttemptResult:
        start_time = time.time()
        result = SyncAttemptResult()

        try:
            self._attempt(result)
        except Exception as e:
            result.duration = time.time() - start_time
            logger.warning(f"Sync attempt failed: {e}")
            try:
                self._log_attempt("failed", result, error=str(e))
            except OSError as log_error:
                logger.error(f"Failed to log sync attempt: {log_error}")
            raise

        result.duration = time.time() - start_time
        status = "deferred" if result.action == "deferred" else "success"
        self._log_attempt(status, result)
        return result

    def _attempt(self, result: SyncAttemptResult) -> None:
        if not self.is_ready():
            raise NotReadyError("Sync is not enabled or not authorized")

        self.local_state.mark_attempt_observed(self.now())

        local_rev = self.local_state.get_revision()
        last_sync = self.local_state.get_last_sync()
        local = self.data_store.read_current_snapshot()
        local_change = local.last_local_sync_model_change

        try:
            meta = self.remote.fetch_metadata(self.remote_path)
        except RemoteNotFoundError:
            self._initial_upload(local, result)
            return

        if meta.rev == local_rev:
            logger.debug(f"Remote revision unchanged ({meta.rev})")

            if local_change == last_sync:
                logger.debug("No local changes to sync")
                result.path = "revision_fast_path"
                result.outcome = Outcome.IN_SYNC
                return

            if self._only_local_changed(local_change, meta.modified, last_sync):
                logger.debug("Only local changed, uploading without download")
                result.path = "upload_fast_path"
                result.outcome = Outcome.REMOTE_UPDATE_REQUIRED
                self._upload(local, result)
                return

        downloaded = self.remote.download(self.remote_path, local_rev)
        result.downloads += 1
        remote = downloaded.snapshot

        point = SyncPoint(
            local=local_change,
            remote=remote.last_local_sync_model_change,
            last_sync=last_sync,
        )
        outcome = check_for_update(point)
        result.path = "general"
        result.outcome = outcome

        if outcome == Outcome.IN_SYNC:
            logger.info("In sync, no update")

        elif outcome == Outcome.REMOTE_UPDATE_REQUIRED:
            logger.info("Updating remote")
            self._upload(local, result)

        elif outcome == Outcome.LOCAL_UPDATE_REQUIRED:
            logger.info("Updating local")
            self._import(remote, downloaded.rev, result)

        elif outcome == Outcome.DIVERGED:
            logger.warning(
                f"Diverged data: local={point.local} remote={point.remote} "
                f"last_sync={point.last_sync}"
            )
            resolution = self.arbiter.resolve(
                point.local, point.remote, point.last_sync
            )
            if resolution is None:
                resolution = ConflictResolution.DEFER
            elif not isinstance(resolution, ConflictResolution):
                raise ConflictResolutionError(f"Invalid resolution: {resolution!r}")
            result.resolution = resolution

            if resolution == ConflictResolution.REMOTE:
                logger.info("Conflict resolved, updating remote")
                self._upload(local, result)
            elif resolution == ConflictResolution.LOCAL:
                logger.info("Conflict resolved, updating local")
                self._import(remote, downloaded.rev, result)
            else:
                logger.info("Conflict resolution deferred")
                result.action = "deferred"

        elif outcome == Outcome.SYNC_POINT_STALE:
            logger.info(f"Last sync time stale, advancing to {local_change}")
            self.local_state.set_last_sync(local_change)
            result.action = "repair"
            result.last_sync = local_change

    def _only_local_changed(self, local: int, remote: int, last_sync: int) -> bool:
        """Upload fast path condition: local > last_sync == remote.

        Equality is tested at the remote resolution; a local change within the
        same second as the last sync falls through to the general path.
        """
        return (
            self.clock.is_after(self.clock.truncate(local), remote)
            and self.clock.same_instant(remote, last_sync)
            and self.clock.is_before(last_sync, local)
        )

    def _initial_upload(self, local: Snapshot, result: SyncAttemptResult) -> None:
        result.path = "initial_upload"

        if not local.last_local_sync_model_change:
            logger.info("No remote copy and no local data, nothing to sync")
            result.outcome = Outcome.IN_SYNC
            return

        logger.info("No remote copy yet, uploading local data")
        result.outcome = Outcome.REMOTE_UPDATE_REQUIRED
        self._upload(local, result)

    def _upload(self, snapshot: Snapshot, result: SyncAttemptResult) -> None:
        change_time = snapshot.last_local_sync_model_change
        rev = self.remote.upload(self.remote_path, snapshot, change_time)
        result.uploads += 1

        if not rev:
            raise MissingRevisionError(f"Upload of {self.remote_path} returned no revision")

        self.local_state.record_sync(rev, change_time)
        result.action = "upload"
        result.revision = rev
        result.last_sync = change_time
        logger.info(f"Uploaded data (rev {rev})")

    def _import(
        self,
        snapshot: Snapshot | None,
        rev: str | None,
        result: SyncAttemptResult,
    ) -> None:
        if snapshot is None or not rev:
            downloaded = self.remote.download(
                self.remote_path, self.local_state.get_revision()
            )
            result.downloads += 1
            snapshot, rev = downloaded.snapshot, downloaded.rev

        if not rev:
            raise MissingRevisionError(f"No revision given for {self.remote_path}")

        change_time = snapshot.last_local_sync_model_change
        self.data_store.import_snapshot(snapshot)
        self.local_state.record_sync(rev, change_time)
        result.action = "import"
        result.revision = rev
        result.last_sync = change_time
        logger.info(f"Imported data (rev {rev})")

    def _log_attempt(
        self, status: str, result: SyncAttemptResult, error: str | None = None
    ) -> None:
        if self.attempt_log is None:
            return

        self.attempt_log.log_attempt(
            status=status,
            outcome=result.outcome.value if result.outcome else None,
            action=result.action,
            path=result.path,
            error=error,
            metadata={
                "revision": result.revision,
                "last_sync": result.last_sync,
                "uploads": result.uploads,
                "downloads": result.downloads,
                "resolution": result.resolution.value if result.resolution else None,
                "duration": round(result.duration, 3),
            },
        )
