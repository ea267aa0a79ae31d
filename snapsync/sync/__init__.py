"""Snapshot synchronization.

This module reconciles one local data snapshot with one remote copy:
- ClockPolicy: Timestamp resolution normalization
- check_for_update: Pure three-way sync decision
- SyncOrchestrator: Fast paths, transfers and bookkeeping for one attempt
- ConflictArbiter: Pick a side when both copies changed
- RemoteStore / LocalState / DataStore: Capabilities the orchestrator consumes
- SyncStrategy: Scheduler-facing wrapper with a no-op when sync is disabled
"""

from snapsync.sync.attempt_log import SyncAttempt, SyncAttemptLog
from snapsync.sync.clock import EXACT, REMOTE_RESOLUTION, ClockPolicy
from snapsync.sync.conflict_arbiter import (
    ConflictArbiter,
    ConflictResolution,
    FixedConflictArbiter,
    PromptConflictArbiter,
    create_conflict_arbiter,
)
from snapsync.sync.data_store import DataStore, JsonFileDataStore
from snapsync.sync.decision import Outcome, SyncPoint, check_for_update
from snapsync.sync.dropbox_client import DropboxRemoteStore
from snapsync.sync.exceptions import (
    ConflictResolutionError,
    InvalidBookkeepingError,
    MissingRevisionError,
    NotReadyError,
    RemoteNotFoundError,
    SnapshotFormatError,
    SyncError,
    TransportError,
)
from snapsync.sync.local_state import InMemoryLocalState, JsonLocalState, LocalState
from snapsync.sync.models import DownloadResult, RemoteMetadata, Snapshot
from snapsync.sync.orchestrator import SyncAttemptResult, SyncOrchestrator
from snapsync.sync.remote_store import DirectoryRemoteStore, RemoteStore
from snapsync.sync.sync_config import SyncConfig
from snapsync.sync.sync_strategy import (
    NoOpSync,
    RemoteSync,
    SyncStrategy,
    create_orchestrator,
    create_sync_strategy,
)

__all__ = [
    # Decision
    "ClockPolicy",
    "EXACT",
    "REMOTE_RESOLUTION",
    "Outcome",
    "SyncPoint",
    "check_for_update",
    # Orchestration
    "SyncOrchestrator",
    "SyncAttemptResult",
    "SyncAttempt",
    "SyncAttemptLog",
    # Capabilities
    "RemoteStore",
    "DirectoryRemoteStore",
    "DropboxRemoteStore",
    "LocalState",
    "JsonLocalState",
    "InMemoryLocalState",
    "DataStore",
    "JsonFileDataStore",
    "ConflictArbiter",
    "ConflictResolution",
    "FixedConflictArbiter",
    "PromptConflictArbiter",
    "create_conflict_arbiter",
    # Models
    "Snapshot",
    "RemoteMetadata",
    "DownloadResult",
    # Config and strategy
    "SyncConfig",
    "SyncStrategy",
    "NoOpSync",
    "RemoteSync",
    "create_orchestrator",
    "create_sync_strategy",
    # Exceptions
    "SyncError",
    "NotReadyError",
    "TransportError",
    "RemoteNotFoundError",
    "MissingRevisionError",
    "InvalidBookkeepingError",
    "SnapshotFormatError",
    "ConflictResolutionError",
]
