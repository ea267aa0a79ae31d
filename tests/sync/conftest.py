"""Shared fixtures for sync tests."""

from pathlib import Path
from tempfile import TemporaryDirectory

import pytest

from snapsync.sync.clock import REMOTE_RESOLUTION
from snapsync.sync.conflict_arbiter import FixedConflictArbiter
from snapsync.sync.data_store import DataStore
from snapsync.sync.exceptions import RemoteNotFoundError, TransportError
from snapsync.sync.local_state import InMemoryLocalState
from snapsync.sync.models import DownloadResult, RemoteMetadata, Snapshot
from snapsync.sync.orchestrator import SyncOrchestrator
from snapsync.sync.remote_store import RemoteStore

REMOTE_PATH = "/snapsync.json"


class FakeRemoteStore(RemoteStore):
    """In-memory remote store that counts calls.

    Revisions are "rev-1", "rev-2", ... and change on every upload. The
    reported modified time is truncated to whole seconds like a hosted store.
    """

    def __init__(self, snapshot: Snapshot | None = None, rev: str = "rev-1"):
        self.snapshot = snapshot
        self.rev = rev if snapshot is not None else None
        self.modified = (
            REMOTE_RESOLUTION.truncate(snapshot.last_local_sync_model_change)
            if snapshot is not None
            else 0
        )
        self._counter = 1
        self.fetch_calls = 0
        self.download_calls = 0
        self.upload_calls = 0
        self.fail_with: Exception | None = None
        self.download_rev_override: str | None = "unset"

    def fetch_metadata(self, path: str) -> RemoteMetadata:
        self.fetch_calls += 1
        if self.fail_with:
            raise self.fail_with
        if self.snapshot is None:
            raise RemoteNotFoundError(path)
        return RemoteMetadata(rev=self.rev, modified=self.modified)

    def download(self, path: str, known_revision: str | None) -> DownloadResult:
        self.download_calls += 1
        if self.snapshot is None:
            raise RemoteNotFoundError(path)
        rev = self.rev
        if self.download_rev_override != "unset":
            rev = self.download_rev_override
        return DownloadResult(snapshot=self.snapshot, rev=rev)

    def upload(self, path: str, snapshot: Snapshot, client_modified: int) -> str:
        self.upload_calls += 1
        self._counter += 1
        self.snapshot = snapshot
        self.rev = f"rev-{self._counter}"
        self.modified = REMOTE_RESOLUTION.truncate(client_modified)
        return self.rev

    def replace(self, snapshot: Snapshot) -> None:
        """Simulate another device writing the remote copy."""
        self.upload("ignored", snapshot, snapshot.last_local_sync_model_change)
        self.upload_calls -= 1

    @property
    def transfers(self) -> int:
        return self.download_calls + self.upload_calls


class InMemoryDataStore(DataStore):
    """Data store holding a single snapshot in memory."""

    def __init__(self, snapshot: Snapshot | None = None):
        self.snapshot = snapshot or Snapshot()
        self.imports: list[Snapshot] = []

    def read_current_snapshot(self) -> Snapshot:
        return self.snapshot

    def import_snapshot(self, snapshot: Snapshot) -> None:
        self.imports.append(snapshot)
        self.snapshot = snapshot


def snapshot_at(change_time: int, **data) -> Snapshot:
    return Snapshot(data=data or {"tasks": [change_time]}, last_local_sync_model_change=change_time)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def make_orchestrator():
    """Build an orchestrator around fakes.

    Returns a factory taking local/remote change times and bookkeeping.
    """

    def factory(
        local: int,
        remote: int | None,
        last_sync: int,
        revision: str | None = None,
        strategy: str = "defer",
        remote_rev: str = "rev-1",
        **kwargs,
    ):
        remote_store = FakeRemoteStore(
            snapshot_at(remote, side="remote") if remote is not None else None,
            rev=remote_rev,
        )
        local_state = InMemoryLocalState(revision=revision, last_sync=last_sync)
        data_store = InMemoryDataStore(snapshot_at(local, side="local"))
        orchestrator = SyncOrchestrator(
            remote=remote_store,
            local_state=local_state,
            data_store=data_store,
            arbiter=kwargs.pop("arbiter", FixedConflictArbiter(strategy)),
            remote_path=REMOTE_PATH,
            now=kwargs.pop("now", lambda: 5_000_000),
            **kwargs,
        )
        return orchestrator, remote_store, local_state, data_store

    return factory


@pytest.fixture
def failing_remote():
    remote = FakeRemoteStore(snapshot_at(1000))
    remote.fail_with = TransportError("connection reset")
    return remote
