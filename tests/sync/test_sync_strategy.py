"""Tests for sync strategies and wiring."""

from unittest.mock import Mock

import pytest

from snapsync.sync.decision import Outcome
from snapsync.sync.dropbox_client import DropboxRemoteStore
from snapsync.sync.exceptions import NotReadyError, TransportError
from snapsync.sync.local_state import JsonLocalState
from snapsync.sync.models import Snapshot
from snapsync.sync.orchestrator import SyncAttemptResult
from snapsync.sync.remote_store import DirectoryRemoteStore
from snapsync.sync.sync_config import SyncConfig
from snapsync.sync.sync_strategy import (
    NoOpSync,
    RemoteSync,
    create_orchestrator,
    create_remote_store,
    create_sync_strategy,
)


@pytest.fixture
def directory_config(temp_dir):
    config = SyncConfig(temp_dir / "local" / "config.json")
    config.setup("directory", remote_dir=str(temp_dir / "shared"))
    config.set("conflict_policy", "defer")
    config.save()
    return config


class TestNoOpSync:
    """Tests for NoOpSync."""

    def test_does_nothing(self):
        strategy = NoOpSync()
        assert strategy.sync() is None
        assert not strategy.is_due()


class TestRemoteSync:
    """Tests for RemoteSync."""

    def test_reports_result(self):
        orchestrator = Mock()
        orchestrator.sync.return_value = SyncAttemptResult(
            outcome=Outcome.REMOTE_UPDATE_REQUIRED, action="upload", uploads=1
        )

        result = RemoteSync(orchestrator).sync(blocking=False)

        orchestrator.sync.assert_called_once_with(blocking=False)
        assert result == {
            "outcome": "remote_update_required",
            "action": "upload",
            "transfers": 1,
        }

    @pytest.mark.parametrize("error", [TransportError("offline"), NotReadyError("disabled")])
    def test_reports_errors(self, error):
        orchestrator = Mock()
        orchestrator.sync.side_effect = error

        assert RemoteSync(orchestrator).sync() == {"error": str(error)}

    def test_is_due(self):
        orchestrator = Mock()
        orchestrator.local_state.get_last_sync_check.return_value = 1_000_000
        strategy = RemoteSync(orchestrator, interval=60)

        assert not strategy.is_due(now=1_059_999)
        assert strategy.is_due(now=1_060_000)


class TestFactories:
    """Tests for wiring from configuration."""

    def test_remote_store_for_backend(self, directory_config, temp_dir):
        store = create_remote_store(directory_config)
        assert isinstance(store, DirectoryRemoteStore)
        assert store.root == temp_dir / "shared"

    def test_dropbox_store(self, temp_dir):
        config = SyncConfig(temp_dir / "config.json")
        config.setup("dropbox", access_token="token-123")

        store = create_remote_store(config)

        assert isinstance(store, DropboxRemoteStore)
        assert store.client.headers["Authorization"] == "Bearer token-123"
        store.close()

    def test_dropbox_store_requires_token(self, temp_dir):
        config = SyncConfig(temp_dir / "config.json")

        with pytest.raises(ValueError):
            create_remote_store(config)

    def test_disabled_gives_noop(self, temp_dir):
        config = SyncConfig(temp_dir / "config.json")
        assert isinstance(create_sync_strategy(config), NoOpSync)

    def test_invalid_policy_gives_noop(self, directory_config):
        assert isinstance(create_sync_strategy(directory_config, policy="newest"), NoOpSync)

    def test_enabled_gives_remote_sync(self, directory_config):
        strategy = create_sync_strategy(directory_config)

        assert isinstance(strategy, RemoteSync)
        assert strategy.interval == 300

    def test_orchestrator_uses_configured_files(self, directory_config):
        orchestrator = create_orchestrator(directory_config)

        assert isinstance(orchestrator.local_state, JsonLocalState)
        assert orchestrator.local_state.state_file == directory_config.state_file
        assert orchestrator.remote_path == "/snapsync.json"
        assert orchestrator.attempt_log.log_file == directory_config.log_file

    def test_two_devices_converge(self, directory_config, temp_dir):
        """End to end over a shared directory."""
        laptop = create_orchestrator(directory_config)
        laptop.data_store.import_snapshot(
            Snapshot(data={"tasks": ["a"]}, last_local_sync_model_change=1_700_000_000_500)
        )

        desktop_config = SyncConfig(temp_dir / "desktop" / "config.json")
        desktop_config.setup("directory", remote_dir=str(temp_dir / "shared"))
        desktop = create_orchestrator(desktop_config, policy="defer")

        first = laptop.sync()
        second = desktop.sync()
        third = desktop.sync()

        assert first.action == "upload"
        assert second.action == "import"
        assert desktop.data_store.read_current_snapshot().data == {"tasks": ["a"]}
        assert third.outcome == Outcome.IN_SYNC
        assert third.path == "revision_fast_path"

    def test_disabled_orchestrator_is_not_ready(self, directory_config):
        directory_config.set_enabled(False)
        orchestrator = create_orchestrator(directory_config)

        with pytest.raises(NotReadyError):
            orchestrator.sync()
