"""Tests for sync CLI commands."""

import io
from unittest.mock import patch

import pytest
from rich.console import Console

from snapsync.sync.cli import disable, enable, log, reset, run, setup, status
from snapsync.sync.data_store import JsonFileDataStore
from snapsync.sync.exceptions import TransportError
from snapsync.sync.local_state import JsonLocalState
from snapsync.sync.models import Snapshot
from snapsync.sync.remote_store import DirectoryRemoteStore
from snapsync.sync.sync_config import SyncConfig


@pytest.fixture
def config_path(tmp_path):
    """Point the default config location into a temporary directory."""
    config_path = tmp_path / "snapsync" / "config.json"
    with patch.object(SyncConfig, "DEFAULT_CONFIG_PATH", config_path):
        yield config_path


@pytest.fixture
def shared_dir(tmp_path):
    return tmp_path / "shared"


@pytest.fixture
def configured(config_path, shared_dir):
    setup("directory", remote_dir=str(shared_dir))
    config = SyncConfig()
    config.set("conflict_policy", "defer")
    config.save()
    return config


def test_setup_dropbox(config_path, capsys):
    setup("dropbox", token="token-123")

    captured = capsys.readouterr()
    assert "configured successfully" in captured.out
    config = SyncConfig()
    assert config.access_token == "token-123"
    assert config.is_enabled


def test_setup_incomplete(config_path, capsys):
    setup("directory")

    captured = capsys.readouterr()
    assert "incomplete" in captured.out
    assert "remote_dir" in captured.out


def test_setup_invalid_backend(config_path, capsys):
    setup("ftp")

    captured = capsys.readouterr()
    assert "Invalid backend" in captured.out
    assert not config_path.exists()


def test_enable_requires_setup(config_path, capsys):
    enable()

    captured = capsys.readouterr()
    assert "not configured" in captured.out


def test_disable_and_enable(configured, capsys):
    disable()
    assert not SyncConfig().is_enabled

    enable()
    assert SyncConfig().is_enabled
    assert "Sync enabled" in capsys.readouterr().out


def test_status_not_configured(config_path, capsys):
    status()

    captured = capsys.readouterr()
    assert "No" in captured.out
    assert "snapsync sync setup" in captured.out


def test_status_configured(configured, capsys):
    JsonLocalState(configured.state_file).record_sync("abc123", 1_700_000_000_000)

    status()

    captured = capsys.readouterr()
    assert "directory" in captured.out
    assert "abc123" in captured.out
    assert "2023-11-14" in captured.out
    assert "Passed" in captured.out


def test_run_uploads_local_data(configured, capsys):
    JsonFileDataStore(configured.data_file).import_snapshot(
        Snapshot(data={"tasks": ["a"]}, last_local_sync_model_change=2000)
    )

    run()

    captured = capsys.readouterr()
    assert "Uploaded local data" in captured.out
    assert JsonLocalState(configured.state_file).get_last_sync() == 2000


def test_run_when_disabled(configured, capsys):
    disable()

    run()

    captured = capsys.readouterr()
    assert "not enabled" in captured.out


def test_run_transport_error(configured, capsys):
    with patch(
        "snapsync.sync.remote_store.DirectoryRemoteStore.fetch_metadata",
        side_effect=TransportError("share offline"),
    ):
        run()

    captured = capsys.readouterr()
    assert "try again later" in captured.out


def test_run_invalid_policy(configured, capsys):
    run(policy="newest")

    captured = capsys.readouterr()
    assert "Invalid conflict policy" in captured.out


def test_log_empty(configured, capsys):
    log()

    assert "No sync attempts recorded" in capsys.readouterr().out


def test_log_after_run(configured, capsys):
    run()
    capsys.readouterr()

    log()

    captured = capsys.readouterr()
    assert "success" in captured.out
    assert "1 attempts" in captured.out


def test_reset_requires_confirmation(configured, capsys):
    state = JsonLocalState(configured.state_file)
    state.record_sync("abc123", 1000)

    reset()
    assert "--yes" in capsys.readouterr().out
    assert JsonLocalState(configured.state_file).get_revision() == "abc123"

    reset(yes=True)
    assert JsonLocalState(configured.state_file).get_revision() is None


def test_run_prompts_for_conflict_without_spinner(configured, shared_dir):
    DirectoryRemoteStore(shared_dir).upload(
        "/snapsync.json", Snapshot(data={"side": "remote"}, last_local_sync_model_change=3000), 3000
    )
    JsonFileDataStore(configured.data_file).import_snapshot(
        Snapshot(data={"side": "local"}, last_local_sync_model_change=2500)
    )
    JsonLocalState(configured.state_file).record_sync("old-rev", 1000)
    console = Console(file=io.StringIO(), force_interactive=True, width=100)

    with (
        patch("snapsync.sync.cli._get_console", return_value=console),
        patch.object(console, "status") as mock_status,
        patch("snapsync.sync.conflict_arbiter.Prompt.ask", return_value="later") as mock_ask,
    ):
        run(policy="prompt")

    mock_status.assert_not_called()
    mock_ask.assert_called_once()
    output = console.file.getvalue()
    assert "Sync Conflict" in output
    assert "Conflict deferred" in output
    assert JsonLocalState(configured.state_file).get_revision() == "old-rev"
