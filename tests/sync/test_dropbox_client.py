"""Tests for DropboxRemoteStore using a mocked HTTP transport."""

import json

import httpx
import pytest

from snapsync.sync.dropbox_client import (
    DropboxRemoteStore,
    format_client_modified,
    parse_client_modified,
)
from snapsync.sync.exceptions import RemoteNotFoundError, TransportError
from snapsync.sync.models import Snapshot


def make_store(handler):
    """Build a store whose requests go to ``handler``."""
    requests = []

    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    client = httpx.Client(transport=httpx.MockTransport(record))
    return DropboxRemoteStore("secret-token", client=client), requests


class TestTimestamps:
    """Tests for client_modified formatting."""

    def test_format_drops_milliseconds(self):
        assert format_client_modified(1_700_000_000_999) == "2023-11-14T22:13:20Z"

    def test_parse(self):
        assert parse_client_modified("2023-11-14T22:13:20Z") == 1_700_000_000_000


class TestFetchMetadata:
    """Tests for fetch_metadata."""

    def test_returns_rev_and_modified(self):
        store, requests = make_store(
            lambda request: httpx.Response(
                200,
                json={"rev": "015f8a", "client_modified": "2023-11-14T22:13:20Z"},
            )
        )

        meta = store.fetch_metadata("/snapsync.json")

        assert meta.rev == "015f8a"
        assert meta.modified == 1_700_000_000_000
        assert str(requests[0].url) == "https://api.dropboxapi.com/2/files/get_metadata"
        assert requests[0].headers["Authorization"] == "Bearer secret-token"
        assert json.loads(requests[0].content) == {"path": "/snapsync.json"}

    def test_not_found(self):
        store, _ = make_store(
            lambda request: httpx.Response(
                409, json={"error_summary": "path/not_found/..", "error": {}}
            )
        )

        with pytest.raises(RemoteNotFoundError):
            store.fetch_metadata("/snapsync.json")

    def test_unauthorized(self):
        store, _ = make_store(lambda request: httpx.Response(401, text="invalid_access_token"))

        with pytest.raises(TransportError, match="Authentication failed"):
            store.fetch_metadata("/snapsync.json")

    def test_server_error(self):
        store, _ = make_store(lambda request: httpx.Response(500))

        with pytest.raises(TransportError, match="status 500"):
            store.fetch_metadata("/snapsync.json")

    def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        store, _ = make_store(handler)

        with pytest.raises(TransportError):
            store.fetch_metadata("/snapsync.json")

    def test_malformed_response(self):
        store, _ = make_store(lambda request: httpx.Response(200, json={"rev": "x"}))

        with pytest.raises(TransportError, match="Malformed"):
            store.fetch_metadata("/snapsync.json")


class TestTransfers:
    """Tests for download and upload."""

    def test_download(self):
        snapshot = Snapshot(data={"tasks": [1]}, last_local_sync_model_change=1234)
        store, requests = make_store(
            lambda request: httpx.Response(
                200,
                content=snapshot.to_bytes(),
                headers={"Dropbox-API-Result": json.dumps({"rev": "0160aa"})},
            )
        )

        result = store.download("/snapsync.json", "015f8a")

        assert result.rev == "0160aa"
        assert result.snapshot == snapshot
        assert str(requests[0].url) == "https://content.dropboxapi.com/2/files/download"
        assert json.loads(requests[0].headers["Dropbox-API-Arg"]) == {"path": "/snapsync.json"}

    def test_download_without_revision_header(self):
        store, _ = make_store(
            lambda request: httpx.Response(200, content=Snapshot().to_bytes())
        )

        result = store.download("/snapsync.json", None)

        assert result.rev is None

    def test_upload(self):
        store, requests = make_store(lambda request: httpx.Response(200, json={"rev": "0161bb"}))
        snapshot = Snapshot(data={"tasks": [1]}, last_local_sync_model_change=1_700_000_000_123)

        rev = store.upload("/snapsync.json", snapshot, 1_700_000_000_123)

        assert rev == "0161bb"
        request = requests[0]
        assert str(request.url) == "https://content.dropboxapi.com/2/files/upload"
        assert request.content == snapshot.to_bytes()
        assert json.loads(request.headers["Dropbox-API-Arg"]) == {
            "path": "/snapsync.json",
            "mode": "overwrite",
            "client_modified": "2023-11-14T22:13:20Z",
            "mute": True,
        }

    def test_upload_malformed_response(self):
        store, _ = make_store(lambda request: httpx.Response(200, json={}))

        with pytest.raises(TransportError):
            store.upload("/snapsync.json", Snapshot(), 0)
