"""Dropbox HTTP API implementation of the remote store."""

import json
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx

from snapsync.sync.exceptions import RemoteNotFoundError, TransportError
from snapsync.sync.models import (
    DownloadResult,
    RemoteMetadata,
    Snapshot,
    from_millis,
    to_millis,
)
from snapsync.sync.remote_store import RemoteStore

logger = logging.getLogger(__name__)

API_URL = "https://api.dropboxapi.com/2"
CONTENT_URL = "https://content.dropboxapi.com/2"

# Dropbox reports and accepts client_modified without sub-second precision
CLIENT_MODIFIED_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def format_client_modified(instant: int) -> str:
    """Format ms since epoch as a Dropbox timestamp (whole seconds)."""
    return from_millis(instant).strftime(CLIENT_MODIFIED_FORMAT)


def parse_client_modified(value: str) -> int:
    """Parse a Dropbox timestamp into ms since epoch."""
    parsed = datetime.strptime(value, CLIENT_MODIFIED_FORMAT)
    return to_millis(parsed.replace(tzinfo=timezone.utc))


class DropboxRemoteStore(RemoteStore):
    """Client for the Dropbox files API."""

    def __init__(
        self,
        token: str,
        timeout: int = 30,
        client: Optional[httpx.Client] = None,
    ):
        """Initialize client.

        Args:
            token: OAuth access token
            timeout: Request timeout in seconds
            client: Preconfigured httpx client (optional)
        """
        self.token = token
        self.timeout = timeout
        self.client = client or httpx.Client(timeout=timeout)
        self.client.headers["Authorization"] = f"Bearer {token}"

    def close(self) -> None:
        self.client.close()

    def _post(self, url: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = self.client.post(url, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Request to {url} failed: {e}")
            raise TransportError(f"Request for {path} failed: {e}") from e

        if response.status_code == 409 and "not_found" in response.text:
            raise RemoteNotFoundError(f"Remote document not found: {path}")

        if response.status_code == 401:
            logger.error(f"Dropbox rejected the access token for {path}")
            raise TransportError(f"Authentication failed for {path}")

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Request to {url} failed: {e}")
            raise TransportError(
                f"Request for {path} failed with status {response.status_code}"
            ) from e

        return response

    def fetch_metadata(self, path: str) -> RemoteMetadata:
        """Get revision and client modified time.

        Raises:
            RemoteNotFoundError: If the file does not exist
            TransportError: Request failed
        """
        response = self._post(
            f"{API_URL}/files/get_metadata", path, json={"path": path}
        )
        try:
            data = response.json()
            return RemoteMetadata(
                rev=data["rev"],
                modified=parse_client_modified(data["client_modified"]),
            )
        except (ValueError, KeyError) as e:
            raise TransportError(f"Malformed metadata for {path}: {e}") from e

    def download(self, path: str, known_revision: str | None) -> DownloadResult:
        """Download file content and its revision.

        Raises:
            RemoteNotFoundError: If the file does not exist
            TransportError: Request failed
        """
        logger.debug(f"Downloading {path} (known revision {known_revision})")
        response = self._post(
            f"{CONTENT_URL}/files/download",
            path,
            headers={"Dropbox-API-Arg": json.dumps({"path": path})},
        )

        rev = None
        api_result = response.headers.get("Dropbox-API-Result")
        if api_result:
            try:
                rev = json.loads(api_result).get("rev")
            except ValueError:
                logger.warning(f"Unparseable Dropbox-API-Result for {path}")

        return DownloadResult(snapshot=Snapshot.from_bytes(response.content), rev=rev)

    def upload(self, path: str, snapshot: Snapshot, client_modified: int) -> str:
        """Overwrite the remote file.

        Returns:
            New revision

        Raises:
            TransportError: Request failed
        """
        arg = {
            "path": path,
            "mode": "overwrite",
            "client_modified": format_client_modified(client_modified),
            "mute": True,
        }
        response = self._post(
            f"{CONTENT_URL}/files/upload",
            path,
            content=snapshot.to_bytes(),
            headers={
                "Dropbox-API-Arg": json.dumps(arg),
                "Content-Type": "application/octet-stream",
            },
        )
        try:
            rev = response.json()["rev"]
        except (ValueError, KeyError) as e:
            raise TransportError(f"Malformed upload response for {path}: {e}") from e

        logger.info(f"Uploaded {path} (rev {rev})")
        return rev
