"""Remote storage capability and a directory-backed implementation."""

import hashlib
import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path

from snapsync.sync.clock import REMOTE_RESOLUTION
from snapsync.sync.exceptions import RemoteNotFoundError, TransportError
from snapsync.sync.models import DownloadResult, RemoteMetadata, Snapshot

logger = logging.getLogger(__name__)


class RemoteStore(ABC):
    """Abstract interface for the remote copy of the document.

    Implementations raise :class:`TransportError` for network or auth
    failures and :class:`RemoteNotFoundError` when the document is missing.
    """

    @abstractmethod
    def fetch_metadata(self, path: str) -> RemoteMetadata:
        """Get the current revision and modified time (whole seconds, in ms)."""

    @abstractmethod
    def download(self, path: str, known_revision: str | None) -> DownloadResult:
        """Download the full snapshot.

        Args:
            path: Remote document path
            known_revision: Revision the caller last saw, if any

        Returns:
            Snapshot and the revision it was read at
        """

    @abstractmethod
    def upload(self, path: str, snapshot: Snapshot, client_modified: int) -> str:
        """Upload a snapshot, overwriting the remote copy.

        Args:
            path: Remote document path
            snapshot: Snapshot to store
            client_modified: Change time to report as the remote modified time

        Returns:
            The new revision token
        """


class DirectoryRemoteStore(RemoteStore):
    """Remote store on a shared or mounted directory.

    Each document ``<name>`` is stored next to a ``<name>.meta.json`` sidecar
    holding its revision (MD5 of the content) and modified time truncated to
    whole seconds, mirroring what hosted stores report.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def _document_file(self, path: str) -> Path:
        relative = path.lstrip("/")
        if not relative or ".." in Path(relative).parts:
            raise TransportError(f"Invalid remote path: {path!r}")
        return self.root / relative

    def _meta_file(self, path: str) -> Path:
        document = self._document_file(path)
        return document.with_name(document.name + ".meta.json")

    def _read_meta(self, path: str) -> RemoteMetadata:
        meta_file = self._meta_file(path)
        if not meta_file.exists() or not self._document_file(path).exists():
            raise RemoteNotFoundError(f"Remote document not found: {path}")

        try:
            with open(meta_file, "r") as f:
                meta = json.load(f)
            return RemoteMetadata(rev=meta["rev"], modified=int(meta["modified"]))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError, OSError) as e:
            logger.error(f"Failed to read remote metadata for {path}: {e}")
            raise TransportError(f"Unreadable remote metadata for {path}: {e}") from e

    def fetch_metadata(self, path: str) -> RemoteMetadata:
        return self._read_meta(path)

    def download(self, path: str, known_revision: str | None) -> DownloadResult:
        meta = self._read_meta(path)
        try:
            content = self._document_file(path).read_bytes()
        except OSError as e:
            logger.error(f"Failed to download {path}: {e}")
            raise TransportError(f"Failed to download {path}: {e}") from e

        rev = hashlib.md5(content).hexdigest()
        if rev != meta.rev:
            # Written between the metadata and content reads
            logger.warning(f"Remote revision moved during download of {path}")

        logger.debug(f"Downloaded {path} (rev {rev}, known {known_revision})")
        return DownloadResult(snapshot=Snapshot.from_bytes(content), rev=rev)

    def upload(self, path: str, snapshot: Snapshot, client_modified: int) -> str:
        document = self._document_file(path)
        content = snapshot.to_bytes()
        rev = hashlib.md5(content).hexdigest()
        meta = {
            "rev": rev,
            "modified": REMOTE_RESOLUTION.truncate(client_modified),
        }

        try:
            document.parent.mkdir(parents=True, exist_ok=True)
            tmp_file = document.with_name(document.name + ".tmp")
            tmp_file.write_bytes(content)
            tmp_file.replace(document)
            with open(self._meta_file(path), "w") as f:
                json.dump(meta, f, indent=2)
        except OSError as e:
            logger.error(f"Failed to upload {path}: {e}")
            raise TransportError(f"Failed to upload {path}: {e}") from e

        logger.info(f"Uploaded {path} (rev {rev})")
        return rev
