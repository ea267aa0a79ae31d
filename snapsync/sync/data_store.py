"""Local application data as snapshots."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from snapsync.sync.models import Snapshot

logger = logging.getLogger(__name__)


class DataStore(ABC):
    """Turns application state into a snapshot and back."""

    @abstractmethod
    def read_current_snapshot(self) -> Snapshot:
        """Get the current local snapshot."""

    @abstractmethod
    def import_snapshot(self, snapshot: Snapshot) -> None:
        """Replace local application state with ``snapshot``."""


class JsonFileDataStore(DataStore):
    """Application data kept in a single JSON document on disk.

    A missing file reads as an empty snapshot with change time 0, so a fresh
    install pulls the remote copy on its first sync.
    """

    def __init__(self, data_file: Path):
        self.data_file = Path(data_file)

    def read_current_snapshot(self) -> Snapshot:
        if not self.data_file.exists():
            logger.debug(f"No local data at {self.data_file}")
            return Snapshot()

        return Snapshot.from_bytes(self.data_file.read_bytes())

    def import_snapshot(self, snapshot: Snapshot) -> None:
        self.data_file.parent.mkdir(parents=True, exist_ok=True)
        tmp_file = self.data_file.with_suffix(self.data_file.suffix + ".tmp")
        tmp_file.write_bytes(snapshot.to_bytes())
        tmp_file.replace(self.data_file)
        logger.info(
            f"Imported snapshot into {self.data_file} "
            f"(changed {snapshot.last_local_sync_model_change})"
        )
