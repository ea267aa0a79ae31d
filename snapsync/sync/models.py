"""Data types shared by the sync capabilities."""

import json
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from snapsync.sync.exceptions import SnapshotFormatError

# Field carrying the local change time inside a serialized snapshot
CHANGE_TIME_FIELD = "lastLocalSyncModelChange"

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass
class Snapshot:
    """Full application data plus its own change time.

    ``last_local_sync_model_change`` is the authoritative local change time
    (milliseconds since epoch), read from the data itself.
    """

    data: dict[str, Any] = field(default_factory=dict)
    last_local_sync_model_change: int = 0

    def to_bytes(self) -> bytes:
        """Serialize snapshot to a JSON document."""
        document = dict(self.data)
        document[CHANGE_TIME_FIELD] = self.last_local_sync_model_change
        return json.dumps(document, indent=2, sort_keys=True).encode("utf-8")

    @classmethod
    def from_bytes(cls, content: bytes) -> "Snapshot":
        """Parse a JSON document produced by :meth:`to_bytes`.

        Raises:
            SnapshotFormatError: If the document is not a JSON object or the
                change time is missing or not an integer
        """
        try:
            document = json.loads(content.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SnapshotFormatError(f"Snapshot is not valid JSON: {e}") from e

        if not isinstance(document, dict):
            raise SnapshotFormatError("Snapshot must be a JSON object")

        change_time = document.pop(CHANGE_TIME_FIELD, None)
        if isinstance(change_time, bool) or not isinstance(change_time, int):
            raise SnapshotFormatError(
                f"Snapshot has no integer {CHANGE_TIME_FIELD}: {change_time!r}"
            )

        return cls(data=document, last_local_sync_model_change=change_time)


@dataclass
class RemoteMetadata:
    """Revision and modified time reported by the remote store."""

    rev: str
    modified: int  # ms since epoch, whole seconds only


@dataclass
class DownloadResult:
    """A downloaded snapshot together with the revision it was read at."""

    snapshot: Snapshot
    rev: str | None


def to_millis(value: datetime) -> int:
    """Convert an aware datetime to milliseconds since epoch."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - EPOCH) // timedelta(milliseconds=1)


def from_millis(value: int) -> datetime:
    """Convert milliseconds since epoch to an aware UTC datetime."""
    return EPOCH + timedelta(milliseconds=value)


def now_millis() -> int:
    """Current wall-clock time in milliseconds since epoch."""
    return to_millis(datetime.now(timezone.utc))
