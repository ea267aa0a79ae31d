"""Local sync bookkeeping.

Tracks the last known remote revision, the last time both sides were in sync
and the last time a sync attempt was observed. Values survive process
restarts when stored with :class:`JsonLocalState`.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

from snapsync.sync.exceptions import InvalidBookkeepingError

logger = logging.getLogger(__name__)


def _validate_revision(rev: Any) -> str:
    if not isinstance(rev, str) or not rev:
        raise InvalidBookkeepingError(f"No revision given: {rev!r}")
    return rev


def _validate_instant(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidBookkeepingError(f"No correct {name} given: {value!r}")
    if value != value:  # NaN
        raise InvalidBookkeepingError(f"No correct {name} given: {value!r}")
    return int(value)


class LocalState(ABC):
    """Persisted key-value bookkeeping consumed by the orchestrator."""

    @abstractmethod
    def get_revision(self) -> str | None:
        """Get the last revision token recorded after an upload or import."""

    @abstractmethod
    def set_revision(self, rev: str) -> None:
        """Store a revision token.

        Raises:
            InvalidBookkeepingError: If the token is empty
        """

    @abstractmethod
    def get_last_sync(self) -> int:
        """Get the last sync time (ms), 0 if never synced."""

    @abstractmethod
    def set_last_sync(self, last_sync: int) -> None:
        """Store the last sync time.

        Raises:
            InvalidBookkeepingError: If the value is not numeric
        """

    @abstractmethod
    def mark_attempt_observed(self, now: int) -> None:
        """Record when a sync attempt started."""

    @abstractmethod
    def get_last_sync_check(self) -> int:
        """Get the time (ms) of the last observed sync attempt, 0 if none."""

    def record_sync(self, rev: str, last_sync: int) -> None:
        """Store revision and last sync time together.

        Both values are validated before either is written.
        """
        _validate_revision(rev)
        _validate_instant(last_sync, "last sync")
        self.set_revision(rev)
        self.set_last_sync(last_sync)

    @abstractmethod
    def clear(self) -> None:
        """Forget all bookkeeping."""


class InMemoryLocalState(LocalState):
    """Bookkeeping held in process memory only."""

    def __init__(
        self,
        revision: str | None = None,
        last_sync: int = 0,
        last_sync_check: int = 0,
    ):
        self.revision = revision
        self.last_sync = last_sync
        self.last_sync_check = last_sync_check

    def get_revision(self) -> str | None:
        return self.revision

    def set_revision(self, rev: str) -> None:
        self.revision = _validate_revision(rev)

    def get_last_sync(self) -> int:
        return self.last_sync

    def set_last_sync(self, last_sync: int) -> None:
        self.last_sync = _validate_instant(last_sync, "last sync")

    def mark_attempt_observed(self, now: int) -> None:
        self.last_sync_check = _validate_instant(now, "attempt time")

    def get_last_sync_check(self) -> int:
        return self.last_sync_check

    def record_sync(self, rev: str, last_sync: int) -> None:
        rev = _validate_revision(rev)
        last_sync = _validate_instant(last_sync, "last sync")
        self.revision, self.last_sync = rev, last_sync

    def clear(self) -> None:
        self.revision = None
        self.last_sync = 0
        self.last_sync_check = 0


class JsonLocalState(LocalState):
    """Bookkeeping stored in a small JSON file.

    Stored as::

        {
          "last_revision": "015f...",
          "last_sync": 1700000000123,
          "last_sync_check": 1700000005000
        }

    Every setter rewrites the whole file, so ``record_sync`` lands revision
    and last sync time in a single write.
    """

    def __init__(self, state_file: Path):
        """Initialize local state.

        Args:
            state_file: Path to the bookkeeping file (e.g., ~/.snapsync/state.json)
        """
        self.state_file = Path(state_file)
        self._state: dict[str, Any] = {}
        self._loaded = False

    def load(self) -> dict[str, Any]:
        """Load bookkeeping from disk.

        A missing or unreadable file yields empty bookkeeping.
        """
        if not self.state_file.exists():
            logger.debug(f"No sync state found at {self.state_file}")
            self._state = {}
            self._loaded = True
            return self._state

        try:
            with open(self.state_file, "r") as f:
                data = json.load(f)
            self._state = data if isinstance(data, dict) else {}
        except (json.JSONDecodeError, OSError) as e:
            logger.error(f"Failed to load sync state: {e}")
            self._state = {}

        self._loaded = True
        return self._state

    def save(self) -> None:
        """Write bookkeeping to disk atomically."""
        self.state_file.parent.mkdir(parents=True, exist_ok=True)
        tmp_file = self.state_file.with_suffix(self.state_file.suffix + ".tmp")

        try:
            with open(tmp_file, "w") as f:
                json.dump(self._state, f, indent=2)
            tmp_file.replace(self.state_file)
            logger.debug(f"Saved sync state to {self.state_file}")
        except OSError as e:
            logger.error(f"Failed to save sync state: {e}")
            raise

    def _get(self, key: str) -> Any:
        if not self._loaded:
            self.load()
        return self._state.get(key)

    def _update(self, **values: Any) -> None:
        if not self._loaded:
            self.load()
        self._state.update(values)
        self.save()

    def get_revision(self) -> str | None:
        rev = self._get("last_revision")
        return rev if isinstance(rev, str) and rev else None

    def set_revision(self, rev: str) -> None:
        self._update(last_revision=_validate_revision(rev))

    def get_last_sync(self) -> int:
        return self._read_instant("last_sync")

    def set_last_sync(self, last_sync: int) -> None:
        self._update(last_sync=_validate_instant(last_sync, "last sync"))

    def mark_attempt_observed(self, now: int) -> None:
        self._update(last_sync_check=_validate_instant(now, "attempt time"))

    def get_last_sync_check(self) -> int:
        return self._read_instant("last_sync_check")

    def record_sync(self, rev: str, last_sync: int) -> None:
        self._update(
            last_revision=_validate_revision(rev),
            last_sync=_validate_instant(last_sync, "last sync"),
        )

    def clear(self) -> None:
        self._state = {}
        self._loaded = True
        if self.state_file.exists():
            self.state_file.unlink()
        logger.debug("Cleared sync state")

    def _read_instant(self, key: str) -> int:
        value = self._get(key)
        try:
            return int(value)
        except (TypeError, ValueError):
            return 0
