"""Append-only log of sync attempts.

Stores one JSON object per attempt (JSONL) for debugging and for telling
when the last successful sync happened.

Stored as: ~/.snapsync/sync-log.jsonl by default
"""

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class SyncAttempt:
    """Record of one sync attempt."""

    attempt_id: str
    status: str  # "success", "failed", "deferred", "skipped"
    outcome: str | None = None
    action: str = "none"  # "none", "upload", "import", "repair", "deferred"
    path: str | None = None  # which branch of the attempt decided
    error: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "attempt_id": self.attempt_id,
            "status": self.status,
            "outcome": self.outcome,
            "action": self.action,
            "path": self.path,
            "error": self.error,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }

    @classmethod
    def from_dict(cls, entry: dict[str, Any]) -> "SyncAttempt":
        return cls(
            attempt_id=entry["attempt_id"],
            status=entry["status"],
            outcome=entry.get("outcome"),
            action=entry.get("action", "none"),
            path=entry.get("path"),
            error=entry.get("error"),
            timestamp=datetime.fromisoformat(entry["timestamp"]),
            metadata=entry.get("metadata", {}),
        )


class SyncAttemptLog:
    """JSONL transaction log of sync attempts."""

    def __init__(self, log_file: Path):
        """Initialize attempt log.

        Args:
            log_file: Path to the JSONL file
        """
        self.log_file = Path(log_file)

    def log_attempt(
        self,
        status: str,
        outcome: str | None = None,
        action: str = "none",
        path: str | None = None,
        error: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> str:
        """Append an attempt to the log.

        Returns:
            Attempt ID
        """
        self.log_file.parent.mkdir(parents=True, exist_ok=True)

        attempt = SyncAttempt(
            attempt_id=uuid.uuid4().hex[:12],
            status=status,
            outcome=outcome,
            action=action,
            path=path,
            error=error,
            metadata=metadata or {},
        )

        try:
            with open(self.log_file, "a") as f:
                f.write(json.dumps(attempt.to_dict()) + "\n")
        except OSError as e:
            logger.error(f"Failed to write to attempt log: {e}")
            raise

        logger.debug(f"Logged sync attempt {attempt.attempt_id} ({status})")
        return attempt.attempt_id

    def get_recent_attempts(self, limit: int = 20) -> list[SyncAttempt]:
        """Get recent attempts, newest first."""
        attempts = self._read_all_attempts()
        return attempts[-limit:][::-1]

    def get_failed_attempts(self) -> list[SyncAttempt]:
        return self._filter_attempts(lambda a: a.status == "failed")

    def get_last_success(self) -> SyncAttempt | None:
        """Get the most recent successful attempt, if any."""
        for attempt in reversed(self._read_all_attempts()):
            if attempt.status == "success":
                return attempt
        return None

    def get_statistics(self) -> dict[str, Any]:
        """Get counts by status and action plus failures in the last 24 hours."""
        attempts = self._read_all_attempts()

        stats = {
            "total_attempts": len(attempts),
            "by_status": {},
            "by_action": {},
            "recent_failures": 0,
        }

        for attempt in attempts:
            stats["by_status"][attempt.status] = (
                stats["by_status"].get(attempt.status, 0) + 1
            )
            stats["by_action"][attempt.action] = (
                stats["by_action"].get(attempt.action, 0) + 1
            )

        recent_threshold = datetime.now(timezone.utc) - timedelta(hours=24)
        stats["recent_failures"] = sum(
            1
            for a in attempts
            if a.status == "failed" and a.timestamp > recent_threshold
        )

        return stats

    def truncate(self, keep_days: int = 7) -> int:
        """Drop successful attempts older than ``keep_days``.

        Failed attempts are always kept.

        Returns:
            Number of attempts removed
        """
        if not self.log_file.exists():
            return 0

        attempts = self._read_all_attempts()
        cutoff = datetime.now(timezone.utc) - timedelta(days=keep_days)
        kept = [a for a in attempts if a.status == "failed" or a.timestamp > cutoff]
        removed_count = len(attempts) - len(kept)

        if removed_count > 0:
            try:
                with open(self.log_file, "w") as f:
                    for attempt in kept:
                        f.write(json.dumps(attempt.to_dict()) + "\n")
                logger.info(f"Truncated attempt log: removed {removed_count} entries")
            except OSError as e:
                logger.error(f"Failed to truncate attempt log: {e}")
                raise

        return removed_count

    def _read_all_attempts(self) -> list[SyncAttempt]:
        if not self.log_file.exists():
            return []

        attempts = []
        try:
            with open(self.log_file, "r") as f:
                for line in f:
                    if not line.strip():
                        continue
                    try:
                        attempts.append(SyncAttempt.from_dict(json.loads(line)))
                    except (json.JSONDecodeError, KeyError, ValueError) as e:
                        logger.warning(f"Skipping invalid log entry: {e}")
        except OSError as e:
            logger.error(f"Failed to read attempt log: {e}")
            return []

        return attempts

    def _filter_attempts(
        self, predicate: Callable[[SyncAttempt], bool]
    ) -> list[SyncAttempt]:
        return [a for a in self._read_all_attempts() if predicate(a)]
