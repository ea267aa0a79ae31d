"""Sync direction decision.

Three-way comparison of the local change time, the remote change time and the
last time both sides were known to be in sync. Pure: no I/O, no clock reads.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from snapsync.sync.clock import EXACT, ClockPolicy

logger = logging.getLogger(__name__)


class Outcome(str, Enum):
    """Result of comparing a sync point."""

    IN_SYNC = "in_sync"
    LOCAL_UPDATE_REQUIRED = "local_update_required"  # pull remote down
    REMOTE_UPDATE_REQUIRED = "remote_update_required"  # push local up
    DIVERGED = "diverged"  # both changed since last sync
    SYNC_POINT_STALE = "sync_point_stale"  # bookkeeping skew, repair last_sync


@dataclass(frozen=True)
class SyncPoint:
    """Change markers driving the decision (ms since epoch)."""

    local: int
    remote: int
    last_sync: int


def check_for_update(point: SyncPoint, clock: ClockPolicy = EXACT) -> Outcome:
    """Decide which side, if any, needs updating.

    Rules are evaluated in order and the first match wins:

    1. remote == last_sync and local == last_sync  -> IN_SYNC
    2. remote == last_sync and local > last_sync   -> REMOTE_UPDATE_REQUIRED
    3. local == last_sync and remote > last_sync   -> LOCAL_UPDATE_REQUIRED
    4. local > last_sync and remote > last_sync    -> DIVERGED
    5. anything else                               -> SYNC_POINT_STALE

    Equality goes through ``clock.same_instant``; ordering keeps raw
    precision. When the inputs are ambiguous the result never moves data.

    Args:
        point: Local, remote and last-sync change times
        clock: Resolution policy for equality tests (exact by default)

    Returns:
        The outcome for this sync point
    """
    local, remote, last_sync = point.local, point.remote, point.last_sync

    remote_unchanged = clock.same_instant(remote, last_sync)
    local_unchanged = clock.same_instant(local, last_sync)
    remote_ahead = clock.is_after(remote, last_sync)
    local_ahead = clock.is_after(local, last_sync)

    if remote_unchanged and local_unchanged:
        outcome = Outcome.IN_SYNC
    elif remote_unchanged and local_ahead:
        outcome = Outcome.REMOTE_UPDATE_REQUIRED
    elif local_unchanged and remote_ahead:
        outcome = Outcome.LOCAL_UPDATE_REQUIRED
    elif remote_ahead and local_ahead:
        outcome = Outcome.DIVERGED
    else:
        outcome = Outcome.SYNC_POINT_STALE

    logger.debug(
        f"Sync point local={local} remote={remote} last_sync={last_sync} "
        f"-> {outcome.value}"
    )
    return outcome
