"""Timestamp resolution policy.

The remote store reports modified times without sub-second precision while
local change times carry milliseconds. Comparing the raw values for equality
produces false inequality, so equality is always tested after truncating both
sides to the remote resolution. Ordering tests keep raw precision.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class ClockPolicy:
    """Normalizes instants (ms since epoch) to a common comparable resolution."""

    resolution_ms: int = 1000

    def __post_init__(self):
        if self.resolution_ms < 1:
            raise ValueError(f"Invalid resolution: {self.resolution_ms}")

    def truncate(self, instant: int) -> int:
        """Drop precision finer than the remote resolution.

        The result stays in milliseconds, e.g. ``1999 -> 1000``.
        """
        return instant - instant % self.resolution_ms

    def same_instant(self, a: int, b: int) -> bool:
        """Equality after truncation to the remote resolution."""
        return self.truncate(a) == self.truncate(b)

    def is_after(self, a: int, b: int) -> bool:
        return a > b

    def is_before(self, a: int, b: int) -> bool:
        return a < b


# Remote stores report whole seconds
REMOTE_RESOLUTION = ClockPolicy(resolution_ms=1000)

# Both sides carry milliseconds, e.g. two snapshot change times
EXACT = ClockPolicy(resolution_ms=1)
