"""Id generation and millisecond timestamps for tree items."""

import itertools
import time
from typing import Callable, Optional


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)


class IdGenerator:
    """Produce ids of the form ``<prefix>-<ms>-<seq>``.

    The sequence number keeps ids distinct when several items are created
    within the same millisecond. ``taken`` lets callers skip ids that already
    exist in a tree loaded from storage.
    """

    def __init__(self, clock: Callable[[], int] = now_ms):
        self._clock = clock
        self._counter = itertools.count(1)

    def new_id(self, prefix: str, taken: Optional[Callable[[str], bool]] = None) -> str:
        while True:
            candidate = f"{prefix}-{self._clock()}-{next(self._counter)}"
            if taken is None or not taken(candidate):
                return candidate
