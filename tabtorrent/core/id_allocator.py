"""
Issues tab identifiers.
"""

import itertools


class IdAllocator:
    """
    Hands out strictly increasing integer ids, starting at `start`.

    Ids are never reused for the lifetime of the allocator. All calls happen on
    the event loop thread, so a plain counter is enough.
    """

    def __init__(self, start: int = 1):
        self._counter = itertools.count(start)

    def next(self) -> int:
        return next(self._counter)
