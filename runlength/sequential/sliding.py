"""
runlength.sequential.sliding
============================

Fixed-capacity circular history of the most recent observations.

The buffer holds exactly ``window_size`` slots. Inserting moves the *newest*
cursor one slot down (modulo the window size) and overwrites that slot, so the
slot right before the newest one (cyclically) holds the oldest value, which is
the slot the next insertion overwrites. Before the buffer is full the untouched
slots keep their zero value, which lets window sums be computed over the whole
buffer from the very first observation.

Examples
--------
>>> from runlength.sequential.sliding import SlidingWindow
>>> window = SlidingWindow(3)
>>> window.push(1); window.push(2)
>>> window.values
[0, 2, 1]
>>> window.newest_first()
[2, 1, 0]
>>> window.push(3); window.push(4)
>>> window.newest_index, window.oldest_index
(2, 1)
>>> window.newest_first()
[4, 3, 2]
"""

from __future__ import annotations
from typing import Any, List

from runlength.core.errors import InvalidConfiguration


def validate_window_size(window_size: Any) -> int:
    """Return ``window_size`` if it is a positive integer."""
    if isinstance(window_size, bool) or not isinstance(window_size, int):
        raise InvalidConfiguration(
            f"Window size must be a positive integer, got {window_size!r}."
        )
    if window_size < 1:
        raise InvalidConfiguration(
            f"Window size must be a positive integer, got {window_size}."
        )
    return window_size


class SlidingWindow:
    """Circular store of the last ``window_size`` observations."""

    def __init__(self, window_size: int, zero: Any = 0) -> None:
        self._size = validate_window_size(window_size)
        self._zero = zero
        self._values: List[Any] = [zero] * self._size
        self._newest = 0

    @property
    def size(self) -> int:
        return self._size

    @property
    def values(self) -> List[Any]:
        """The raw slots, in storage order."""
        return self._values

    @property
    def newest_index(self) -> int:
        return self._newest

    @property
    def oldest_index(self) -> int:
        return (self._newest + self._size - 1) % self._size

    def push(self, value: Any) -> None:
        """Overwrite the oldest slot with ``value`` and make it the newest."""
        self._newest = (self._newest + self._size - 1) % self._size
        self._values[self._newest] = value

    def newest_first(self) -> List[Any]:
        """Slots ordered from the newest value to the oldest."""
        return self._values[self._newest :] + self._values[: self._newest]

    def wipe(self) -> None:
        """Zero-fill every slot and rewind the newest cursor."""
        self._values = [self._zero] * self._size
        self._newest = 0

    def __len__(self) -> int:
        return self._size

    def __repr__(self) -> str:
        return f"SlidingWindow(size={self._size}, newest_first={self.newest_first()})"
