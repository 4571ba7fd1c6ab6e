"""
runlength.sequential.statistics
===============================

Detection statistics for online change-point monitoring.

- `Cusum`: the classical CUSUM recursion ``R <- max(0, R) + x`` in O(1) state.
- `WindowLimitedStatistic`: base class for statistics recomputed from a
  sliding window of the last ``window_size`` observations, with an optional
  timed transform applied during the transient period.
- `FiniteMovingAverage`: the sum of the window.
- `WindowLimitedCusum`: the largest trailing partial sum of the window.

The window helpers `moving_sum` and `trailing_sum_maximum` are shared with the
window-limited stopping times.

Examples
--------
>>> from runlength.sequential.statistics import Cusum, WindowLimitedCusum
>>> values = [2, 3, -7, 1, 2, 3, 4, 5, 5, -5]
>>> Cusum().observe_block(values)[-2:]
[20, 15]
>>> WindowLimitedCusum(window_size=5).observe_block(values)[-2:]
[19, 12]
"""

from __future__ import annotations
from abc import abstractmethod
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Sequence

from runlength.core.components import Statistic
from runlength.core.errors import InvalidConfiguration
from runlength.core.records import TYPE_KEY, WINDOW_KEY, expect_type, window_size_of
from runlength.sequential.sliding import SlidingWindow
from runlength.sequential.transforms import TimedTransform, identity_transform


def moving_sum(history: Sequence[Any]) -> Any:
    """Sum of every slot of the window."""
    total = history[0]
    for value in history[1:]:
        total = total + value
    return total


def trailing_sum_maximum(history: Sequence[Any], newest_index: int) -> Any:
    """
    Largest partial sum accumulated from the newest slot toward the oldest.

    The candidates are ``x_n``, ``x_n + x_{n-1}``, ... up to the sum of the
    whole window, so the result is the window-limited analogue of CUSUM.

    >>> trailing_sum_maximum([3, -1, 4], newest_index=1)
    6
    >>> trailing_sum_maximum([-2, -1, -4], newest_index=0)
    -2
    """
    size = len(history)
    running = history[newest_index]
    best = running
    for offset in range(1, size):
        running = running + history[(newest_index + offset) % size]
        if running > best:
            best = running
    return best


class Cusum(Statistic):
    """
    Cumulative sum statistic ``R_n = max(0, R_{n-1}) + x_n``.

    The first value is ``x_1`` since ``R_0 = 0``.
    """

    name: ClassVar[str] = "CUSUM"

    def __init__(self) -> None:
        self._value: Any = 0

    @property
    def value(self) -> Any:
        return self._value

    def observe(self, value: Any) -> Any:
        self._value = max(0, self._value) + value
        return self._value

    def reset(self) -> None:
        self._value = 0

    def to_dict(self) -> Dict[str, Any]:
        return {TYPE_KEY: self.name}

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "Cusum":
        expect_type(record, cls.name)
        window_size = window_size_of(record, required=False)
        if window_size != 0:
            raise InvalidConfiguration(
                f"CUSUM is not window-limited, got window size {window_size}."
            )
        return cls()


class WindowLimitedStatistic(Statistic):
    """
    Statistic recomputed from the last ``window_size`` observations.

    Subclasses implement `on_history_updated`, which receives the raw window
    slots and the index of the newest one, and `on_reset`. While fewer than
    ``window_size`` observations have been seen the computed value is passed
    through ``transform(time, value)``.
    """

    name: ClassVar[str] = "window-limited statistic"

    def __init__(
        self, window_size: int = 1, transform: Optional[TimedTransform] = None
    ) -> None:
        self._history = SlidingWindow(window_size)
        self._transform: TimedTransform = transform or identity_transform
        self._count = 0

    @property
    def window_size(self) -> int:
        return self._history.size

    @property
    def transform(self) -> TimedTransform:
        return self._transform

    @property
    def count_observations(self) -> int:
        return self._count

    @property
    def history(self) -> SlidingWindow:
        return self._history

    @abstractmethod
    def on_history_updated(self, history: List[Any], newest_index: int) -> Any:
        """Compute the statistic from the window slots."""

    @abstractmethod
    def on_reset(self) -> None:
        """Clear any state kept besides the window."""

    def _observe_transient(self, value: Any) -> Any:
        self._history.push(value)
        statistic = self.on_history_updated(
            self._history.values, self._history.newest_index
        )
        statistic = self._transform(self._count, statistic)
        self._count += 1
        return statistic

    def _observe_steady(self, value: Any) -> Any:
        self._history.push(value)
        self._count += 1
        return self.on_history_updated(
            self._history.values, self._history.newest_index
        )

    def observe(self, value: Any) -> Any:
        if self._count < self._history.size:
            return self._observe_transient(value)
        return self._observe_steady(value)

    def observe_block(self, values: Iterable[Any]) -> List[Any]:
        values = list(values)
        warm_up = max(0, min(len(values), self._history.size - self._count))
        results = [self._observe_transient(value) for value in values[:warm_up]]
        results.extend(self._observe_steady(value) for value in values[warm_up:])
        return results

    def reset(self) -> None:
        self._history.wipe()
        self._count = 0
        self.on_reset()

    def to_dict(self) -> Dict[str, Any]:
        return {TYPE_KEY: self.name, WINDOW_KEY: self.window_size}

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "WindowLimitedStatistic":
        expect_type(record, cls.name)
        return cls(window_size=window_size_of(record))


class FiniteMovingAverage(WindowLimitedStatistic):
    """
    Moving sum of the last ``window_size`` observations.

    The sum is left unnormalized; use a transform or scale the thresholds to
    work with averages.

    >>> fma = FiniteMovingAverage(window_size=3)
    >>> fma.observe_block([1, 2, 3, 4])
    [1, 3, 6, 9]
    """

    name: ClassVar[str] = "FMA"

    def on_history_updated(self, history: List[Any], newest_index: int) -> Any:
        return moving_sum(history)

    def on_reset(self) -> None:
        pass


class WindowLimitedCusum(WindowLimitedStatistic):
    """CUSUM restricted to the last ``window_size`` observations."""

    name: ClassVar[str] = "Window-limited CUSUM"

    def on_history_updated(self, history: List[Any], newest_index: int) -> Any:
        return trailing_sum_maximum(history, newest_index)

    def on_reset(self) -> None:
        pass
