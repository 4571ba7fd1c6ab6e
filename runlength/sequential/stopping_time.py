"""
runlength.sequential.stopping_time
==================================

One-sided stopping times ``inf{n : R_n > b}`` for a sorted set of thresholds.

A single pass over the observations produces the stopping time of every
threshold at once: the rule keeps the index of the smallest threshold not yet
crossed and, whenever the statistic moves, sweeps that cursor upward past every
threshold the statistic now exceeds. Since thresholds are sorted, stopping
times are non-decreasing across thresholds.

- `OneSidedStoppingTime`: the generic rule over a pluggable `Statistic`, or
  over the raw observations when no statistic is given.
- `WindowLimitedStoppingTime`: base class for rules whose statistic is
  recomputed from a sliding window.
- `CusumChart`, `FmaChart`, `WindowLimitedCusumChart`: the concrete charts.
- `stopping_time_from_dict` / `stopping_time_from_json`: rebuild any rule from
  its serialized record.

Examples
--------
>>> from runlength.sequential.stopping_time import OneSidedStoppingTime
>>> rule = OneSidedStoppingTime(thresholds=[5, 1, 2])
>>> rule.thresholds
(1, 2, 5)
>>> rule.observe_block([0, -1, 1, 2, 0, 3, 3])
>>> rule.when()
[4, 6, 0]
>>> rule.is_running, rule.count_observations
(True, 7)
>>> rule.to_json()
'{"type":"one-sided","thresholds":[1,2,5]}'
"""

from __future__ import annotations
from abc import abstractmethod
from numbers import Real
from typing import (
    Any,
    Callable,
    ClassVar,
    Dict,
    Iterable,
    Iterator,
    List,
    Optional,
    Sequence,
    Tuple,
    Type,
    overload,
)
import logging
import math

import numpy as np

from runlength.core.components import Observer, Statistic
from runlength.core.errors import InvalidConfiguration
from runlength.core.records import (
    THRESHOLDS_KEY,
    TYPE_KEY,
    WINDOW_KEY,
    dump_record,
    expect_type,
    load_record,
    require,
    window_size_of,
)
from runlength.sequential.sliding import SlidingWindow
from runlength.sequential.statistics import (
    Cusum,
    moving_sum,
    trailing_sum_maximum,
)
from runlength.sequential.transforms import TimedTransform, identity_transform

logger = logging.getLogger(__name__)

# Hook receiving (time, statistic value) when at least one threshold is crossed.
StoppedStatisticHook = Callable[[int, Any], Any]


def validate_thresholds(thresholds: Iterable[Any]) -> Tuple[Any, ...]:
    """Return the thresholds sorted in ascending order.

    Raises `InvalidConfiguration` for non-numeric or non-finite entries. NumPy
    scalars are converted to Python numbers.

    >>> validate_thresholds([3.0, 1, 2.5])
    (1, 2.5, 3.0)
    >>> import numpy as np
    >>> validate_thresholds(np.arange(2, 0, -1))
    (1, 2)
    """
    checked: List[Any] = []
    for threshold in thresholds:
        if isinstance(threshold, bool) or not isinstance(threshold, Real):
            raise InvalidConfiguration(
                f"Thresholds must be real numbers, got {threshold!r}."
            )
        if isinstance(threshold, np.generic):
            threshold = threshold.item()
        if not math.isfinite(threshold):
            raise InvalidConfiguration(f"Thresholds must be finite, got {threshold}.")
        checked.append(threshold)
    return tuple(sorted(checked))


def thresholds_of(record: Dict[str, Any]) -> Tuple[Any, ...]:
    thresholds = require(record, THRESHOLDS_KEY)
    if not isinstance(thresholds, list):
        raise InvalidConfiguration(
            f"Thresholds must be a list, got {thresholds!r}."
        )
    return validate_thresholds(thresholds)


class OneSidedStoppingTime(Observer):
    """
    Multi-threshold one-sided stopping time.

    Parameters
    ----------
    thresholds : iterable of real numbers
        Stopping thresholds; stored sorted in ascending order. An empty
        collection gives a rule that is stopped from the start.
    statistic : Statistic, optional
        Detection statistic fed with every observation. When omitted, each
        observed value is itself the statistic value.
    stopped_statistic : callable, optional
        ``stopped_statistic(time, statistic_value)`` is called once for every
        observation that crosses at least one threshold; the result is kept
        for each threshold crossed by that observation.

    Notes
    -----
    Observation ``n`` (one-based) stops threshold ``b`` when the statistic
    is strictly greater than ``b``; ``when`` then reports ``n``. A threshold
    that has not been crossed reports 0. Once every threshold is crossed,
    further observations are only counted.
    """

    name: ClassVar[str] = "one-sided"

    def __init__(
        self,
        thresholds: Iterable[Any] = (),
        statistic: Optional[Statistic] = None,
        stopped_statistic: Optional[StoppedStatisticHook] = None,
    ) -> None:
        self._thresholds = validate_thresholds(thresholds)
        self._statistic = statistic
        self._stopped_statistic = stopped_statistic
        self._count = 0
        self._first_uncrossed_index = 0
        self._when: List[int] = [0] * len(self._thresholds)
        self._stopped_values: List[Any] = [None] * len(self._thresholds)

    # ---- state ----

    @property
    def thresholds(self) -> Tuple[Any, ...]:
        """Thresholds, sorted in ascending order."""
        return self._thresholds

    @property
    def statistic(self) -> Optional[Statistic]:
        return self._statistic

    @property
    def count_observations(self) -> int:
        return self._count

    @property
    def first_uncrossed_index(self) -> int:
        """Index of the smallest threshold that has not been crossed yet."""
        return self._first_uncrossed_index

    @property
    def is_stopped(self) -> bool:
        """Indicates that every threshold has been crossed."""
        return self._first_uncrossed_index == len(self._thresholds)

    @overload
    def when(self) -> List[int]: ...

    @overload
    def when(self, index: int) -> int: ...

    def when(self, index: Optional[int] = None) -> Any:
        """Observation count at which each threshold was crossed (0 if not yet)."""
        if index is None:
            return list(self._when)
        return self._when[index]

    def stopped_statistics(self) -> List[Any]:
        """Values captured by the stopped-statistic hook (``None`` if not crossed)."""
        return list(self._stopped_values)

    def stopped_statistic_at(self, index: int) -> Any:
        return self._stopped_values[index]

    # ---- statistic ----

    def _update_statistic(self, value: Any) -> Any:
        """Feed the newest observation to the statistic and return its value.

        The observation counter has not been incremented yet.
        """
        if self._statistic is None:
            return value
        return self._statistic.observe(value)

    def _iter_statistics(self, values: Sequence[Any]) -> Iterator[Any]:
        """Lazily produce the statistic values for a block of observations."""
        for value in values:
            yield self._update_statistic(value)

    def _reset_statistic(self) -> None:
        if self._statistic is not None:
            self._statistic.reset()

    # ---- decisions ----

    def _check_for_stopping(self, statistic: Any, time: int) -> None:
        start = self._first_uncrossed_index
        cursor = start
        while cursor < len(self._thresholds):
            if not statistic > self._thresholds[cursor]:
                break
            self._when[cursor] = time
            cursor += 1
        if cursor == start:
            return

        self._first_uncrossed_index = cursor
        logger.debug(
            "%s crossed thresholds %s at time %d (statistic %r)",
            self.name,
            list(self._thresholds[start:cursor]),
            time,
            statistic,
        )
        if self._stopped_statistic is not None:
            snapshot = self._stopped_statistic(time, statistic)
            for index in range(start, cursor):
                self._stopped_values[index] = snapshot

    def observe(self, value: Any) -> None:
        if self.is_running:
            statistic = self._update_statistic(value)
            self._check_for_stopping(statistic, self._count + 1)
        self._count += 1

    def observe_block(self, values: Iterable[Any]) -> None:
        values = list(values)
        if self.is_running:
            time = self._count + 1
            for statistic in self._iter_statistics(values):
                self._check_for_stopping(statistic, time)
                if self.is_stopped:
                    break
                time += 1
        self._count += len(values)

    def reset(self) -> None:
        self._count = 0
        self._first_uncrossed_index = 0
        self._when = [0] * len(self._thresholds)
        self._stopped_values = [None] * len(self._thresholds)
        self._reset_statistic()

    # ---- serialization ----

    def to_dict(self) -> Dict[str, Any]:
        return {TYPE_KEY: self.name, THRESHOLDS_KEY: list(self._thresholds)}

    def to_json(self) -> str:
        return dump_record(self.to_dict())

    @classmethod
    def _from_record(cls, record: Dict[str, Any]) -> "OneSidedStoppingTime":
        return cls(thresholds=thresholds_of(record))

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "OneSidedStoppingTime":
        expect_type(record, cls.name)
        return cls._from_record(record)

    @classmethod
    def from_json(cls, text: str) -> "OneSidedStoppingTime":
        return cls.from_dict(load_record(text))

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(thresholds={list(self._thresholds)}, "
            f"count_observations={self._count}, when={self._when})"
        )


class CusumChart(OneSidedStoppingTime):
    """
    CUSUM chart: stops when ``R_n = max(0, R_{n-1}) + x_n`` exceeds a threshold.

    >>> chart = CusumChart(thresholds=[10])
    >>> chart.observe_block([2, 3, -7, 1, 2, 3, 4, 5, 5, -5])
    >>> chart.when(0)
    8
    """

    name: ClassVar[str] = "CUSUM"

    def __init__(
        self,
        thresholds: Iterable[Any] = (),
        stopped_statistic: Optional[StoppedStatisticHook] = None,
    ) -> None:
        super().__init__(
            thresholds=thresholds,
            statistic=Cusum(),
            stopped_statistic=stopped_statistic,
        )

    @classmethod
    def _from_record(cls, record: Dict[str, Any]) -> "CusumChart":
        window_size = window_size_of(record, required=False)
        if window_size != 0:
            raise InvalidConfiguration(
                f"CUSUM is not window-limited, got window size {window_size}."
            )
        return cls(thresholds=thresholds_of(record))


class WindowLimitedStoppingTime(OneSidedStoppingTime):
    """
    One-sided stopping time over a statistic recomputed from a sliding window.

    Subclasses implement `on_history_updated(history, newest_index)` and
    `on_reset`. While fewer than ``window_size`` observations have been used,
    the statistic goes through ``transform(time, value)`` where ``time`` is
    the zero-based index of the observation.
    """

    name: ClassVar[str] = "window-limited"

    def __init__(
        self,
        window_size: int = 1,
        thresholds: Iterable[Any] = (),
        transform: Optional[TimedTransform] = None,
        stopped_statistic: Optional[StoppedStatisticHook] = None,
    ) -> None:
        super().__init__(thresholds=thresholds, stopped_statistic=stopped_statistic)
        self._history = SlidingWindow(window_size)
        self._transform: TimedTransform = transform or identity_transform
        # Observations that reached the statistic; equals the observation
        # count while the rule is running.
        self._updates = 0

    @property
    def window_size(self) -> int:
        return self._history.size

    @property
    def transform(self) -> TimedTransform:
        return self._transform

    @property
    def history(self) -> SlidingWindow:
        return self._history

    @abstractmethod
    def on_history_updated(self, history: List[Any], newest_index: int) -> Any:
        """Compute the statistic from the window slots."""

    @abstractmethod
    def on_reset(self) -> None:
        """Clear any state kept besides the window."""

    def _push(self, value: Any) -> Any:
        self._history.push(value)
        statistic = self.on_history_updated(
            self._history.values, self._history.newest_index
        )
        time = self._updates
        self._updates += 1
        if time < self._history.size:
            return self._transform(time, statistic)
        return statistic

    def _update_statistic(self, value: Any) -> Any:
        return self._push(value)

    def _iter_statistics(self, values: Sequence[Any]) -> Iterator[Any]:
        warm_up = max(0, min(len(values), self._history.size - self._updates))
        for value in values[:warm_up]:
            yield self._push(value)
        for value in values[warm_up:]:
            self._history.push(value)
            self._updates += 1
            yield self.on_history_updated(
                self._history.values, self._history.newest_index
            )

    def _reset_statistic(self) -> None:
        self._history.wipe()
        self._updates = 0
        self.on_reset()

    def to_dict(self) -> Dict[str, Any]:
        return {
            TYPE_KEY: self.name,
            WINDOW_KEY: self.window_size,
            THRESHOLDS_KEY: list(self._thresholds),
        }

    @classmethod
    def _from_record(cls, record: Dict[str, Any]) -> "WindowLimitedStoppingTime":
        return cls(
            window_size=window_size_of(record), thresholds=thresholds_of(record)
        )


class FmaChart(WindowLimitedStoppingTime):
    """
    Finite moving average chart: stops when the sum of the last
    ``window_size`` observations exceeds a threshold.
    """

    name: ClassVar[str] = "FMA"

    def on_history_updated(self, history: List[Any], newest_index: int) -> Any:
        return moving_sum(history)

    def on_reset(self) -> None:
        pass


class WindowLimitedCusumChart(WindowLimitedStoppingTime):
    """
    Window-limited CUSUM chart: stops when the largest trailing partial sum
    of the last ``window_size`` observations exceeds a threshold.

    >>> chart = WindowLimitedCusumChart(window_size=5, thresholds=[15, 19])
    >>> chart.observe_block([2, 3, -7, 1, 2, 3, 4, 5, 5, -5])
    >>> chart.when()
    [9, 0]
    >>> chart.to_json()
    '{"type":"Window-limited CUSUM","window":5,"thresholds":[15,19]}'
    """

    name: ClassVar[str] = "Window-limited CUSUM"

    def on_history_updated(self, history: List[Any], newest_index: int) -> Any:
        return trailing_sum_maximum(history, newest_index)

    def on_reset(self) -> None:
        pass


_ONE_SIDED_TYPES: Dict[str, Type[OneSidedStoppingTime]] = {
    cls.name: cls
    for cls in (OneSidedStoppingTime, CusumChart, FmaChart, WindowLimitedCusumChart)
}


def stopping_time_from_dict(record: Dict[str, Any]) -> Observer:
    """
    Rebuild a stopping time from its serialized record.

    The ``"type"`` tag selects the class; unknown tags raise
    `InvalidConfiguration`.

    >>> rule = stopping_time_from_dict({"type": "FMA", "window": 3, "thresholds": [4]})
    >>> type(rule).__name__, rule.window_size
    ('FmaChart', 3)
    """
    from runlength.sequential.parallel import ParallelStoppingTime

    type_name = require(record, TYPE_KEY)
    if type_name == ParallelStoppingTime.name:
        return ParallelStoppingTime.from_dict(record)
    cls = _ONE_SIDED_TYPES.get(type_name)
    if cls is None:
        raise InvalidConfiguration(f"Unknown stopping time type {type_name!r}.")
    return cls.from_dict(record)


def stopping_time_from_json(text: str) -> Observer:
    return stopping_time_from_dict(load_record(text))
