"""
runlength.sequential.parallel
=============================

Two one-sided stopping times running in parallel.

The rule may be written as ``inf{n : V_n > b or H_n > c}`` where ``V_n`` (the
*vertical* statistic) and ``H_n`` (the *horizontal* statistic) are observed
together, and ``b``, ``c`` range over two sorted threshold collections. Every
combination of thresholds is tracked at once, so the outcome is a pair of
matrices indexed by (vertical threshold, horizontal threshold):

- ``when``: observation count at which the cell stopped (0 while running);
- ``which``: the `Trigger` flags of the statistics that stopped the cell.

Layout of the threshold grid::

            |  0    1   ...   n-1    | c (horizontal)
    --------|------------------------|
        0   |           ...          |
        1   |           ...          |
       ...  |           ...          |
       m-1  |           ...          |
    ----------------------------------
     b (vertical)

Examples
--------
>>> from runlength.sequential.parallel import ParallelStoppingTime
>>> rule = ParallelStoppingTime(vertical_thresholds=[1, 2, 5], horizontal_thresholds=[4, 0])
>>> rule.observe_block([(0, 1), (-1, 4), (1, -2), (2, 3), (0, 0), (3, 7), (3, 0)])
>>> rule.when().tolist()
[[1, 4], [1, 6], [1, 6]]
>>> rule.which().tolist()
[[2, 1], [2, 3], [2, 2]]
>>> rule.is_stopped, rule.which(1, 1).name
(True, 'BOTH')
"""

from __future__ import annotations
from typing import Any, ClassVar, Dict, Iterable, Iterator, Optional, Sequence, Tuple
import logging

import numpy as np

from runlength.core.components import Observer, Statistic
from runlength.core.names import Trigger
from runlength.core.records import (
    HORIZONTAL_THRESHOLDS_KEY,
    TYPE_KEY,
    VERTICAL_THRESHOLDS_KEY,
    dump_record,
    expect_type,
    load_record,
    require,
)
from runlength.core.errors import InvalidConfiguration
from runlength.sequential.stopping_time import validate_thresholds

logger = logging.getLogger(__name__)


class ParallelStoppingTime(Observer):
    """
    Disjunction of a vertical and a horizontal one-sided stopping time.

    Parameters
    ----------
    vertical_thresholds, horizontal_thresholds : iterable of real numbers
        Thresholds for each statistic; stored sorted in ascending order. If
        either collection is empty the rule is stopped from the start.
    vertical_statistic, horizontal_statistic : Statistic, optional
        Statistics fed with the two components of every observed pair. When
        omitted, the component itself is the statistic value.

    Notes
    -----
    The rule stops as soon as either statistic has exceeded all of its
    thresholds: at that point every cell of the grid has been stamped.
    """

    name: ClassVar[str] = "parallel"

    def __init__(
        self,
        vertical_thresholds: Iterable[Any] = (),
        horizontal_thresholds: Iterable[Any] = (),
        vertical_statistic: Optional[Statistic] = None,
        horizontal_statistic: Optional[Statistic] = None,
    ) -> None:
        self._vertical_thresholds = validate_thresholds(vertical_thresholds)
        self._horizontal_thresholds = validate_thresholds(horizontal_thresholds)
        self._vertical_statistic = vertical_statistic
        self._horizontal_statistic = horizontal_statistic
        self._count = 0
        self._first_uncrossed_vertical = 0
        self._first_uncrossed_horizontal = 0
        shape = (len(self._vertical_thresholds), len(self._horizontal_thresholds))
        self._when = np.zeros(shape, dtype=np.int64)
        self._which = np.zeros(shape, dtype=np.uint8)

    # ---- state ----

    @property
    def vertical_thresholds(self) -> Tuple[Any, ...]:
        return self._vertical_thresholds

    @property
    def horizontal_thresholds(self) -> Tuple[Any, ...]:
        return self._horizontal_thresholds

    @property
    def shape(self) -> Tuple[int, int]:
        """Height (vertical thresholds) and width (horizontal thresholds)."""
        return (len(self._vertical_thresholds), len(self._horizontal_thresholds))

    @property
    def count_observations(self) -> int:
        return self._count

    @property
    def first_uncrossed_indices(self) -> Tuple[int, int]:
        return (self._first_uncrossed_vertical, self._first_uncrossed_horizontal)

    @property
    def is_stopped(self) -> bool:
        return self._first_uncrossed_vertical == len(
            self._vertical_thresholds
        ) or self._first_uncrossed_horizontal == len(self._horizontal_thresholds)

    def when(self, i: Optional[int] = None, j: Optional[int] = None) -> Any:
        """Stopping times: the whole matrix (a copy), or the cell ``(i, j)``."""
        if i is None and j is None:
            return self._when.copy()
        if i is None or j is None:
            raise TypeError("Both threshold indices are required for a single cell.")
        return int(self._when[i, j])

    def which(self, i: Optional[int] = None, j: Optional[int] = None) -> Any:
        """Trigger flags: the whole matrix (a copy), or the `Trigger` of ``(i, j)``."""
        if i is None and j is None:
            return self._which.copy()
        if i is None or j is None:
            raise TypeError("Both threshold indices are required for a single cell.")
        return Trigger(int(self._which[i, j]))

    # ---- decisions ----

    @staticmethod
    def _statistic_value(statistic: Optional[Statistic], value: Any) -> Any:
        if statistic is None:
            return value
        return statistic.observe(value)

    def _update_statistics(self, pair: Sequence[Any]) -> Tuple[Any, Any]:
        vertical, horizontal = pair
        return (
            self._statistic_value(self._vertical_statistic, vertical),
            self._statistic_value(self._horizontal_statistic, horizontal),
        )

    def _iter_statistics(self, pairs: Sequence[Sequence[Any]]) -> Iterator[Tuple[Any, Any]]:
        for pair in pairs:
            yield self._update_statistics(pair)

    def _check_for_stopping(self, vertical: Any, horizontal: Any, time: int) -> None:
        m, n = self.shape
        i0 = self._first_uncrossed_vertical
        j0 = self._first_uncrossed_horizontal

        next_vertical = i0
        while next_vertical < m and vertical > self._vertical_thresholds[next_vertical]:
            self._which[next_vertical, j0:] |= int(Trigger.VERTICAL)
            self._when[next_vertical, j0:] = time
            next_vertical += 1

        next_horizontal = j0
        while (
            next_horizontal < n
            and horizontal > self._horizontal_thresholds[next_horizontal]
        ):
            self._which[i0:, next_horizontal] |= int(Trigger.HORIZONTAL)
            self._when[i0:, next_horizontal] = time
            next_horizontal += 1

        if next_vertical != i0 or next_horizontal != j0:
            logger.debug(
                "%s crossed %d vertical and %d horizontal thresholds at time %d",
                self.name,
                next_vertical - i0,
                next_horizontal - j0,
                time,
            )
        self._first_uncrossed_vertical = next_vertical
        self._first_uncrossed_horizontal = next_horizontal

    def observe(self, value: Sequence[Any]) -> None:
        """Observe a single ``(vertical, horizontal)`` pair."""
        if self.is_running:
            vertical, horizontal = self._update_statistics(value)
            self._check_for_stopping(vertical, horizontal, self._count + 1)
        self._count += 1

    def observe_block(self, values: Iterable[Sequence[Any]]) -> None:
        """Observe a block of ``(vertical, horizontal)`` pairs."""
        pairs = list(values)
        if self.is_running:
            time = self._count + 1
            for vertical, horizontal in self._iter_statistics(pairs):
                self._check_for_stopping(vertical, horizontal, time)
                if self.is_stopped:
                    break
                time += 1
        self._count += len(pairs)

    def reset(self) -> None:
        self._count = 0
        self._first_uncrossed_vertical = 0
        self._first_uncrossed_horizontal = 0
        self._when.fill(0)
        self._which.fill(0)
        if self._vertical_statistic is not None:
            self._vertical_statistic.reset()
        if self._horizontal_statistic is not None:
            self._horizontal_statistic.reset()

    # ---- serialization ----

    def to_dict(self) -> Dict[str, Any]:
        return {
            TYPE_KEY: self.name,
            VERTICAL_THRESHOLDS_KEY: list(self._vertical_thresholds),
            HORIZONTAL_THRESHOLDS_KEY: list(self._horizontal_thresholds),
        }

    def to_json(self) -> str:
        return dump_record(self.to_dict())

    @classmethod
    def from_dict(cls, record: Dict[str, Any]) -> "ParallelStoppingTime":
        expect_type(record, cls.name)
        vertical = require(record, VERTICAL_THRESHOLDS_KEY)
        horizontal = require(record, HORIZONTAL_THRESHOLDS_KEY)
        if not isinstance(vertical, list) or not isinstance(horizontal, list):
            raise InvalidConfiguration("Parallel thresholds must be lists.")
        return cls(vertical_thresholds=vertical, horizontal_thresholds=horizontal)

    @classmethod
    def from_json(cls, text: str) -> "ParallelStoppingTime":
        return cls.from_dict(load_record(text))

    def __repr__(self) -> str:
        return (
            f"ParallelStoppingTime(vertical_thresholds={list(self._vertical_thresholds)}, "
            f"horizontal_thresholds={list(self._horizontal_thresholds)}, "
            f"count_observations={self._count})"
        )


class SharedStream(Observer):
    """
    Feed a scalar stream to both statistics of a parallel stopping time.

    Each observed value ``x`` reaches the wrapped rule as the pair ``(x, x)``,
    which is how two charts monitoring the same process are combined.

    >>> from runlength.sequential.statistics import Cusum, FiniteMovingAverage
    >>> rule = ParallelStoppingTime(
    ...     vertical_thresholds=[4], horizontal_thresholds=[5],
    ...     vertical_statistic=Cusum(), horizontal_statistic=FiniteMovingAverage(2),
    ... )
    >>> stream = SharedStream(rule)
    >>> stream.observe_block([1, 2, 3])
    >>> rule.when(0, 0), rule.which(0, 0).name
    (3, 'VERTICAL')
    """

    def __init__(self, rule: ParallelStoppingTime) -> None:
        self.rule = rule

    def observe(self, value: Any) -> None:
        self.rule.observe((value, value))

    def observe_block(self, values: Iterable[Any]) -> None:
        self.rule.observe_block([(value, value) for value in values])

    def reset(self) -> None:
        self.rule.reset()

    @property
    def count_observations(self) -> int:
        return self.rule.count_observations

    @property
    def is_stopped(self) -> bool:
        return self.rule.is_stopped

    def __repr__(self) -> str:
        return f"SharedStream({self.rule!r})"
