"""
runlength.sequential.processes
==============================

Discrete-time observation sources.

A `DiscreteProcess` generates one value (or a block of values) at a time and
hands every generated value to its registered observers, in registration
order. Clearing the process resets the observers as well, so a process and
its stopping times always agree on the time index.

- `IidProcess`: independent draws from a single distribution.
- `IidPersistentProcess`: independent draws whose distribution changes once,
  permanently, at a given time index.
- `IidTransientProcess`: independent draws whose distribution changes over a
  finite stretch of time indices and then reverts.
- `AutoRegressiveProcess`: an AR(p) recursion driven by independent noise.

Distributions are frozen ``scipy.stats`` objects; randomness comes from a
``numpy.random.Generator`` seeded at construction.

Examples
--------
>>> from scipy import stats
>>> from runlength.sequential.processes import IidPersistentProcess
>>> from runlength.sequential.stopping_time import CusumChart
>>> process = IidPersistentProcess(
...     no_change=stats.norm(loc=-0.5), under_change=stats.norm(loc=0.5),
...     first_under_change_index=20, seed=7,
... )
>>> chart = CusumChart(thresholds=[2.0, 4.0])
>>> process.register_observer(chart)
True
>>> process.register_observer(chart)
False
>>> _ = process.next_block(50)
>>> process.count == chart.count_observations == 50
True
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence, Tuple, Union
import logging
import math

import numpy as np

from runlength.core.components import Observer
from runlength.core.errors import InvalidConfiguration
from runlength.sequential.sliding import SlidingWindow

logger = logging.getLogger(__name__)

SeedLike = Union[None, int, np.random.SeedSequence, np.random.Generator]
# A frozen scipy.stats distribution, e.g. ``stats.norm(loc=1.0)``.
Distribution = Any


class DiscreteProcess(ABC):
    """
    Base class for processes observed in discrete time.

    Subclasses implement `on_next`, `on_next_block` and `on_clear`, drawing
    any randomness from `rng`.
    """

    def __init__(self, seed: SeedLike = None) -> None:
        self._count = 0
        self._observers: List[Observer] = []
        self._rng = np.random.default_rng(seed)

    @abstractmethod
    def on_clear(self) -> None:
        """Called when the process is cleared."""

    @abstractmethod
    def on_next(self) -> Any:
        """Generate a single observation; the count is not incremented yet."""

    @abstractmethod
    def on_next_block(self, size: int) -> np.ndarray:
        """Generate ``size`` observations; the count is not incremented yet."""

    @property
    def rng(self) -> np.random.Generator:
        return self._rng

    def reseed(self, seed: SeedLike) -> None:
        """Replace the random generator; past observations are kept."""
        self._rng = np.random.default_rng(seed)

    @property
    def count(self) -> int:
        """Number of observations generated so far."""
        return self._count

    @property
    def observers(self) -> List[Observer]:
        return list(self._observers)

    def register_observer(self, observer: Observer) -> bool:
        """Add ``observer``; returns False if it is already registered."""
        if any(existing is observer for existing in self._observers):
            return False
        self._observers.append(observer)
        logger.debug("Registered %r with %s", observer, type(self).__name__)
        return True

    def clear_observers(self) -> None:
        self._observers.clear()

    def clear(self) -> None:
        """Purge past observations and reset every observer."""
        self.on_clear()
        self._count = 0
        for observer in self._observers:
            observer.reset()
        logger.debug("Cleared %s", type(self).__name__)

    def next(self) -> Any:
        """Generate a single observation and pass it to the observers."""
        value = self.on_next()
        self._count += 1
        for observer in self._observers:
            observer.observe(value)
        return value

    def next_block(self, size: int) -> np.ndarray:
        """Generate a block of observations and pass it to the observers."""
        if size < 0:
            raise InvalidConfiguration(f"Block size must be non-negative, got {size}.")
        values = self.on_next_block(size)
        self._count += len(values)
        for observer in self._observers:
            observer.observe_block(values)
        return values


class IidProcess(DiscreteProcess):
    """
    Independent identically distributed observations.

    >>> from scipy import stats
    >>> process = IidProcess(stats.randint(1, 2), seed=0)
    >>> process.next_block(3).tolist()
    [1, 1, 1]
    """

    def __init__(self, distribution: Distribution, seed: SeedLike = None) -> None:
        super().__init__(seed)
        self._distribution = distribution

    @property
    def distribution(self) -> Distribution:
        return self._distribution

    def on_clear(self) -> None:
        pass

    def on_next(self) -> Any:
        return self._distribution.rvs(random_state=self._rng)

    def on_next_block(self, size: int) -> np.ndarray:
        return np.asarray(self._distribution.rvs(size=size, random_state=self._rng))


class IidPersistentProcess(DiscreteProcess):
    """
    Independent observations with a single persistent change.

    Observations with (zero-based) index below ``first_under_change_index``
    are drawn from ``no_change``; all later ones from ``under_change``.
    """

    def __init__(
        self,
        no_change: Distribution,
        under_change: Distribution,
        first_under_change_index: int,
        seed: SeedLike = None,
    ) -> None:
        super().__init__(seed)
        if first_under_change_index < 0:
            raise InvalidConfiguration(
                "First under-change index must be non-negative, "
                f"got {first_under_change_index}."
            )
        self._no_change = no_change
        self._under_change = under_change
        self._first_under_change_index = first_under_change_index

    @property
    def no_change(self) -> Distribution:
        return self._no_change

    @property
    def under_change(self) -> Distribution:
        return self._under_change

    @property
    def first_under_change_index(self) -> int:
        return self._first_under_change_index

    @property
    def is_under_change(self) -> bool:
        """Indicates that the next observation comes from the changed regime."""
        return self.count >= self._first_under_change_index

    def on_clear(self) -> None:
        pass

    def on_next(self) -> Any:
        if self.is_under_change:
            return self._under_change.rvs(random_state=self._rng)
        return self._no_change.rvs(random_state=self._rng)

    def on_next_block(self, size: int) -> np.ndarray:
        before = max(0, min(size, self._first_under_change_index - self.count))
        head = np.asarray(self._no_change.rvs(size=before, random_state=self._rng))
        tail = np.asarray(
            self._under_change.rvs(size=size - before, random_state=self._rng)
        )
        return np.concatenate([head, tail])


class IidTransientProcess(DiscreteProcess):
    """
    Independent observations with a change of finite duration.

    Observations with (zero-based) index in ``[first_under_change_index,
    last_under_change_index]`` are drawn from ``under_change``; all others,
    before and after the change, from ``no_change``.

    >>> from scipy import stats
    >>> process = IidTransientProcess(
    ...     stats.randint(0, 1), stats.randint(1, 2),
    ...     first_under_change_index=2, change_duration=3,
    ... )
    >>> process.last_under_change_index
    4
    >>> process.next_block(7).tolist()
    [0, 0, 1, 1, 1, 0, 0]
    """

    def __init__(
        self,
        no_change: Distribution,
        under_change: Distribution,
        first_under_change_index: int,
        change_duration: int,
        seed: SeedLike = None,
    ) -> None:
        super().__init__(seed)
        if first_under_change_index < 0:
            raise InvalidConfiguration(
                "First under-change index must be non-negative, "
                f"got {first_under_change_index}."
            )
        if change_duration < 1:
            raise InvalidConfiguration(
                f"Change duration must be positive, got {change_duration}."
            )
        self._no_change = no_change
        self._under_change = under_change
        self._first_under_change_index = first_under_change_index
        self._last_under_change_index = first_under_change_index + change_duration - 1

    @property
    def no_change(self) -> Distribution:
        return self._no_change

    @property
    def under_change(self) -> Distribution:
        return self._under_change

    @property
    def first_under_change_index(self) -> int:
        return self._first_under_change_index

    @property
    def last_under_change_index(self) -> int:
        return self._last_under_change_index

    @property
    def change_duration(self) -> int:
        return self._last_under_change_index - self._first_under_change_index + 1

    @property
    def is_under_change(self) -> bool:
        """Indicates that the next observation comes from the changed regime."""
        return (
            self._first_under_change_index
            <= self.count
            <= self._last_under_change_index
        )

    def on_clear(self) -> None:
        pass

    def on_next(self) -> Any:
        if self.is_under_change:
            return self._under_change.rvs(random_state=self._rng)
        return self._no_change.rvs(random_state=self._rng)

    def on_next_block(self, size: int) -> np.ndarray:
        count = self.count
        pre = max(0, min(size, self._first_under_change_index - count))
        past = count + size - self._last_under_change_index - 1
        post = max(0, min(size - pre, past))
        under = size - pre - post
        segments = [
            self._no_change.rvs(size=pre, random_state=self._rng),
            self._under_change.rvs(size=under, random_state=self._rng),
            self._no_change.rvs(size=post, random_state=self._rng),
        ]
        return np.concatenate([np.asarray(segment) for segment in segments])


class AutoRegressiveProcess(DiscreteProcess):
    """
    Auto-regressive process driven by an arbitrary noise distribution.

    The newest observation is ``x_n = e_n + a_1 x_{n-1} + ... + a_p x_{n-p}``
    where ``e_n`` is drawn from ``noise`` and ``a_1, ..., a_p`` are the AR
    parameters. Observations before the first one are taken to be zero.

    >>> from scipy import stats
    >>> process = AutoRegressiveProcess(stats.randint(1, 2), ar_parameters=[0.5])
    >>> process.next_block(4).tolist()
    [1.0, 1.5, 1.75, 1.875]
    >>> process.clear(); process.next()
    1.0
    """

    def __init__(
        self,
        noise: Distribution,
        ar_parameters: Sequence[float] = (),
        seed: SeedLike = None,
    ) -> None:
        super().__init__(seed)
        parameters = [float(a) for a in ar_parameters]
        if not all(math.isfinite(a) for a in parameters):
            raise InvalidConfiguration(
                f"AR parameters must be finite, got {list(ar_parameters)!r}."
            )
        self._noise = noise
        self._ar_parameters = tuple(parameters)
        self._history: Optional[SlidingWindow] = (
            SlidingWindow(len(parameters), zero=0.0) if parameters else None
        )

    @property
    def noise(self) -> Distribution:
        return self._noise

    @property
    def ar_parameters(self) -> Tuple[float, ...]:
        return self._ar_parameters

    def on_clear(self) -> None:
        if self._history is not None:
            self._history.wipe()

    def _advance(self, noise: float) -> float:
        if self._history is None:
            return noise
        newest = noise
        for a, x in zip(self._ar_parameters, self._history.newest_first()):
            newest += a * x
        self._history.push(newest)
        return newest

    def on_next(self) -> Any:
        return self._advance(float(self._noise.rvs(random_state=self._rng)))

    def on_next_block(self, size: int) -> np.ndarray:
        noise = self._noise.rvs(size=size, random_state=self._rng)
        return np.array([self._advance(float(e)) for e in np.asarray(noise)], dtype=float)
