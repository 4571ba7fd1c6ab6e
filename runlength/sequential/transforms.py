"""
runlength.sequential.transforms
===============================

Timed transforms applied to a windowed statistic during its transient period.

While fewer than ``window_size`` observations have been seen, a windowed
statistic is computed over a partially filled buffer. A timed transform
``f(time, value)`` may correct the raw value; ``time`` is the zero-based index
of the observation that produced it. Once the window is full the transform is
no longer called.

Examples
--------
>>> from runlength.sequential.transforms import WindowLimitedLinearTransform
>>> f = WindowLimitedLinearTransform(scale_factors=[5.0, 2.5], shifts=[0.0, 1.0])
>>> f(0, 2.0), f(1, 2.0), f(2, 2.0)
(10.0, 6.0, 2.0)
"""

from __future__ import annotations
from typing import Any, Callable, Sequence, Tuple

from runlength.core.errors import InvalidConfiguration

TimedTransform = Callable[[int, Any], Any]


def identity_transform(time: int, value: Any) -> Any:
    """Leave the statistic unchanged."""
    return value


class WindowLimitedLinearTransform:
    """
    Affine correction ``scale_factors[time] * value + shifts[time]``.

    Values observed at or after ``len(scale_factors)`` pass through unchanged.
    A typical use is rescaling a moving sum over ``time + 1`` observations to
    the scale of a full window.
    """

    def __init__(
        self, scale_factors: Sequence[float], shifts: Sequence[float]
    ) -> None:
        if len(scale_factors) != len(shifts):
            raise InvalidConfiguration(
                "Scale factors and shifts must have the same length, "
                f"got {len(scale_factors)} and {len(shifts)}."
            )
        self._scale_factors: Tuple[float, ...] = tuple(scale_factors)
        self._shifts: Tuple[float, ...] = tuple(shifts)

    @property
    def scale_factors(self) -> Tuple[float, ...]:
        return self._scale_factors

    @property
    def shifts(self) -> Tuple[float, ...]:
        return self._shifts

    def __len__(self) -> int:
        return len(self._scale_factors)

    def __call__(self, time: int, value: Any) -> Any:
        if time < len(self._scale_factors):
            return self._scale_factors[time] * value + self._shifts[time]
        return value
