"""
runlength.core.components
=========================

Base classes for the components that turn observations into decisions.

Component Types:
- `Statistic`: turns each new observation into a detection statistic value
- `Observer`: consumes observations in time order and keeps its own state
  (stopping times are observers)

Both are plain synchronous state objects: calls must be issued in strict
time order and every method runs to completion.

Examples
--------
>>> class RunningMax(Statistic):
...     name = "running max"
...     def __init__(self):
...         self.value = None
...     def observe(self, value):
...         self.value = value if self.value is None else max(self.value, value)
...         return self.value
...     def reset(self):
...         self.value = None
...     def to_dict(self):
...         return {"type": self.name}
>>>
>>> stat = RunningMax()
>>> stat.observe_block([1, 3, 2])
[1, 3, 3]
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, Iterable, List

from runlength.core.records import dump_record


class Statistic(ABC):
    """
    Base class for detection statistics.

    A statistic maps the history of observations to a scalar. It is updated
    one observation at a time and may be reset to its initial state without
    losing its configuration.
    """

    name: ClassVar[str] = "statistic"

    @abstractmethod
    def observe(self, value: Any) -> Any:
        """Observe a single value and return the updated statistic."""

    def observe_block(self, values: Iterable[Any]) -> List[Any]:
        """Observe a block of values and return the updated statistics."""
        return [self.observe(value) for value in values]

    @abstractmethod
    def reset(self) -> None:
        """The underlying process has been cleared."""

    @abstractmethod
    def to_dict(self) -> Dict[str, Any]:
        """Structural configuration as a serializable record."""

    def to_json(self) -> str:
        return dump_record(self.to_dict())


class Observer(ABC):
    """
    Base class for anything that listens to a discrete process.

    Processes call `observe` / `observe_block` for every generated value and
    `reset` when they are cleared.
    """

    @abstractmethod
    def observe(self, value: Any) -> None:
        """Observe a single value."""

    @abstractmethod
    def observe_block(self, values: Iterable[Any]) -> None:
        """Observe a block of values."""

    @abstractmethod
    def reset(self) -> None:
        """The underlying process has been cleared."""

    @property
    @abstractmethod
    def count_observations(self) -> int:
        """Number of observations seen since construction or the last reset."""

    @property
    @abstractmethod
    def is_stopped(self) -> bool:
        """Indicates that the observer does not need further observations."""

    @property
    def is_running(self) -> bool:
        """Indicates that the observer still expects observations."""
        return not self.is_stopped
