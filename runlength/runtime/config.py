"""
runlength.runtime.config
========================

Configuration of Monte Carlo run-length studies.

Examples
--------
>>> from runlength.runtime.config import SimulationConfig
>>> config = SimulationConfig(replications=10, block_size=64)
>>> config.validate()
>>> SimulationConfig(replications=0).validate()
Traceback (most recent call last):
...
runlength.core.errors.InvalidConfiguration: replications must be positive, got 0
"""

from __future__ import annotations
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from runlength.core.errors import InvalidConfiguration


@dataclass
class SimulationConfig:
    """Parameters of a Monte Carlo study.

    Attributes:
        replications: Number of independent runs
        max_observations: Observation budget per run; rules still running
            when it is exhausted are recorded as censored
        block_size: Observations generated per step (1 for one at a time)
        seed: Seed for the process random generator, or None to keep the
            process's own generator
    """

    replications: int = 100
    max_observations: int = 10_000
    block_size: int = 1
    seed: Optional[int] = None

    def validate(self) -> None:
        """Check the configuration, raising `InvalidConfiguration` if invalid."""
        for field_name in ("replications", "max_observations", "block_size"):
            value = getattr(self, field_name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidConfiguration(
                    f"{field_name} must be an integer, got {value!r}"
                )
            if value < 1:
                raise InvalidConfiguration(f"{field_name} must be positive, got {value}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
