"""
runlength.runtime
=================

Runtime environment for Monte Carlo run-length studies.

This namespace contains the execution infrastructure that drives processes
and stopping times over many replications and records the outcomes in a
ledger.

Key Components
--------------
- `SimulationConfig`: replication count, observation budget, block size, seed
- `MonteCarloRunner`: runs a set of named rules against one process

Examples
--------
>>> from scipy import stats
>>> from runlength.runtime import MonteCarloRunner, SimulationConfig
>>> from runlength.sequential.processes import IidProcess
>>> from runlength.sequential.stopping_time import CusumChart
>>>
>>> runner = MonteCarloRunner(
...     IidProcess(stats.norm(loc=1.0)),
...     {"cusum": CusumChart(thresholds=[3.0])},
...     SimulationConfig(replications=5, seed=1),
... )
>>> ledger = runner.run()
>>> ledger.count(kind="stopped")
5
"""

from runlength.runtime.config import SimulationConfig
from runlength.runtime.runners import MonteCarloRunner

__all__ = ["SimulationConfig", "MonteCarloRunner"]
