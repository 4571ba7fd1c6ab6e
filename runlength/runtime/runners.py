"""
runlength.runtime.runners
=========================

Monte Carlo runner for run-length studies.

The runner owns the execution loop while the process and the stopping times
own the logic: every replication clears the process (which resets all rules),
generates observations until every rule has stopped or the observation budget
is exhausted, and writes one ``"stopped"`` event per threshold into the
ledger. Parallel rules write one event per cell of their threshold grid.

Examples
--------
>>> from scipy import stats
>>> from runlength.runtime.config import SimulationConfig
>>> from runlength.runtime.runners import MonteCarloRunner
>>> from runlength.sequential.processes import IidProcess
>>> from runlength.sequential.stopping_time import FmaChart
>>>
>>> runner = MonteCarloRunner(
...     IidProcess(stats.randint(1, 2)),
...     {"fma": FmaChart(window_size=3, thresholds=[2, 4])},
...     SimulationConfig(replications=2, block_size=4),
... )
>>> ledger = runner.run()
>>> [row.payload["run_length"] for row in ledger.iter_rows(entity="fma")]
[3, 0, 3, 0]
>>> runner.get_summary()["censored_outcomes"]
2
"""

from __future__ import annotations
from typing import Any, Dict, List, Mapping, Optional, Union
import logging

from runlength.core.components import Observer
from runlength.core.ledger import Ledger
from runlength.core.names import (
    PARALLEL_RUN_LENGTH_PAYLOAD,
    RUN_LENGTH_PAYLOAD,
    STOPPED_KIND,
    Namespace,
    RuleName,
    RunKey,
    TimeIndex,
)
from runlength.runtime.config import SimulationConfig
from runlength.sequential.parallel import ParallelStoppingTime, SharedStream
from runlength.sequential.processes import DiscreteProcess
from runlength.sequential.stopping_time import OneSidedStoppingTime

logger = logging.getLogger(__name__)

Rule = Union[OneSidedStoppingTime, ParallelStoppingTime]


class MonteCarloRunner:
    """
    Runs named stopping times against a single process.

    Provides the execution environment for a run-length study with:
    - Observer registration and per-replication reset
    - Single-value or block generation within the observation budget
    - One ledger event per threshold (or threshold cell) per replication
    """

    def __init__(
        self,
        process: DiscreteProcess,
        rules: Mapping[str, Rule],
        config: Optional[SimulationConfig] = None,
        ledger: Optional[Ledger] = None,
    ):
        self.process = process
        self.rules: Dict[str, Rule] = dict(rules)
        self.config = config or SimulationConfig()
        self.config.validate()
        self._ledger = ledger if ledger is not None else Ledger("runlength")
        self._completed = 0
        self._outcomes = 0
        self._censored = 0

    @property
    def ledger(self) -> Ledger:
        return self._ledger

    def setup(self) -> None:
        """Register every rule with the process, replacing earlier observers."""
        if not self.rules:
            raise RuntimeError("Runner has no rules. Provide at least one stopping time.")
        self.process.clear_observers()
        for rule in self.rules.values():
            observer: Observer = (
                SharedStream(rule) if isinstance(rule, ParallelStoppingTime) else rule
            )
            self.process.register_observer(observer)

    def run(self) -> Ledger:
        """Run every replication and return the ledger holding the outcomes.

        Calling `run` again appends further replications: run keys continue
        from the replications already completed, so every event keeps a
        distinct key and the summary counts stay in step with the ledger.
        """
        self.setup()
        if self.config.seed is not None:
            self.process.reseed(self.config.seed)

        logger.info(
            "Starting %d replications of %s (max %d observations)",
            self.config.replications,
            ", ".join(self.rules),
            self.config.max_observations,
        )
        first = self._completed
        for replication in range(first, first + self.config.replications):
            self._run_once(replication)
        logger.info(
            "Finished %d replications (%d censored outcomes)",
            self._completed,
            self._censored,
        )
        return self._ledger

    def _is_running(self) -> bool:
        return any(rule.is_running for rule in self.rules.values())

    def _run_once(self, replication: int) -> None:
        process = self.process
        budget = self.config.max_observations
        block_size = self.config.block_size

        process.clear()
        while self._is_running() and process.count < budget:
            if block_size == 1:
                process.next()
            else:
                process.next_block(min(block_size, budget - process.count))

        run_key = RunKey(f"run-{replication}")
        time_index = TimeIndex(f"t{process.count}")
        for name, rule in self.rules.items():
            if isinstance(rule, ParallelStoppingTime):
                self._record_parallel(RuleName(name), rule, run_key, time_index)
            else:
                self._record_one_sided(RuleName(name), rule, run_key, time_index)
        self._completed += 1
        logger.debug("Replication %d ended after %d observations", replication, process.count)

    def _write(
        self,
        name: RuleName,
        run_key: RunKey,
        time_index: TimeIndex,
        payload_type: str,
        payload: Dict[str, Any],
    ) -> None:
        self._ledger.write_event(
            time_index=time_index,
            namespace=Namespace.SIGNALS,
            kind=STOPPED_KIND,
            experiment_id=name,
            step_key=run_key,
            payload_type=payload_type,
            payload=payload,
        )
        self._outcomes += 1
        if payload["censored"]:
            self._censored += 1

    def _record_one_sided(
        self,
        name: RuleName,
        rule: OneSidedStoppingTime,
        run_key: RunKey,
        time_index: TimeIndex,
    ) -> None:
        for index, threshold in enumerate(rule.thresholds):
            when = rule.when(index)
            self._write(
                name,
                run_key,
                time_index,
                RUN_LENGTH_PAYLOAD,
                {
                    "label": str(threshold),
                    "threshold_index": index,
                    "threshold": float(threshold),
                    "run_length": when,
                    "censored": when == 0,
                    "observations": rule.count_observations,
                },
            )

    def _record_parallel(
        self,
        name: RuleName,
        rule: ParallelStoppingTime,
        run_key: RunKey,
        time_index: TimeIndex,
    ) -> None:
        when = rule.when()
        which = rule.which()
        for i, vertical in enumerate(rule.vertical_thresholds):
            for j, horizontal in enumerate(rule.horizontal_thresholds):
                self._write(
                    name,
                    run_key,
                    time_index,
                    PARALLEL_RUN_LENGTH_PAYLOAD,
                    {
                        "label": f"{vertical} | {horizontal}",
                        "vertical_index": i,
                        "horizontal_index": j,
                        "vertical_threshold": float(vertical),
                        "horizontal_threshold": float(horizontal),
                        "run_length": when[i, j],
                        "censored": when[i, j] == 0,
                        "which": which[i, j],
                        "observations": rule.count_observations,
                    },
                )

    def get_summary(self) -> Dict[str, Any]:
        """Summary of the runner state."""
        return {
            "runner_type": "monte_carlo",
            "rules": list(self.rules),
            "config": self.config.to_dict(),
            "completed_replications": self._completed,
            "recorded_outcomes": self._outcomes,
            "censored_outcomes": self._censored,
        }

    def get_rules(self) -> List[Rule]:
        return list(self.rules.values())
