import pytest
from scipy import stats

from runlength.core.errors import InvalidConfiguration
from runlength.core.ledger import Ledger
from runlength.core.names import Namespace, Trigger
from runlength.reporting.generic import RunLengthReporter
from runlength.runtime import MonteCarloRunner, SimulationConfig
from runlength.sequential.parallel import ParallelStoppingTime
from runlength.sequential.processes import IidPersistentProcess, IidProcess
from runlength.sequential.statistics import Cusum, FiniteMovingAverage
from runlength.sequential.stopping_time import CusumChart, FmaChart


def constant(value):
    return IidProcess(stats.randint(value, value + 1))


def test_one_event_per_threshold_and_replication():
    runner = MonteCarloRunner(
        constant(1),
        {"cusum": CusumChart(thresholds=[2, 4]), "fma": FmaChart(3, thresholds=[2])},
        SimulationConfig(replications=3),
    )
    ledger = runner.run()
    assert ledger.count(kind="stopped") == 3 * 3
    cusum = [row.payload["run_length"] for row in ledger.iter_rows(entity="cusum")]
    assert cusum == [3, 5] * 3
    fma = [row.payload["run_length"] for row in ledger.iter_rows(entity="fma")]
    assert fma == [3] * 3
    assert all(row.namespace == Namespace.SIGNALS.value for row in ledger.iter_rows())


def test_budget_censors_running_rules():
    runner = MonteCarloRunner(
        constant(0),
        {"cusum": CusumChart(thresholds=[1])},
        SimulationConfig(replications=2, max_observations=25, block_size=10),
    )
    ledger = runner.run()
    rows = list(ledger.iter_rows())
    assert [row.payload["censored"] for row in rows] == [True, True]
    assert [row.payload["observations"] for row in rows] == [25, 25]
    assert [row.time_index for row in rows] == ["t25", "t25"]
    assert runner.get_summary()["censored_outcomes"] == 2


def test_block_and_single_generation_agree():
    def run(block_size):
        process = IidPersistentProcess(
            stats.norm(loc=-0.5), stats.norm(loc=1.0), first_under_change_index=30
        )
        runner = MonteCarloRunner(
            process,
            {"cusum": CusumChart(thresholds=[3.0, 6.0])},
            SimulationConfig(replications=1, block_size=block_size, seed=2024),
        )
        return [row.payload["run_length"] for row in runner.run().iter_rows()]

    assert run(1) == run(7)


def test_parallel_rules_write_one_event_per_cell():
    rule = ParallelStoppingTime(
        [100], [2.5, 3.5],
        vertical_statistic=Cusum(),
        horizontal_statistic=FiniteMovingAverage(4),
    )
    ledger = MonteCarloRunner(
        constant(1), {"combined": rule}, SimulationConfig(replications=1)
    ).run()
    payloads = [row.payload for row in ledger.iter_rows(entity="combined")]
    assert [(p["vertical_index"], p["horizontal_index"]) for p in payloads] == [(0, 0), (0, 1)]
    assert [p["run_length"] for p in payloads] == [3, 4]
    assert all(p["which"] == int(Trigger.HORIZONTAL) for p in payloads)


def test_existing_ledger_is_reused():
    ledger = Ledger("shared")
    runner = MonteCarloRunner(
        constant(1), {"cusum": CusumChart([0.5])}, SimulationConfig(replications=2), ledger
    )
    assert runner.run() is ledger
    assert ledger.count() == 2


def test_repeated_runs_append_distinct_replications():
    runner = MonteCarloRunner(
        constant(1), {"cusum": CusumChart([2])}, SimulationConfig(replications=2)
    )
    runner.run()
    ledger = runner.run()
    keys = [row.snapshot_id for row in ledger.iter_rows(kind="stopped")]
    assert keys == ["run-0", "run-1", "run-2", "run-3"]
    assert runner.get_summary()["completed_replications"] == 4
    assert runner.get_summary()["recorded_outcomes"] == 4

    summary = RunLengthReporter(ledger).summary().execute()
    assert summary["runs"].tolist() == [4]
    assert summary["average_run_length"].tolist() == [3.0]


def test_empty_rules():
    runner = MonteCarloRunner(constant(1), {}, SimulationConfig(replications=1))
    with pytest.raises(RuntimeError):
        runner.run()


@pytest.mark.parametrize(
    "kwargs",
    [{"replications": 0}, {"max_observations": -5}, {"block_size": 1.5}],
)
def test_invalid_config(kwargs):
    with pytest.raises(InvalidConfiguration):
        MonteCarloRunner(constant(1), {"cusum": CusumChart([1])}, SimulationConfig(**kwargs))
