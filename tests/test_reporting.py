import polars as pl
from scipy import stats

from runlength.api.run_length import (
    cusum_chart,
    estimate_run_lengths,
    fma_chart,
    window_limited_cusum_chart,
)
from runlength.core.ledger import Ledger
from runlength.core.names import Namespace
from runlength.reporting import RunLengthReporter
from runlength.runtime import MonteCarloRunner, SimulationConfig
from runlength.sequential.processes import IidProcess


def constant(value):
    return IidProcess(stats.randint(value, value + 1))


def test_outcomes_frame():
    ledger = MonteCarloRunner(
        constant(1),
        {"cusum": cusum_chart([2, 4])},
        SimulationConfig(replications=2),
    ).run()
    outcomes = RunLengthReporter(ledger).outcomes()
    assert outcomes.columns == ["rule", "run", "threshold", "run_length", "censored"]
    assert outcomes.height == 4
    assert outcomes.filter(pl.col("threshold") == "4")["run_length"].to_list() == [5, 5]


def test_summary_excludes_censored_runs_from_average():
    ledger = Ledger("summary")
    for run, (when, censored) in enumerate([(3, False), (5, False), (0, True)]):
        ledger.write_event(
            time_index=f"t{when}",
            namespace=Namespace.SIGNALS,
            kind="stopped",
            experiment_id="fma",
            step_key=f"run-{run}",
            payload_type="RunLength",
            payload={"label": "1.0", "run_length": when, "censored": censored},
        )
    summary = RunLengthReporter(ledger).summary().execute()
    row = summary.iloc[0]
    assert row["runs"] == 3
    assert row["censored_runs"] == 1
    assert row["average_run_length"] == 4.0


def test_namespace_kind_counts_and_rules():
    ledger = MonteCarloRunner(
        constant(1),
        {"b": cusum_chart([1]), "a": fma_chart(2, [1])},
        SimulationConfig(replications=3),
    ).run()
    reporter = RunLengthReporter(ledger)
    counts = reporter.namespace_kind_counts().execute()
    assert counts["events"].tolist() == [6]
    assert reporter.unique_rules() == ["a", "b"]


def test_estimate_run_lengths():
    summary = estimate_run_lengths(
        {
            "cusum": cusum_chart([2.5]),
            "wl-cusum": window_limited_cusum_chart(3, [2.5]),
        },
        constant(1),
        replications=4,
    )
    assert summary["rule"].tolist() == ["cusum", "wl-cusum"]
    assert summary["average_run_length"].tolist() == [3.0, 3.0]


def test_fma_rescaled_warm_up():
    chart = fma_chart(4, [3.5], warm_up="rescale")
    chart.observe(1.0)
    assert chart.when(0) == 1
    raw = fma_chart(4, [3.5])
    raw.observe_block([1.0, 1.0, 1.0, 1.0])
    assert raw.when(0) == 4
