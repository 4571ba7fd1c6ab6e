"""
runlength.api.run_length
========================

Control-chart and run-length facade.

Examples
--------
>>> from runlength.api.run_length import fma_chart
>>> chart = fma_chart(window_size=4, thresholds=[6.0], warm_up="rescale")
>>> chart.observe_block([2.0, 0.0])
>>> chart.when(0)
1
"""

from __future__ import annotations
from typing import Any, Iterable, Literal, Mapping, Optional

from runlength.core.errors import InvalidConfiguration
from runlength.reporting.generic import RunLengthReporter
from runlength.runtime.config import SimulationConfig
from runlength.runtime.runners import MonteCarloRunner, Rule
from runlength.sequential.processes import DiscreteProcess
from runlength.sequential.stopping_time import (
    CusumChart,
    FmaChart,
    StoppedStatisticHook,
    WindowLimitedCusumChart,
)
from runlength.sequential.transforms import WindowLimitedLinearTransform


def cusum_chart(
    thresholds: Iterable[float],
    stopped_statistic: Optional[StoppedStatisticHook] = None,
) -> CusumChart:
    """
    Create a CUSUM chart that signals once the cumulative sum exceeds each threshold.

    Parameters
    ----------
    thresholds : iterable of float
        Signalling thresholds; a run length is tracked for each of them
    stopped_statistic : callable, optional
        ``f(time, statistic)`` evaluated at every signal

    Returns
    -------
    CusumChart
        A chart ready to observe values

    Examples
    --------
    >>> chart = cusum_chart([1.5])
    >>> chart.observe_block([1.0, 1.0])
    >>> chart.when()
    [2]
    """
    return CusumChart(thresholds=thresholds, stopped_statistic=stopped_statistic)


def fma_chart(
    window_size: int,
    thresholds: Iterable[float],
    warm_up: Literal["raw", "rescale"] = "raw",
    stopped_statistic: Optional[StoppedStatisticHook] = None,
) -> FmaChart:
    """
    Create a finite moving average chart.

    Parameters
    ----------
    window_size : int
        Number of most recent observations summed by the chart
    thresholds : iterable of float
        Signalling thresholds for the window sum
    warm_up : {"raw", "rescale"}, default="raw"
        How the first ``window_size - 1`` sums are treated:
        - "raw": partial sums are compared as they are
        - "rescale": a sum over ``k`` observations is scaled by
          ``window_size / k`` so that it is comparable to a full window
    stopped_statistic : callable, optional
        ``f(time, statistic)`` evaluated at every signal
    """
    if warm_up == "raw":
        transform = None
    elif warm_up == "rescale":
        transform = WindowLimitedLinearTransform(
            scale_factors=[window_size / (k + 1) for k in range(window_size)],
            shifts=[0.0] * window_size,
        )
    else:
        raise InvalidConfiguration(f"Unknown warm-up treatment: {warm_up}")
    return FmaChart(
        window_size=window_size,
        thresholds=thresholds,
        transform=transform,
        stopped_statistic=stopped_statistic,
    )


def window_limited_cusum_chart(
    window_size: int,
    thresholds: Iterable[float],
    stopped_statistic: Optional[StoppedStatisticHook] = None,
) -> WindowLimitedCusumChart:
    """
    Create a CUSUM chart whose memory is limited to the last ``window_size``
    observations.
    """
    return WindowLimitedCusumChart(
        window_size=window_size,
        thresholds=thresholds,
        stopped_statistic=stopped_statistic,
    )


def estimate_run_lengths(
    rules: Mapping[str, Rule],
    process: DiscreteProcess,
    replications: int = 100,
    max_observations: int = 10_000,
    seed: Optional[int] = None,
    block_size: int = 1,
) -> Any:
    """
    Estimate the average run length of each chart by simulation.

    Parameters
    ----------
    rules : mapping of str to stopping time
        Named charts to run side by side on the same process
    process : DiscreteProcess
        Observation source, e.g. `IidProcess` for in-control run lengths or
        `IidPersistentProcess` for detection delays
    replications : int, default=100
        Number of simulated runs
    max_observations : int, default=10_000
        Observation budget per run; charts that have not signalled by then
        are counted as censored
    seed : int, optional
        Seed for the process random generator
    block_size : int, default=1
        Observations generated per step

    Returns
    -------
    pandas.DataFrame
        One row per chart and threshold with ``runs``, ``censored_runs`` and
        ``average_run_length`` columns
    """
    config = SimulationConfig(
        replications=replications,
        max_observations=max_observations,
        block_size=block_size,
        seed=seed,
    )
    ledger = MonteCarloRunner(process, rules, config).run()
    return RunLengthReporter(ledger).summary().execute()
