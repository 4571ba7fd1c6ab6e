"""
runlength.api - User-Friendly Facade
====================================

This module provides an off-the-shelf usage interface for this package,
organized by what a quality engineer wants to do: set up a control chart,
and estimate how long it runs before signalling.
In terms of the design patterns, this is the facade pattern.

Examples
--------
>>> from scipy import stats
>>> from runlength.api.run_length import cusum_chart, estimate_run_lengths
>>> from runlength.sequential.processes import IidProcess
>>>
>>> summary = estimate_run_lengths(
...     {"cusum": cusum_chart([2.0, 4.0])},
...     IidProcess(stats.norm(loc=1.0)),
...     replications=20, seed=3,
... )
>>> summary["runs"].tolist()
[20, 20]

Unified Interface
-----------------
All functionality is consolidated in `runlength.api.run_length`:
- `cusum_chart()`: CUSUM chart over a set of thresholds
- `fma_chart()`: finite moving average chart, optionally rescaled during warm-up
- `window_limited_cusum_chart()`: CUSUM restricted to a trailing window
- `estimate_run_lengths()`: Monte Carlo average run lengths of named charts

Architecture
------------
This facade delegates to the underlying framework components:
- runlength.sequential: statistics, stopping times and processes
- runlength.runtime: the Monte Carlo runner
- runlength.reporting: run-length summaries
"""
