"""
runlength — a package for simulating and operating sequential detection rules.

Sequential change-point detection boils down to one question: after how many
observations does a detection statistic first exceed its threshold? The
answer, the *run length*, is random, and its distribution under "no-change"
and "under-change" regimes is what characterizes a monitoring rule.

runlength centers on that quantity. Statistics (CUSUM, finite moving average,
window-limited CUSUM) turn observations into detection values; stopping times
turn detection values into per-threshold crossing times, sweeping an entire
sorted threshold grid in a single pass; processes generate observations and
fan them out to any number of stopping times; the runtime repeats the
experiment many times and appends every run length to a ledger that reporting
tools aggregate into average run lengths.

Example
-------
>>> import runlength
>>> assert hasattr(runlength, "core")
>>> assert hasattr(runlength, "sequential")
"""

from runlength import core, sequential
from runlength.__version__ import __version__

__all__ = ["core", "sequential", "__version__"]
