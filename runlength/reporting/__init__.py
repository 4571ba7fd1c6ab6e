"""
runlength.reporting
===================

Aggregations over the run lengths recorded in a ledger.

- `RunLengthReporter`: per-run outcomes as a Polars frame and average run
  length summaries as ibis expressions.
"""

from runlength.reporting.generic import RunLengthReporter

__all__ = ["RunLengthReporter"]
