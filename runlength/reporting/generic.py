"""
runlength.reporting.generic
===========================

A rule-agnostic reporter over the ``"stopped"`` events of a ledger.

Outcomes of one-sided and parallel stopping times share the fields ``label``,
``run_length`` and ``censored``, so both are flattened into one frame with a
row per (rule, threshold label, replication). Summaries are ibis expressions;
call ``.execute()`` to obtain a pandas DataFrame.

Examples
--------
>>> from runlength.core.ledger import Ledger
>>> from runlength.core.names import Namespace
>>> from runlength.reporting.generic import RunLengthReporter
>>> ledger = Ledger("example")
>>> for run, (when, censored) in enumerate([(4, False), (6, False), (0, True)]):
...     ledger.write_event(
...         time_index=f"t{when}", namespace=Namespace.SIGNALS, kind="stopped",
...         experiment_id="cusum", step_key=f"run-{run}", payload_type="RunLength",
...         payload={"label": "2.0", "run_length": when, "censored": censored},
...     )
>>> rep = RunLengthReporter(ledger)
>>> summary = rep.summary().execute()
>>> summary[["rule", "threshold", "runs", "censored_runs", "average_run_length"]].values.tolist()
[['cusum', '2.0', 3, 1, 5.0]]
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, List
from dataclasses import dataclass

import ibis
import polars as pl

from runlength.core.names import STOPPED_KIND, Namespace

if TYPE_CHECKING:
    from runlength.core.ledger import Ledger

_OUTCOME_SCHEMA = {
    "rule": pl.Utf8,
    "run": pl.Utf8,
    "threshold": pl.Utf8,
    "run_length": pl.Int64,
    "censored": pl.Boolean,
}


@dataclass
class RunLengthReporter:
    """
    Run-length views of a ledger written by `MonteCarloRunner`.
    """

    ledger: "Ledger"

    def ledger_table(self) -> Any:
        """Return the underlying ledger table as ibis expression."""
        return self.ledger.table

    def unique_rules(self) -> List[str]:
        """List the rules that recorded at least one outcome."""
        table = self.ledger.table
        values = (
            table.filter(table.kind == STOPPED_KIND)
            .select(table.entity)
            .distinct()
            .execute()
        )
        return sorted(values["entity"].tolist())

    def outcomes(self) -> pl.DataFrame:
        """
        One row per recorded outcome.

        Returns
        -------
        pl.DataFrame
            Columns ``rule``, ``run``, ``threshold`` (threshold label),
            ``run_length`` and ``censored``.
        """
        records: List[Dict[str, Any]] = [
            {
                "rule": row.entity,
                "run": row.snapshot_id,
                "threshold": row.payload["label"],
                "run_length": row.payload["run_length"],
                "censored": row.payload["censored"],
            }
            for row in self.ledger.iter_rows(
                namespace=Namespace.SIGNALS, kind=STOPPED_KIND
            )
        ]
        return pl.DataFrame(records, schema=_OUTCOME_SCHEMA)

    def outcomes_table(self) -> Any:
        """The outcomes as an ibis table expression."""
        return ibis.memtable(self.outcomes().to_arrow())

    def summary(self) -> Any:
        """
        Average run length per rule and threshold.

        Returns
        -------
        ibis.Table
            Columns ``rule``, ``threshold``, ``runs``, ``censored_runs`` and
            ``average_run_length`` (mean over the uncensored runs).
        """
        t = self.outcomes_table()
        return (
            t.group_by([t.rule, t.threshold])
            .aggregate(
                runs=ibis._.count(),
                censored_runs=t.censored.cast("int64").sum(),
                average_run_length=t.run_length.mean(where=~t.censored),
            )
            .order_by(["rule", "threshold"])
        )

    def namespace_kind_counts(self) -> Any:
        """
        Return counts of events grouped by namespace and kind.

        Returns
        -------
        ibis.Table
            Table with namespace, kind, and events columns
        """
        table = self.ledger.table
        return (
            table.group_by([table.namespace, table.kind])
            .aggregate(events=ibis._.count())
            .order_by(["namespace", "kind"])
        )
