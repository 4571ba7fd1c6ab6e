"""
runlength.core.ledger
=====================

An append-only, in-memory ledger of typed events.

Simulations write every run length they observe as one event; reporting reads
them back. The ledger keeps its rows in a **Polars** frame (JSON-UTF8 payload
column) and exposes them to callers as an **ibis** table expression, so that
aggregations are written once as ibis expressions and executed on DuckDB.

- Automatic ``ledger_name`` and ``runlength_version`` injection
- Payload wrapping/unwrapping through ``PayloadTypeRegistry``; run-length
  payloads are checked and NumPy scalars stored as plain numbers
- No persistence: the frame lives only as long as the ledger

Examples
--------
>>> from runlength.core.ledger import Ledger
>>> from runlength.core.names import Namespace
>>> ledger = Ledger("test")
>>> ledger.write_event(
...     time_index="t7", namespace=Namespace.SIGNALS, kind="stopped",
...     experiment_id="cusum", step_key="run-0", payload_type="RunLength",
...     payload={"threshold_index": 0, "threshold": 2.5, "run_length": 7},
... )
>>> ledger.count(namespace=Namespace.SIGNALS)
1
>>> ledger.latest(kind="stopped").payload["run_length"]
7
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Mapping, Optional, Union, cast
import json
import uuid as uuid_module

import ibis
import numpy as np
import polars as pl
from ibis.expr.types import Table

from runlength.core.errors import InvalidConfiguration
from runlength.core.names import (
    PARALLEL_RUN_LENGTH_PAYLOAD,
    RUN_LENGTH_PAYLOAD,
    Namespace,
    RuleName,
    RunKey,
    TimeIndex,
)
from runlength.__version__ import __version__

# Type aliases
NamespaceLike = Union[Namespace, str]


def _namespace_str(namespace: NamespaceLike) -> str:
    return namespace.value if isinstance(namespace, Namespace) else str(namespace)


@dataclass(frozen=True)
class Row:
    """A single decoded ledger event."""

    uuid: str
    time_index: str
    ts: datetime
    namespace: str
    kind: str
    entity: str
    snapshot_id: str
    tag: Optional[str]
    payload_type: str
    payload: Any


class PayloadType(ABC):
    """Abstract base class for payload type handlers."""

    @abstractmethod
    def wrap(self, data: Any) -> str:
        """Convert data to JSON string for storage."""

    @abstractmethod
    def unwrap(self, json_str: str) -> Any:
        """Convert JSON string back to data."""


class JSONPayloadType(PayloadType):
    """Default JSON payload type handler."""

    def wrap(self, data: Any) -> str:
        return json.dumps(data, separators=(",", ":"))

    def unwrap(self, json_str: str) -> Any:
        return json.loads(json_str) if json_str else {}


class PayloadTypeRegistry:
    """Registry for payload type handlers."""

    _handlers: Dict[str, PayloadType] = {}
    _default_handler = JSONPayloadType()

    @classmethod
    def register(cls, payload_type: str, handler: PayloadType) -> None:
        """Register a payload type handler."""
        cls._handlers[payload_type] = handler

    @classmethod
    def get_handler(cls, payload_type: str) -> PayloadType:
        """Get handler for payload type, fallback to default JSON handler."""
        return cls._handlers.get(payload_type, cls._default_handler)

    @classmethod
    def wrap(cls, payload_type: str, data: Any) -> str:
        return cls.get_handler(payload_type).wrap(data)

    @classmethod
    def unwrap(cls, payload_type: str, json_str: str) -> Any:
        return cls.get_handler(payload_type).unwrap(json_str)


class RunLengthPayloadType(JSONPayloadType):
    """
    Run-length payloads: a mapping holding a non-negative ``run_length``.

    NumPy scalars (as read from a parallel rule's matrices) are stored as
    plain numbers.

    >>> import numpy as np
    >>> handler = RunLengthPayloadType()
    >>> handler.wrap({"run_length": np.int64(4), "censored": np.bool_(False)})
    '{"run_length":4,"censored":false}'
    """

    def wrap(self, data: Any) -> str:
        if not isinstance(data, Mapping):
            raise InvalidConfiguration(
                f"Run-length payload must be a mapping, got {data!r}."
            )
        record = {
            key: value.item() if isinstance(value, np.generic) else value
            for key, value in data.items()
        }
        run_length = record.get("run_length")
        valid = isinstance(run_length, int) and not isinstance(run_length, bool)
        if not valid or run_length < 0:
            raise InvalidConfiguration(
                f"Run length must be a non-negative integer, got {run_length!r}."
            )
        return super().wrap(record)


PayloadTypeRegistry.register(RUN_LENGTH_PAYLOAD, RunLengthPayloadType())
PayloadTypeRegistry.register(PARALLEL_RUN_LENGTH_PAYLOAD, RunLengthPayloadType())


class Ledger:
    """
    Polars-backed append-only ledger with an ibis query surface.

    Responsibilities:
    - Schema guarantee for the underlying frame
    - Automatic ledger_name and runlength_version injection
    - Payload wrapping/unwrapping via PayloadTypeRegistry

    Aggregations are delegated to callers through the `table` property.
    """

    _SCHEMA = {
        "uuid": pl.Utf8,
        "ledger_name": pl.Utf8,
        "time_index": pl.Utf8,
        "ts": pl.Datetime(time_unit="us", time_zone="UTC"),
        "namespace": pl.Utf8,
        "kind": pl.Utf8,
        "entity": pl.Utf8,  # rule name
        "snapshot_id": pl.Utf8,  # run key
        "tag": pl.Utf8,
        "payload_type": pl.Utf8,
        "payload": pl.Utf8,  # JSON string
        "runlength_version": pl.Utf8,
    }

    def __init__(self, ledger_name: str = "default") -> None:
        self.ledger_name = ledger_name
        self._df = pl.DataFrame(schema=cast(Any, self._SCHEMA))
        # Rows appended since the last materialization of the frame.
        self._pending: List[Dict[str, Any]] = []

    def _materialize(self) -> pl.DataFrame:
        if self._pending:
            rows = pl.DataFrame(self._pending, schema=cast(Any, self._SCHEMA))
            self._df = pl.concat([self._df, rows], how="vertical_relaxed")
            self._pending = []
        return self._df

    # ---- writers ----

    def write_event(
        self,
        *,
        time_index: Union[TimeIndex, str],
        namespace: NamespaceLike,
        kind: str,
        experiment_id: Union[RuleName, str],
        step_key: Union[RunKey, str],
        payload_type: str,
        payload: Any,
        tag: Optional[str] = None,
        ts: Optional[datetime] = None,
    ) -> None:
        """Write a typed event to the ledger.

        Parameters
        ----------
        time_index : TimeIndex or str
            Time index for the event (e.g. ``"t17"``)
        namespace : NamespaceLike
            Event namespace
        kind : str
            Event kind/type
        experiment_id : RuleName or str
            Name of the rule (or experiment) that produced the event
        step_key : RunKey or str
            Replication key within the experiment
        payload_type : str
            Type of payload for wrap/unwrap handling
        payload : Any
            Payload data to be wrapped
        tag : str, optional
            Optional tag for filtering
        ts : datetime, optional
            Timestamp, defaults to now
        """
        if ts is None:
            ts = datetime.now(timezone.utc)
        elif ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        else:
            ts = ts.astimezone(timezone.utc)

        self._pending.append(
            {
                "uuid": str(uuid_module.uuid4()),
                "ledger_name": self.ledger_name,
                "time_index": str(time_index),
                "ts": ts,
                "namespace": _namespace_str(namespace),
                "kind": kind,
                "entity": str(experiment_id),
                "snapshot_id": str(step_key),
                "tag": tag or "",
                "payload_type": payload_type,
                "payload": PayloadTypeRegistry.wrap(payload_type, payload),
                "runlength_version": __version__,
            }
        )

    # ---- readers ----

    def _filter(
        self,
        *,
        namespace: Optional[NamespaceLike] = None,
        kind: Optional[str] = None,
        entity: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> pl.DataFrame:
        q = self._materialize()
        if namespace is not None:
            q = q.filter(pl.col("namespace") == _namespace_str(namespace))
        if kind is not None:
            q = q.filter(pl.col("kind") == kind)
        if entity is not None:
            q = q.filter(pl.col("entity") == entity)
        if tag is not None:
            q = q.filter(pl.col("tag") == tag)
        return q

    @staticmethod
    def _to_row(rec: Dict[str, Any]) -> Row:
        return Row(
            uuid=rec["uuid"],
            time_index=rec["time_index"],
            ts=rec["ts"],
            namespace=rec["namespace"],
            kind=rec["kind"],
            entity=rec["entity"],
            snapshot_id=rec["snapshot_id"],
            tag=rec["tag"],
            payload_type=rec["payload_type"],
            payload=PayloadTypeRegistry.unwrap(rec["payload_type"], rec["payload"]),
        )

    def iter_rows(
        self,
        *,
        namespace: Optional[NamespaceLike] = None,
        kind: Optional[str] = None,
        entity: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> Iterator[Row]:
        """Iterate decoded rows matching the given filters, oldest first."""
        q = self._filter(namespace=namespace, kind=kind, entity=entity, tag=tag)
        for rec in q.iter_rows(named=True):
            yield self._to_row(rec)

    def latest(
        self,
        *,
        namespace: Optional[NamespaceLike] = None,
        kind: Optional[str] = None,
        entity: Optional[str] = None,
        tag: Optional[str] = None,
    ) -> Optional[Row]:
        """Return latest row for given filters (or None)."""
        q = self._filter(namespace=namespace, kind=kind, entity=entity, tag=tag)
        if q.height == 0:
            return None
        return self._to_row(q.tail(1).to_dicts()[0])

    def count(self, **filters: Any) -> int:
        return int(self._filter(**filters).height)

    # ---- frame helpers ----

    def frame(self) -> pl.DataFrame:
        """Return a copy of the underlying Polars DataFrame."""
        return self._materialize().clone()

    @property
    def table(self) -> Table:
        """
        The ledger rows as an ibis table expression.

        This is the main interface for querying - callers use this
        to build ibis expressions for filtering, aggregation, etc.

        Examples
        --------
        >>> ledger = Ledger("test_ledger")
        >>> t = ledger.table
        >>> filtered = t.filter(t.namespace == "signals")
        >>> int(filtered.count().execute())
        0
        """
        return ibis.memtable(self._materialize().to_arrow())

    def unwrap_payload(self, payload_type: str, payload_json: str) -> Any:
        """Unwrap payload using PayloadTypeRegistry."""
        return PayloadTypeRegistry.unwrap(payload_type, payload_json)

    def unwrap_results(self, df: Any) -> List[Dict[str, Any]]:
        """
        Convenience method to unwrap payloads in query results.

        Takes a pandas DataFrame from ibis query execution and
        unwraps the payload column using payload_type.
        """
        records: List[Dict[str, Any]] = df.to_dict("records")

        for record in records:
            if "payload" in record and "payload_type" in record:
                record["payload"] = self.unwrap_payload(
                    record["payload_type"], record["payload"]
                )

        return records
