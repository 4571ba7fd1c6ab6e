"""
runlength.core.records
======================

The minimal serialized form of statistics and stopping times.

A record is a flat JSON object carrying a ``"type"`` tag that names the
statistic or stopping time, plus its structural configuration (``"window"``,
``"thresholds"``, ...). Runtime state is never serialized. Records are dumped
with compact separators so that a round trip reproduces the exact same text.

Examples
--------
>>> from runlength.core.records import dump_record, load_record, expect_type
>>> text = dump_record({"type": "FMA", "window": 5})
>>> text
'{"type":"FMA","window":5}'
>>> record = load_record(text)
>>> expect_type(record, "FMA")
>>> expect_type(record, "CUSUM")
Traceback (most recent call last):
...
runlength.core.errors.InvalidConfiguration: Expected record of type 'CUSUM', got 'FMA'.
"""

from __future__ import annotations
import json
from typing import Any, Dict

from runlength.core.errors import InvalidConfiguration

TYPE_KEY = "type"
WINDOW_KEY = "window"
THRESHOLDS_KEY = "thresholds"
VERTICAL_THRESHOLDS_KEY = "vertical thresholds"
HORIZONTAL_THRESHOLDS_KEY = "horizontal thresholds"


def dump_record(record: Dict[str, Any]) -> str:
    """Convert a record to its compact JSON text."""
    return json.dumps(record, separators=(",", ":"))


def load_record(text: str) -> Dict[str, Any]:
    """Parse JSON text into a record, rejecting anything but an object."""
    try:
        record = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidConfiguration(f"Malformed record: {exc}") from exc
    if not isinstance(record, dict):
        raise InvalidConfiguration(f"Record must be a JSON object, got {text!r}")
    return record


def require(record: Dict[str, Any], key: str) -> Any:
    """Return a required field of ``record``."""
    if key not in record:
        raise InvalidConfiguration(f"Record is missing required key {key!r}.")
    return record[key]


def expect_type(record: Dict[str, Any], expected: str) -> None:
    """Check that the record's type tag names ``expected``."""
    actual = require(record, TYPE_KEY)
    if actual != expected:
        raise InvalidConfiguration(
            f"Expected record of type {expected!r}, got {actual!r}."
        )


def window_size_of(record: Dict[str, Any], required: bool = True) -> int:
    """Read the ``"window"`` field; absent optional windows read as 0."""
    if not required and WINDOW_KEY not in record:
        return 0
    window_size = require(record, WINDOW_KEY)
    if isinstance(window_size, bool) or not isinstance(window_size, int):
        raise InvalidConfiguration(
            f"Window size must be an integer, got {window_size!r}."
        )
    return window_size
