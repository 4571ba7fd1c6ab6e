"""
runlength.core.names
====================

Typed names shared across the package.

- `Namespace`: an Enum for well-known ledger namespaces.
- `Trigger`: which rule of a parallel stopping time fired for a given cell.
- `RuleName`, `RunKey`, `TimeIndex`: NewType wrappers for clarity.

Examples
--------
>>> from runlength.core.names import Namespace, Trigger, RuleName
>>> Namespace.SIGNALS.value
'signals'
>>> Trigger.VERTICAL | Trigger.HORIZONTAL == Trigger.BOTH
True
>>> name = RuleName("cusum"); isinstance(name, str)
True
"""

from __future__ import annotations
from enum import Enum, IntFlag
from typing import NewType


class Namespace(str, Enum):
    """Well-known ledger namespaces.

    - SIGNALS: stopping decisions (run lengths)
    """

    SIGNALS = "signals"


class Trigger(IntFlag):
    """Which statistic of a parallel stopping time caused a cell to stop."""

    NONE = 0
    VERTICAL = 1
    HORIZONTAL = 2
    BOTH = 3


# Typed aliases for logical identifiers (thin wrappers over str).
RuleName = NewType("RuleName", str)
RunKey = NewType("RunKey", str)
TimeIndex = NewType("TimeIndex", str)

# Ledger payload types and tags.
RUN_LENGTH_PAYLOAD = "RunLength"
PARALLEL_RUN_LENGTH_PAYLOAD = "ParallelRunLength"
STOPPED_KIND = "stopped"
