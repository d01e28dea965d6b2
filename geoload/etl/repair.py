"""Stitch coordinate fragments back into the location records they were split from.

Some exports emit a location's longitude or latitude as a separate
single-field record next to the location it belongs to. ``repair_locations``
walks the records once and merges those fragments (and coordinate-only
continuation records) into the nearest name-bearing record.
"""

import logging
import math
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

COORDINATE_FIELDS = ("longitude", "latitude")
NAME_FIELDS = ("restaurant_name", "address")


class RecordKind(Enum):
    FRAGMENT = "fragment"
    ANCHOR = "anchor"
    CONTINUATION = "continuation"


class RepairState(Enum):
    NO_ANCHOR = "no_anchor"
    ANCHOR_ACTIVE = "anchor_active"
    PENDING_FRAGMENT = "pending_fragment"


def _populated(value: Any) -> bool:
    """Truthiness as the exporter understood it: None, "", 0 and NaN are empty."""
    if isinstance(value, float) and math.isnan(value):
        return False
    return bool(value)


def classify_record(record: Dict[str, Any]) -> RecordKind:
    if len(record) == 1:
        (field, value), = record.items()
        if field in COORDINATE_FIELDS and _populated(value):
            return RecordKind.FRAGMENT
    if any(_populated(record.get(field)) for field in NAME_FIELDS):
        return RecordKind.ANCHOR
    return RecordKind.CONTINUATION


class _Repairer:
    def __init__(self) -> None:
        self.output: List[Dict[str, Any]] = []
        self.anchor: Optional[Dict[str, Any]] = None
        self.pending: Dict[str, Any] = {}
        self.fragments = 0
        self.merged = 0
        self.dropped = 0
        self._transitions: Dict[RecordKind, Dict[RepairState, Callable[[Dict[str, Any]], None]]] = {
            RecordKind.FRAGMENT: {
                RepairState.NO_ANCHOR: self._hold_fragment,
                RepairState.ANCHOR_ACTIVE: self._hold_fragment,
                RepairState.PENDING_FRAGMENT: self._hold_fragment,
            },
            RecordKind.ANCHOR: {
                RepairState.NO_ANCHOR: self._start_anchor,
                RepairState.ANCHOR_ACTIVE: self._start_anchor,
                RepairState.PENDING_FRAGMENT: self._start_anchor,
            },
            RecordKind.CONTINUATION: {
                RepairState.NO_ANCHOR: self._drop,
                RepairState.ANCHOR_ACTIVE: self._continue_anchor,
                RepairState.PENDING_FRAGMENT: self._continue_or_drop,
            },
        }

    @property
    def state(self) -> RepairState:
        if self.pending:
            return RepairState.PENDING_FRAGMENT
        if self.anchor is not None:
            return RepairState.ANCHOR_ACTIVE
        return RepairState.NO_ANCHOR

    def feed(self, record: Dict[str, Any]) -> None:
        if not isinstance(record, dict):
            logger.warning("Dropping non-object entry: %r", record)
            self._drop(record)
            return
        kind = classify_record(record)
        self._transitions[kind][self.state](record)

    def _hold_fragment(self, record: Dict[str, Any]) -> None:
        # Last fragment of an axis wins.
        self.pending.update(record)
        self.fragments += 1

    def _start_anchor(self, record: Dict[str, Any]) -> None:
        anchor = dict(record)
        for field in COORDINATE_FIELDS:
            if field in self.pending and not _populated(anchor.get(field)):
                anchor[field] = self.pending.pop(field)
        self.output.append(anchor)
        self.anchor = anchor

    def _continue_anchor(self, record: Dict[str, Any]) -> None:
        for field in COORDINATE_FIELDS:
            value = record.get(field)
            if _populated(value) and not _populated(self.anchor.get(field)):
                self.anchor[field] = value
        self.merged += 1

    def _continue_or_drop(self, record: Dict[str, Any]) -> None:
        if self.anchor is None:
            self._drop(record)
        else:
            self._continue_anchor(record)

    def _drop(self, record: Dict[str, Any]) -> None:
        self.dropped += 1


def repair_locations(records: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Merge orphaned coordinate fragments into adjacent location records.

    Order of first appearance is preserved and fragments never reach the
    output. Input records are not mutated. A fragment still pending when the
    stream ends is discarded.
    """
    repairer = _Repairer()
    for record in records:
        repairer.feed(record)

    logger.debug(
        "Repair finished: %d kept, %d fragments, %d continuations merged, %d dropped, %d pending discarded",
        len(repairer.output),
        repairer.fragments,
        repairer.merged,
        repairer.dropped,
        len(repairer.pending),
    )
    return repairer.output
