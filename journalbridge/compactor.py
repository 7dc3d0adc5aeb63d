"""Batch compaction and retention filtering applied at flush time."""
from datetime import datetime, timedelta
from typing import Dict, Iterable, List
from .event_models import ApiEvent

# Snapshot events: only the latest one is worth sending
COMPACTABLE_KINDS = (
    "setCommanderInventoryMaterials",
    "setCommanderGameStatistics",
)

# INARA rejects events older than a month
RETENTION_WINDOW = timedelta(days=30)


def compact(events: Iterable[ApiEvent], compactable: Iterable[str] = COMPACTABLE_KINDS) -> List[ApiEvent]:
    """
    Collapse snapshot events to the most recent of each kind.

    Events are grouped by kind in order of first appearance. For kinds in
    ``compactable`` only the entry with the latest timestamp is kept (the
    last one seen wins a tie); every other kind keeps all its entries. The
    groups are then flattened in that order and stable-sorted by timestamp.

    Args:
        events: Events to compact
        compactable: Kinds to collapse

    Returns:
        Retained events in ascending timestamp order
    """
    groups: Dict[str, List[ApiEvent]] = {}
    for event in events:
        groups.setdefault(event.kind, []).append(event)

    for kind in set(compactable).intersection(groups):
        latest = groups[kind][0]
        for event in groups[kind][1:]:
            if event.timestamp >= latest.timestamp:
                latest = event
        groups[kind] = [latest]

    retained = [event for group in groups.values() for event in group]
    return sorted(retained, key=lambda e: e.timestamp)


def apply_retention_window(
    events: Iterable[ApiEvent],
    now: datetime,
    max_age: timedelta = RETENTION_WINDOW,
) -> List[ApiEvent]:
    """Drop events older than ``now - max_age``, preserving order."""
    cutoff = now - max_age
    return [event for event in events if event.timestamp >= cutoff]
