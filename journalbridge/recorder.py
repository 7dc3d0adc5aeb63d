"""Player state history: which ship was active at a given instant."""
from abc import ABC, abstractmethod
from bisect import bisect_right
from datetime import datetime
from typing import Any, Mapping, NamedTuple
import threading
import structlog
from pydantic import ValidationError
from .event_models import JournalEvent, TranslationError
from .streaming.base import EventObserver

log = structlog.get_logger()


class PlayerStateHistoryRecorder(ABC):
    """Read-only view over historical player state."""

    @abstractmethod
    def ship_id_at(self, instant: datetime) -> int | None:
        """
        Return the game ID of the ship the commander flew at ``instant``.

        Args:
            instant: Aware UTC datetime to query

        Returns:
            Ship ID, or None if no ship is known for that instant
        """

    @abstractmethod
    def ship_type_at(self, instant: datetime) -> str | None:
        """Return the ship type (e.g. ``"sidewinder"``) active at ``instant``, or None."""


class ShipRecord(NamedTuple):
    since: datetime
    ship_id: int | None
    ship_type: str | None


# journal event -> (ship id field, ship type field)
_SHIP_FIELDS = {
    "LoadGame": ("ShipID", "Ship"),
    "Loadout": ("ShipID", "Ship"),
    "ShipyardSwap": ("ShipID", "ShipType"),
    "ShipyardNew": ("NewShipID", "ShipType"),
}


class ShipHistoryRecorder(PlayerStateHistoryRecorder, EventObserver):
    """
    Records ship changes seen on the journal stream.

    Subscribe it to the same stream as the broker, ahead of it, so that
    lookups for an event's timestamp see every change up to that event.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._history: list[ShipRecord] = []

    def record(self, since: datetime, ship_id: int | None, ship_type: str | None):
        """Record that the given ship became active at ``since``."""
        entry = ShipRecord(since, ship_id, ship_type)
        with self._lock:
            idx = bisect_right([r.since for r in self._history], since)
            self._history.insert(idx, entry)
        log.debug("recorder.ship_changed", ship_id=ship_id, ship_type=ship_type, since=since.isoformat())

    def _at(self, instant: datetime) -> ShipRecord | None:
        with self._lock:
            idx = bisect_right([r.since for r in self._history], instant)
            return self._history[idx - 1] if idx else None

    def ship_id_at(self, instant: datetime) -> int | None:
        entry = self._at(instant)
        return entry.ship_id if entry else None

    def ship_type_at(self, instant: datetime) -> str | None:
        entry = self._at(instant)
        return entry.ship_type if entry else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._history)

    def on_next(self, event: JournalEvent | Mapping[str, Any]):
        kind = event.kind if isinstance(event, JournalEvent) else event.get("event")
        fields = _SHIP_FIELDS.get(kind)
        if fields is None:
            return
        id_field, type_field = fields
        try:
            if not isinstance(event, JournalEvent):
                event = JournalEvent.model_validate(event)
            since = event.parsed_timestamp()
            ship_id = event.get(id_field)
            ship_id = int(ship_id) if ship_id is not None else None
        except (TranslationError, ValidationError, TypeError, ValueError) as e:
            log.warning("recorder.invalid_event", journal_event=kind, error=str(e))
            return
        ship_type = event.get(type_field)
        self.record(since, ship_id, str(ship_type).lower() if ship_type is not None else None)

    def on_error(self, error: Exception):
        log.debug("recorder.stream_error", error=str(error), error_type=error.__class__.__name__)

    def on_completed(self):
        log.debug("recorder.stream_completed", entries=len(self))
