"""In-memory transport adapter."""
from typing import List
import threading
import structlog
from .base import TransportAdapter, TransportError
from ..event_models import ApiEvent

log = structlog.get_logger()


class InMemoryTransport(TransportAdapter):
    """
    Keeps submitted batches in memory instead of sending them.

    Used for dry runs and tests. ``fail`` makes every submit raise a
    TransportError; ``reject`` makes every submit return False.
    """

    def __init__(self, fail: bool = False, reject: bool = False):
        self.fail = fail
        self.reject = reject
        self._lock = threading.Lock()
        self._batches: List[List[ApiEvent]] = []

    async def submit_batch(self, events: List[ApiEvent]) -> bool:
        """Record the batch in memory."""
        if self.fail:
            raise TransportError("in-memory transport configured to fail")
        if self.reject:
            return False
        with self._lock:
            self._batches.append(list(events))
        log.info("batch.recorded", events=len(events), adapter="memory")
        return True

    @property
    def batches(self) -> List[List[ApiEvent]]:
        """Copy of all accepted batches, oldest first."""
        with self._lock:
            return [list(batch) for batch in self._batches]

    @property
    def submitted_events(self) -> List[ApiEvent]:
        with self._lock:
            return [event for batch in self._batches for event in batch]
