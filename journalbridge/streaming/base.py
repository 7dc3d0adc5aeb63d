"""Push-based inbound stream contract."""
from abc import ABC, abstractmethod
from typing import Any


class EventObserver(ABC):
    """Receives journal records one at a time from a stream."""

    @abstractmethod
    def on_next(self, event: Any):
        """
        Handle one record from the stream.

        Args:
            event: A JournalEvent or the raw decoded mapping
        """
        pass

    @abstractmethod
    def on_error(self, error: Exception):
        """Handle a stream error. The stream may continue afterwards."""
        pass

    @abstractmethod
    def on_completed(self):
        """Handle the end of the stream."""
        pass
