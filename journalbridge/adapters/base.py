"""Base adapter interface for remote batch transports."""
from abc import ABC, abstractmethod
from typing import List
from ..event_models import ApiEvent


class TransportError(Exception):
    """A batch could not be delivered to the remote API."""


class TransportAdapter(ABC):
    """Abstract interface for delivering event batches to the remote API."""

    @abstractmethod
    async def submit_batch(self, events: List[ApiEvent]) -> bool:
        """
        Submit a batch of events in a single remote call.

        Args:
            events: Events to submit, in the order they should be applied

        Returns:
            True if the remote API accepted the batch, False otherwise

        Raises:
            TransportError: If the call could not be completed
        """
        pass
