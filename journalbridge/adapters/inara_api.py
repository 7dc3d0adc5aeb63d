"""INARA API transport adapter."""
from typing import Any, Dict, List
import httpx
import orjson
import structlog
from .base import TransportAdapter, TransportError
from ..event_models import ApiEvent
from ..config import get_settings

log = structlog.get_logger()

# Header/event status codes returned by the INARA API
STATUS_OK = 200
STATUS_WARNING = 202


class InaraApiTransport(TransportAdapter):
    """Submits event batches to the INARA API as one JSON request.

    The response carries a status for the batch header and one per event.
    Events rejected individually are logged; the batch still counts as
    delivered if the header status is OK or WARNING.
    """

    def __init__(
        self,
        api_key: str | None = None,
        commander_name: str | None = None,
        url: str | None = None,
        app_name: str | None = None,
        app_version: str | None = None,
        is_being_developed: bool | None = None,
        timeout: float | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize INARA transport.

        Args:
            api_key: Commander's INARA API key (defaults to settings.INARA_API_KEY)
            commander_name: Commander name (defaults to settings.INARA_COMMANDER_NAME)
            url: API endpoint (defaults to settings.INARA_API_URL)
            app_name: Application name reported in the header
            app_version: Application version reported in the header
            is_being_developed: Marks requests as development traffic
            timeout: HTTP timeout in seconds
            http_transport: Optional httpx transport (used by tests)
        """
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.INARA_API_KEY
        self.commander_name = commander_name if commander_name is not None else settings.INARA_COMMANDER_NAME
        self.url = url or str(settings.INARA_API_URL)
        self.app_name = app_name or settings.APP_NAME
        self.app_version = app_version or settings.APP_VERSION
        self.is_being_developed = (
            is_being_developed if is_being_developed is not None else settings.IS_BEING_DEVELOPED
        )
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT
        self._http_transport = http_transport

    def build_request(self, events: List[ApiEvent]) -> Dict[str, Any]:
        """Build the INARA request envelope for a batch."""
        return {
            "header": {
                "appName": self.app_name,
                "appVersion": self.app_version,
                "isBeingDeveloped": self.is_being_developed,
                "APIkey": self.api_key,
                "commanderName": self.commander_name,
            },
            "events": [event.to_wire() for event in events],
        }

    async def submit_batch(self, events: List[ApiEvent]) -> bool:
        """
        POST the batch to the INARA API.

        Returns:
            True if the header status is OK or WARNING

        Raises:
            TransportError: On connection errors, HTTP errors or an unreadable response
        """
        body = orjson.dumps(self.build_request(events))

        # A fresh client per call: each flush runs in its own event loop
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._http_transport) as client:
                response = await client.post(
                    self.url,
                    content=body,
                    headers={"Content-Type": "application/json"},
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            log.error("inara.request_failed", error=str(e), events=len(events))
            raise TransportError(f"INARA request failed: {e}") from e

        try:
            result = orjson.loads(response.content)
            header = result["header"]
            header_status = int(header["eventStatus"])
        except (orjson.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            raise TransportError(f"unreadable INARA response: {e}") from e

        self._report_event_statuses(events, result.get("events") or [])

        if header_status not in (STATUS_OK, STATUS_WARNING):
            log.error(
                "inara.batch_rejected",
                status=header_status,
                status_text=header.get("eventStatusText"),
                events=len(events),
            )
            return False

        log.info("inara.batch_accepted", status=header_status, events=len(events))
        return True

    def _report_event_statuses(self, events: List[ApiEvent], statuses: List[Dict[str, Any]]):
        """Log every event the API did not accept. Statuses line up with the request order."""
        for event, status in zip(events, statuses):
            if not isinstance(status, dict):
                log.warning(
                    "inara.event_rejected",
                    event_name=event.kind,
                    event_timestamp=event.timestamp.isoformat(),
                    status=None,
                    status_text=f"malformed status entry: {status!r}",
                )
                continue
            code = status.get("eventStatus")
            if code == STATUS_OK:
                continue
            log.warning(
                "inara.event_rejected",
                event_name=event.kind,
                event_timestamp=event.timestamp.isoformat(),
                status=code,
                status_text=status.get("eventStatusText"),
            )
