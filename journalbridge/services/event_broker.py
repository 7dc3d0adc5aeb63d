"""Event broker: translates journal events, queues them and flushes batches to the remote API."""
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, List, Mapping, TypeVar
import asyncio
import threading
import time
import uuid
import structlog
from pydantic import ValidationError
from ..event_models import ApiEvent, JournalEvent, TranslationError
from ..adapters.base import TransportAdapter, TransportError
from ..adapters.memory import InMemoryTransport
from ..adapters.inara_api import InaraApiTransport
from ..compactor import apply_retention_window, compact
from ..config import Settings, get_settings
from ..metrics.collector import (
    MetricsCollector,
    collector,
    BATCHES_FAILED_TOTAL,
    BATCHES_SUBMITTED_TOTAL,
    EVENTS_COMPACTED_TOTAL,
    EVENTS_EXPIRED_TOTAL,
    EVENTS_IGNORED_TOTAL,
    EVENTS_RECEIVED_TOTAL,
    EVENTS_SKIPPED_TOTAL,
    EVENTS_TRANSLATED_TOTAL,
    QUEUE_SIZE,
    SUBMIT_LATENCY_MS,
    TRANSLATION_ERRORS_TOTAL,
)
from ..recorder import PlayerStateHistoryRecorder, ShipHistoryRecorder
from ..streaming.base import EventObserver
from ..translators import lookup_translator

log = structlog.get_logger()

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _run_coroutine(coro: Awaitable[T]) -> T:
    """Run a coroutine to completion from synchronous code."""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    # Called from inside an event loop: give the coroutine a loop of its own
    with ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, coro).result()


class EventBroker(EventObserver):
    """
    Observes the journal stream and forwards translated events in batches.

    Every registered journal event is translated and appended to an in-memory
    queue. Once the queue holds ``flush_threshold`` events a flush is handed
    to a worker pool, so the producer never waits on the network. A flush
    drains the queue atomically, compacts the drained events, drops the ones
    outside the retention window and submits the rest as one batch. Failed
    batches are logged and dropped.
    """

    def __init__(
        self,
        transport: TransportAdapter,
        recorder: PlayerStateHistoryRecorder,
        flush_threshold: int = 1,
        retention_days: int = 30,
        executor: ThreadPoolExecutor | None = None,
        clock: Callable[[], datetime] | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the broker.

        Args:
            transport: Remote API transport
            recorder: Player state history used to enrich travel events
            flush_threshold: Queue size that triggers a flush (1 flushes on every event)
            retention_days: Events older than this are not submitted
            executor: Pool that runs triggered flushes (defaults to a private pool)
            clock: Returns the current UTC time (for tests)
            metrics: Metrics collector (defaults to the global collector)
        """
        if flush_threshold < 1:
            raise ValueError("flush_threshold must be at least 1")
        self._transport = transport
        self._recorder = recorder
        self._flush_threshold = flush_threshold
        self._retention = timedelta(days=retention_days)
        self._executor = executor or ThreadPoolExecutor(thread_name_prefix="journalbridge-flush")
        self._clock = clock or _utcnow
        self._metrics = metrics or collector
        self._queue_lock = threading.Lock()
        self._queue: List[ApiEvent] = []
        self._closed = False

    # Queue

    def enqueue(self, event: ApiEvent | None) -> Future | None:
        """
        Append an event and schedule a flush if the threshold is reached.

        Args:
            event: Event to queue; None only re-checks the threshold

        Returns:
            Future of the scheduled flush, or None if no flush was scheduled
        """
        with self._queue_lock:
            if event is not None:
                self._queue.append(event)
            size = len(self._queue)
        self._metrics.gauge(QUEUE_SIZE, size)

        if size < self._flush_threshold:
            return None
        if self._closed:
            # Queued events stay put until on_completed flushes them
            log.warning("flush.schedule_failed", pending=size, reason="broker shut down")
            return None
        try:
            return self._executor.submit(self.flush)
        except RuntimeError as e:
            log.warning("flush.schedule_failed", pending=size, error=str(e))
            return None

    def pending(self) -> int:
        """Number of events waiting for the next flush."""
        with self._queue_lock:
            return len(self._queue)

    def _drain(self) -> List[ApiEvent]:
        with self._queue_lock:
            drained, self._queue = self._queue, []
        self._metrics.gauge(QUEUE_SIZE, 0)
        return drained

    # Flush pipeline

    def flush(self) -> List[ApiEvent]:
        """
        Drain the queue and submit what is left after compaction and filtering.

        Blocks the calling thread until the transport call completes or fails.

        Returns:
            The batch that was submitted (empty if nothing was left to send)
        """
        drained = self._drain()
        if not drained:
            return []

        compacted = compact(drained)
        batch = apply_retention_window(compacted, now=self._clock(), max_age=self._retention)
        self._metrics.increment(EVENTS_COMPACTED_TOTAL, len(drained) - len(compacted))
        self._metrics.increment(EVENTS_EXPIRED_TOTAL, len(compacted) - len(batch))
        if not batch:
            log.debug("flush.empty", drained=len(drained))
            return []

        with structlog.contextvars.bound_contextvars(flush_id=uuid.uuid4().hex[:12]):
            start_time = time.time()
            try:
                accepted = _run_coroutine(self._transport.submit_batch(batch))
            except TransportError as e:
                self._metrics.increment(BATCHES_FAILED_TOTAL)
                log.error("flush.failed", error=str(e), events=len(batch))
                return batch
            except Exception as e:
                self._metrics.increment(BATCHES_FAILED_TOTAL)
                log.error(
                    "flush.failed",
                    error=str(e),
                    error_type=e.__class__.__name__,
                    events=len(batch),
                    exc_info=True,
                )
                return batch
            finally:
                self._metrics.record_latency(SUBMIT_LATENCY_MS, start_time)

            if not accepted:
                self._metrics.increment(BATCHES_FAILED_TOTAL)
                log.error("flush.rejected", events=len(batch))
                return batch

            self._metrics.increment(BATCHES_SUBMITTED_TOTAL)
            log.info(
                "flush.submitted",
                events=len(batch),
                drained=len(drained),
                first=batch[0].timestamp.isoformat(),
                last=batch[-1].timestamp.isoformat(),
            )
        return batch

    # Stream observer

    def on_next(self, event: JournalEvent | Mapping[str, Any]):
        """Translate one journal record and queue the result. Never raises."""
        kind = None
        self._metrics.increment(EVENTS_RECEIVED_TOTAL)
        try:
            kind = event.kind if isinstance(event, JournalEvent) else event.get("event")
            translator = lookup_translator(kind) if isinstance(kind, str) else None
            if translator is None:
                self._metrics.increment(EVENTS_IGNORED_TOTAL)
                return

            if not isinstance(event, JournalEvent):
                event = JournalEvent.model_validate(event)
            api_event = translator(event, self._recorder)

            if api_event is None:
                self._metrics.increment(EVENTS_SKIPPED_TOTAL, labels={"journal_event": str(kind)})
                log.debug("event.skipped", journal_event=kind)
            else:
                self._metrics.increment(EVENTS_TRANSLATED_TOTAL, labels={"event_name": api_event.kind})
            self.enqueue(api_event)

        except (TranslationError, ValidationError) as e:
            self._metrics.increment(TRANSLATION_ERRORS_TOTAL, labels={"journal_event": str(kind)})
            log.error("event.translation_failed", journal_event=kind, error=str(e))
        except Exception as e:
            self._metrics.increment(TRANSLATION_ERRORS_TOTAL, labels={"journal_event": str(kind)})
            log.error(
                "event.processing_failed",
                journal_event=kind,
                error=str(e),
                error_type=e.__class__.__name__,
                exc_info=True,
            )

    def on_error(self, error: Exception):
        log.warning("stream.error", error=str(error), error_type=error.__class__.__name__)

    def on_completed(self):
        """Flush whatever is still queued before the stream goes away."""
        log.info("stream.completed", pending=self.pending())
        self.flush()

    def shutdown(self, wait: bool = True):
        """Stop the flush pool; with ``wait`` the in-flight flushes finish first."""
        self._closed = True
        self._executor.shutdown(wait=wait)


def create_default_broker(settings: Settings | None = None) -> tuple[EventBroker, ShipHistoryRecorder]:
    """
    Create a broker wired from configuration.

    Returns:
        The broker and the ship recorder it reads from. Subscribe the recorder
        to the journal stream ahead of the broker.
    """
    settings = settings or get_settings()

    transport: TransportAdapter
    if settings.TRANSPORT == "inara":
        if not settings.INARA_API_KEY or not settings.INARA_COMMANDER_NAME:
            log.warning(
                "transport.fallback",
                requested="inara",
                actual="memory",
                reason="INARA_API_KEY or INARA_COMMANDER_NAME not configured",
            )
            transport = InMemoryTransport()
        else:
            log.info("transport.selected", type="inara", url=str(settings.INARA_API_URL))
            transport = InaraApiTransport(
                api_key=settings.INARA_API_KEY,
                commander_name=settings.INARA_COMMANDER_NAME,
                url=str(settings.INARA_API_URL),
                app_name=settings.APP_NAME,
                app_version=settings.APP_VERSION,
                is_being_developed=settings.IS_BEING_DEVELOPED,
                timeout=settings.HTTP_TIMEOUT,
            )
    else:
        log.info("transport.selected", type="memory")
        transport = InMemoryTransport()

    recorder = ShipHistoryRecorder()
    broker = EventBroker(
        transport=transport,
        recorder=recorder,
        flush_threshold=settings.FLUSH_THRESHOLD,
        retention_days=settings.RETENTION_DAYS,
        executor=ThreadPoolExecutor(
            max_workers=settings.FLUSH_WORKERS,
            thread_name_prefix="journalbridge-flush",
        ),
    )
    return broker, recorder
