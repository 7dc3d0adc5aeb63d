"""
JournalBridge - forwards Elite Dangerous journal events to the INARA API.

Features:
- Structured logging
- Journal event translation and batching
- Compaction of snapshot events before upload
"""
import argparse
from pathlib import Path
from typing import Iterable
from .config import get_settings
from .logging import setup_logging, get_logger
from .metrics.collector import collector
from .services.event_broker import create_default_broker
from .streaming.journal import JournalReader


def replay_journals(paths: Iterable[str | Path]) -> int:
    """
    Replay journal files through a broker wired from configuration.

    Each file is a separate stream: the broker flushes at the end of every file.

    Returns:
        Total number of records delivered
    """
    settings = get_settings()
    logger = get_logger()
    broker, recorder = create_default_broker(settings)

    logger.info(
        "service_starting",
        env=settings.ENV,
        transport=settings.TRANSPORT,
        flush_threshold=settings.FLUSH_THRESHOLD,
    )
    delivered = 0
    try:
        for path in sorted(Path(p) for p in paths):
            # Recorder first: travel events look up the ship active at their timestamp
            delivered += JournalReader(path).replay(recorder, broker)
    finally:
        broker.shutdown(wait=True)
        logger.info("service_stopping", records=delivered, metrics=collector.get_metrics())
    return delivered


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Upload Elite Dangerous journal events to INARA")
    parser.add_argument("journals", nargs="+", help="Journal.*.log files to replay")
    args = parser.parse_args()

    setup_logging(json_output=get_settings().LOG_JSON)
    replay_journals(args.journals)
