"""Replays an Elite Dangerous journal file into stream observers."""
from pathlib import Path
from typing import Any, Dict, Iterator
import orjson
import structlog
from .base import EventObserver

log = structlog.get_logger()


class JournalParseError(ValueError):
    """A journal line is not a JSON object."""

    def __init__(self, path: Path, line_number: int, reason: str):
        super().__init__(f"{path}:{line_number}: {reason}")
        self.path = path
        self.line_number = line_number


class JournalReader:
    """
    Reads a newline-delimited JSON journal file.

    The game writes one JSON object per line; blank lines are ignored.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def iter_records(self) -> Iterator[Dict[str, Any] | JournalParseError]:
        """Yield each decoded record, or a JournalParseError for a line that cannot be decoded."""
        with self.path.open("rb") as fh:
            for line_number, line in enumerate(fh, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    record = orjson.loads(line)
                except orjson.JSONDecodeError as e:
                    yield JournalParseError(self.path, line_number, str(e))
                    continue
                if not isinstance(record, dict):
                    yield JournalParseError(self.path, line_number, "not a JSON object")
                    continue
                yield record

    def iter_events(self) -> Iterator[Dict[str, Any]]:
        """Yield decoded records, skipping lines that cannot be decoded."""
        for record in self.iter_records():
            if isinstance(record, JournalParseError):
                log.warning("journal.parse_failed", error=str(record))
                continue
            yield record

    def replay(self, *observers: EventObserver) -> int:
        """
        Push every record to the observers, then signal completion.

        Observers receive each record in the order they are given. Undecodable
        lines go to ``on_error`` and reading continues.

        Returns:
            Number of records delivered

        Raises:
            OSError: If the file cannot be read (reported to ``on_error`` first)
        """
        delivered = 0
        try:
            for record in self.iter_records():
                if isinstance(record, JournalParseError):
                    for observer in observers:
                        observer.on_error(record)
                    continue
                for observer in observers:
                    observer.on_next(record)
                delivered += 1
        except OSError as e:
            log.error("journal.read_failed", path=str(self.path), error=str(e))
            for observer in observers:
                observer.on_error(e)
            raise

        log.info("journal.replayed", path=str(self.path), records=delivered)
        for observer in observers:
            observer.on_completed()
        return delivered
