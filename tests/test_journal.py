"""Tests for journal file replay."""
import pytest
from unittest.mock import MagicMock
from journalbridge.streaming.base import EventObserver
from journalbridge.streaming.journal import JournalParseError, JournalReader

JOURNAL = b"""{ "timestamp":"2024-03-01T12:00:00Z", "event":"Fileheader", "part":1 }
{ "timestamp":"2024-03-01T12:00:05Z", "event":"LoadGame", "Ship":"SideWinder", "ShipID":1, "Credits":1000, "Loan":0 }

{ "timestamp":"2024-03-01T12:03:00Z", "event":"FSDJump", "StarSystem":"Sol", "JumpDist":4.2 }
"""


class RecordingObserver(EventObserver):
    def __init__(self):
        self.calls = []

    def on_next(self, event):
        self.calls.append(("next", event["event"]))

    def on_error(self, error):
        self.calls.append(("error", error))

    def on_completed(self):
        self.calls.append(("completed", None))


@pytest.fixture
def journal_file(tmp_path):
    path = tmp_path / "Journal.2024-03-01T120000.01.log"
    path.write_bytes(JOURNAL)
    return path


def test_iter_events(journal_file):
    """Test each non-blank line decodes to one record."""
    events = list(JournalReader(journal_file).iter_events())

    assert [e["event"] for e in events] == ["Fileheader", "LoadGame", "FSDJump"]
    assert events[1]["Credits"] == 1000


def test_replay_delivers_then_completes(journal_file):
    """Test replay pushes every record to each observer, then completes."""
    first, second = RecordingObserver(), RecordingObserver()

    delivered = JournalReader(journal_file).replay(first, second)

    assert delivered == 3
    expected = [("next", "Fileheader"), ("next", "LoadGame"), ("next", "FSDJump"), ("completed", None)]
    assert first.calls == expected
    assert second.calls == expected


def test_replay_observer_order():
    """Test observers see each record in subscription order."""
    seen = []
    a, b = MagicMock(spec=EventObserver), MagicMock(spec=EventObserver)
    a.on_next.side_effect = lambda e: seen.append("a")
    b.on_next.side_effect = lambda e: seen.append("b")
    reader = JournalReader("unused")
    reader.iter_records = lambda: iter([{"event": "Music"}, {"event": "Music"}])

    reader.replay(a, b)

    assert seen == ["a", "b", "a", "b"]


def test_malformed_line_reported_and_skipped(tmp_path):
    """Test an undecodable line goes to on_error and reading continues."""
    path = tmp_path / "Journal.log"
    path.write_bytes(b'{"event":"Music","timestamp":"2024-03-01T12:00:00Z"}\n{"event": truncated\n[1, 2]\n{"event":"Shutdown","timestamp":"2024-03-01T12:10:00Z"}\n')
    observer = RecordingObserver()

    delivered = JournalReader(path).replay(observer)

    assert delivered == 2
    kinds = [kind for kind, _ in observer.calls]
    assert kinds == ["next", "error", "error", "next", "completed"]
    errors = [payload for kind, payload in observer.calls if kind == "error"]
    assert all(isinstance(e, JournalParseError) for e in errors)
    assert [e.line_number for e in errors] == [2, 3]


def test_missing_file_reports_error(tmp_path):
    """Test an unreadable file is reported and re-raised without completing."""
    observer = RecordingObserver()

    with pytest.raises(OSError):
        JournalReader(tmp_path / "missing.log").replay(observer)

    assert len(observer.calls) == 1
    assert observer.calls[0][0] == "error"
