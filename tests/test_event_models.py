"""Tests for journal and API event models."""
import pytest
from datetime import datetime, timedelta, timezone
from pydantic import ValidationError
from journalbridge.event_models import ApiEvent, JournalEvent, TranslationError, parse_timestamp


def test_journal_event_requires_kind_and_timestamp():
    """Test event and timestamp are mandatory."""
    with pytest.raises(ValidationError):
        JournalEvent.model_validate({"timestamp": "2024-03-01T12:00:00Z"})
    with pytest.raises(ValidationError):
        JournalEvent.model_validate({"event": "Docked"})


def test_journal_event_field_access():
    """Test extra fields are read on demand and absent ones yield the default."""
    event = JournalEvent.model_validate(
        {"event": "Docked", "timestamp": "2024-03-01T12:00:00Z", "StarSystem": "Sol", "MarketID": None}
    )

    assert event.kind == "Docked"
    assert event.get("StarSystem") == "Sol"
    assert event.get("StationName") is None
    assert event.get("MarketID", 0) == 0
    assert event.get("event") == "Docked"


def test_parse_timestamp_variants():
    """Test Z suffix, offsets and naive timestamps all become UTC."""
    expected = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    assert parse_timestamp("2024-03-01T12:00:00Z") == expected
    assert parse_timestamp("2024-03-01T14:00:00+02:00") == expected
    assert parse_timestamp("2024-03-01T12:00:00") == expected
    assert parse_timestamp("2024-03-01T12:00:00Z").tzinfo == timezone.utc


@pytest.mark.parametrize("value", ["", "tomorrow", None, 1709294400])
def test_parse_timestamp_rejects_garbage(value):
    """Test unparseable timestamps raise TranslationError."""
    with pytest.raises(TranslationError):
        parse_timestamp(value)


def test_api_event_coerces_to_utc():
    """Test naive and offset timestamps are normalized to UTC."""
    naive = ApiEvent(kind="setCommanderCredits", timestamp=datetime(2024, 3, 1, 12, 0))
    offset = ApiEvent(
        kind="setCommanderCredits",
        timestamp=datetime(2024, 3, 1, 13, 0, tzinfo=timezone(timedelta(hours=1))),
    )

    assert naive.timestamp == offset.timestamp
    assert offset.timestamp.tzinfo == timezone.utc


def test_api_event_is_immutable():
    """Test API events cannot be modified after creation."""
    event = ApiEvent(kind="setCommanderCredits", timestamp=datetime(2024, 3, 1, tzinfo=timezone.utc))

    with pytest.raises(ValidationError):
        event.kind = "other"


def test_api_event_wire_format():
    """Test the wire format uses INARA field names."""
    event = ApiEvent(
        kind="setCommanderRankEngineer",
        timestamp=datetime(2024, 3, 1, 12, 0, 30, 123456, tzinfo=timezone.utc),
        data={"engineerName": "Felicity Farseer", "rankValue": None},
    )

    assert event.to_wire() == {
        "eventName": "setCommanderRankEngineer",
        "eventTimestamp": "2024-03-01T12:00:30Z",
        "eventData": {"engineerName": "Felicity Farseer", "rankValue": None},
    }
