"""Tests for batch compaction and the retention window."""
from datetime import datetime, timedelta, timezone
from journalbridge.compactor import COMPACTABLE_KINDS, apply_retention_window, compact
from journalbridge.event_models import ApiEvent

T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def at(minutes, kind, data=None):
    return ApiEvent(kind=kind, timestamp=T0 + timedelta(minutes=minutes), data=data)


def materials(minutes, iron):
    return at(minutes, "setCommanderInventoryMaterials", [{"itemName": "iron", "itemCount": iron}])


def test_compactable_kinds():
    """Test only snapshot kinds are compacted."""
    assert set(COMPACTABLE_KINDS) == {"setCommanderInventoryMaterials", "setCommanderGameStatistics"}


def test_compact_empty():
    """Test compacting nothing yields nothing."""
    assert compact([]) == []


def test_snapshot_kinds_keep_latest():
    """Test each snapshot kind collapses to its most recent entry."""
    events = [
        materials(5, iron=5),
        at(1, "setCommanderGameStatistics", {"n": 1}),
        materials(2, iron=2),
        at(9, "setCommanderGameStatistics", {"n": 9}),
        materials(3, iron=3),
    ]

    result = compact(events)

    assert result == [events[0], events[3]]


def test_occurrence_kinds_pass_through():
    """Test non-snapshot kinds keep every instance."""
    events = [
        at(3, "addCommanderTravelFSDJump", {"starsystemName": "C"}),
        at(1, "addCommanderTravelFSDJump", {"starsystemName": "A"}),
        at(2, "addCommanderTravelDock", {"stationName": "B"}),
        at(4, "addCommanderTravelFSDJump", {"starsystemName": "D"}),
    ]

    result = compact(events)

    assert [e.kind for e in result].count("addCommanderTravelFSDJump") == 3
    assert [e.kind for e in result].count("addCommanderTravelDock") == 1


def test_output_sorted_by_timestamp():
    """Test the output is in ascending timestamp order."""
    events = [
        at(7, "addCommanderTravelFSDJump"),
        materials(4, iron=1),
        at(1, "setCommanderCredits"),
        at(6, "addCommanderTravelDock"),
        at(2, "addCommanderTravelFSDJump"),
    ]

    result = compact(events)

    timestamps = [e.timestamp for e in result]
    assert timestamps == sorted(timestamps)
    assert [e.timestamp - T0 for e in result] == [timedelta(minutes=m) for m in (1, 2, 4, 6, 7)]


def test_compact_is_idempotent():
    """Test compacting twice is the same as compacting once."""
    events = [
        materials(8, iron=8),
        at(2, "addCommanderTravelFSDJump"),
        at(6, "setCommanderGameStatistics"),
        materials(1, iron=1),
        at(5, "addCommanderTravelDock"),
        at(3, "setCommanderGameStatistics"),
        at(9, "addCommanderTravelFSDJump"),
    ]

    once = compact(events)

    assert compact(once) == once


def test_custom_compactable_kinds():
    """Test the allow-list can be overridden."""
    events = [at(1, "setCommanderCredits"), at(2, "setCommanderCredits"), materials(3, 1), materials(4, 2)]

    result = compact(events, compactable=["setCommanderCredits"])

    assert result == [events[1], events[2], events[3]]


def test_materials_scenario():
    """Test two inventory snapshots and a jump flush as the jump plus the latest snapshot."""
    first = materials(0, iron=3)
    second = materials(10, iron=5)
    jump = at(20, "addCommanderTravelFSDJump", {"starsystemName": "Sol"})

    result = compact([first, jump, second])

    assert result == [second, jump]
    assert result[0].data == [{"itemName": "iron", "itemCount": 5}]


def test_retention_window_drops_stale_events():
    """Test events older than the window are dropped and boundary events kept."""
    now = T0 + timedelta(days=40)
    stale = at(0, "addCommanderTravelFSDJump")
    boundary = ApiEvent(kind="addCommanderTravelDock", timestamp=now - timedelta(days=30))
    fresh = ApiEvent(kind="addCommanderTravelFSDJump", timestamp=now - timedelta(days=1))

    result = apply_retention_window([stale, boundary, fresh], now=now)

    assert result == [boundary, fresh]


def test_retention_window_custom_age():
    """Test the window length can be changed."""
    now = T0 + timedelta(hours=2)
    events = [at(0, "setCommanderCredits"), at(90, "setCommanderCredits")]

    assert apply_retention_window(events, now=now, max_age=timedelta(hours=1)) == [events[1]]
