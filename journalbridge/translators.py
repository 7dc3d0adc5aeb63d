"""
Journal event -> INARA API event translators.

Each translator takes a journal record and the player state recorder and
returns an ApiEvent, or None when the record lacks the context the INARA
event needs (a deliberate skip, not an error). Malformed fields raise
TranslationError. Journal kinds without an entry in TRANSLATORS are ignored.
"""
from typing import Any, Callable, Dict
from .event_models import ApiEvent, JournalEvent, TranslationError
from .recorder import PlayerStateHistoryRecorder

Translator = Callable[[JournalEvent, PlayerStateHistoryRecorder], ApiEvent | None]


def _require(event: JournalEvent, field: str) -> Any:
    value = event.get(field)
    if value is None:
        raise TranslationError(f"{event.kind}: missing required field {field!r}")
    return value


def _require_str(event: JournalEvent, field: str) -> str:
    return str(_require(event, field))


def _optional_str(event: JournalEvent, field: str) -> str | None:
    value = event.get(field)
    return None if value is None else str(value)


def _to_int(event: JournalEvent, field: str, value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, float):
        if not value.is_integer():
            raise TranslationError(f"{event.kind}: {field}={value!r} is not an integer")
        return int(value)
    try:
        return int(str(value).strip())
    except ValueError as e:
        raise TranslationError(f"{event.kind}: {field}={value!r} is not an integer") from e


def _optional_int(event: JournalEvent, field: str) -> int | None:
    value = event.get(field)
    return None if value is None else _to_int(event, field, value)


def _require_float(event: JournalEvent, field: str) -> float:
    value = _require(event, field)
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise TranslationError(f"{event.kind}: {field}={value!r} is not a number") from e


def _optional_bool(event: JournalEvent, field: str) -> bool | None:
    value = event.get(field)
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    if isinstance(value, str) and value.lower() in ("true", "false"):
        return value.lower() == "true"
    raise TranslationError(f"{event.kind}: {field}={value!r} is not a boolean")


def _ship_fields(event: JournalEvent, recorder: PlayerStateHistoryRecorder) -> Dict[str, Any]:
    timestamp = event.parsed_timestamp()
    return {
        "shipGameID": recorder.ship_id_at(timestamp),
        "shipType": recorder.ship_type_at(timestamp),
    }


# Generic

def to_commander_credits(event: JournalEvent, recorder: PlayerStateHistoryRecorder) -> ApiEvent:
    return ApiEvent(
        kind="setCommanderCredits",
        timestamp=event.parsed_timestamp(),
        data={
            "commanderCredits": _optional_int(event, "Credits"),
            "commanderLoan": _optional_int(event, "Loan"),
        },
    )


def to_materials_inventory(event: JournalEvent, recorder: PlayerStateHistoryRecorder) -> ApiEvent:
    raw = _require(event, "Raw")
    if not isinstance(raw, list):
        raise TranslationError(f"{event.kind}: 'Raw' must be a list")

    counts: Dict[str, int] = {}
    for item in raw:
        if not isinstance(item, dict) or item.get("Name") is None:
            raise TranslationError(f"{event.kind}: malformed material entry {item!r}")
        name = str(item["Name"])
        if name in counts:
            raise TranslationError(f"{event.kind}: duplicate material {name!r}")
        count = item.get("Count")
        try:
            counts[name] = int(str(count))
        except ValueError as e:
            raise TranslationError(f"{event.kind}: {name} count {count!r} is not an integer") from e

    return ApiEvent(
        kind="setCommanderInventoryMaterials",
        timestamp=event.parsed_timestamp(),
        data=[{"itemName": name, "itemCount": count} for name, count in counts.items()],
    )


def to_game_statistics(event: JournalEvent, recorder: PlayerStateHistoryRecorder) -> ApiEvent:
    return ApiEvent(
        kind="setCommanderGameStatistics",
        timestamp=event.parsed_timestamp(),
        data=event.to_dict(),
    )


# Travel

def to_fsd_jump(event: JournalEvent, recorder: PlayerStateHistoryRecorder) -> ApiEvent:
    return ApiEvent(
        kind="addCommanderTravelFSDJump",
        timestamp=event.parsed_timestamp(),
        data={
            "starsystemName": _require_str(event, "StarSystem"),
            "jumpDistance": _require_float(event, "JumpDist"),
            **_ship_fields(event, recorder),
        },
    )


def to_dock(event: JournalEvent, recorder: PlayerStateHistoryRecorder) -> ApiEvent:
    return ApiEvent(
        kind="addCommanderTravelDock",
        timestamp=event.parsed_timestamp(),
        data={
            "starsystemName": _require_str(event, "StarSystem"),
            "stationName": _require_str(event, "StationName"),
            "marketID": _optional_int(event, "MarketID"),
            **_ship_fields(event, recorder),
        },
    )


# Engineers

def to_engineer_rank(event: JournalEvent, recorder: PlayerStateHistoryRecorder) -> ApiEvent:
    return ApiEvent(
        kind="setCommanderRankEngineer",
        timestamp=event.parsed_timestamp(),
        data={
            "engineerName": _require_str(event, "Engineer"),
            "rankStage": _optional_str(event, "Progress"),
            "rankValue": _optional_int(event, "Rank"),
        },
    )


# Combat

INTERDICTION_EVENTS = {
    "Interdicted": "addCommanderCombatInterdicted",
    "Interdiction": "addCommanderCombatInterdiction",
    "EscapeInterdiction": "addCommanderCombatInterdictionEscape",
}

# Checked in order; the first present field names the opponent
OPPONENT_FIELDS = ("Interdicted", "Interdictor")


def to_interdiction(event: JournalEvent, recorder: PlayerStateHistoryRecorder) -> ApiEvent | None:
    kind = INTERDICTION_EVENTS.get(event.kind)
    if kind is None:
        raise TranslationError(f"not an interdiction event: {event.kind!r}")

    star_system = event.get("StarSystem")
    if star_system is None:
        return None

    opponent = next(
        (event.get(field) for field in OPPONENT_FIELDS if event.get(field) is not None),
        "Unknown",
    )
    return ApiEvent(
        kind=kind,
        timestamp=event.parsed_timestamp(),
        data={
            "starsystemName": str(star_system),
            "opponentName": str(opponent),
            "isPlayer": _optional_bool(event, "IsPlayer"),
            "isSuccess": _optional_bool(event, "Success"),
        },
    )


TRANSLATORS: Dict[str, Translator] = {
    "LoadGame": to_commander_credits,
    "Materials": to_materials_inventory,
    "Statistics": to_game_statistics,
    "FSDJump": to_fsd_jump,
    "Docked": to_dock,
    "EngineerProgress": to_engineer_rank,
    **{name: to_interdiction for name in INTERDICTION_EVENTS},
}


def lookup_translator(kind: str) -> Translator | None:
    """Return the translator registered for a journal kind, or None if the kind is not forwarded."""
    return TRANSLATORS.get(kind)


def translate(event: JournalEvent, recorder: PlayerStateHistoryRecorder) -> ApiEvent | None:
    """
    Translate a journal event.

    Returns:
        The ApiEvent, or None if the kind is unregistered or the translator skipped it

    Raises:
        TranslationError: If the event has a malformed field
    """
    translator = lookup_translator(event.kind)
    if translator is None:
        return None
    return translator(event, recorder)
