from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime, timezone
from typing import Any, Dict


class TranslationError(Exception):
    """A journal event had a field of unexpected shape and could not be translated."""


def parse_timestamp(value: Any) -> datetime:
    """Parse a journal timestamp ("2017-10-12T12:00:00Z") into an aware UTC datetime."""
    if not isinstance(value, str):
        raise TranslationError(f"timestamp must be a string, got {type(value).__name__}")
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError as e:
        raise TranslationError(f"invalid timestamp {value!r}") from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class JournalEvent(BaseModel):
    """One journal record. Only ``event`` and ``timestamp`` are guaranteed."""
    model_config = ConfigDict(extra="allow", frozen=True)

    event: str = Field(..., description="Journal event kind")
    timestamp: str = Field(..., description="ISO-8601 UTC timestamp as written by the game")

    @property
    def kind(self) -> str:
        return self.event

    def get(self, name: str, default: Any = None) -> Any:
        """Read an attribute by its journal name; absent or null attributes yield ``default``."""
        if name in type(self).model_fields:
            value = getattr(self, name)
        else:
            value = (self.model_extra or {}).get(name)
        return default if value is None else value

    def parsed_timestamp(self) -> datetime:
        return parse_timestamp(self.timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()


class ApiEvent(BaseModel):
    """Normalized INARA API event."""
    model_config = ConfigDict(frozen=True)

    kind: str = Field(..., description="INARA eventName")
    timestamp: datetime
    data: Any = None

    @field_validator("timestamp")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    def to_wire(self) -> Dict[str, Any]:
        return {
            "eventName": self.kind,
            "eventTimestamp": self.timestamp.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "eventData": self.data,
        }
