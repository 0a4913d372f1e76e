"""Domain dataclasses for salon reservations and their partial updates."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import date
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence, Type, TypeVar, Union

from infrastructure.constants import TIME_SLOTS, UNKNOWN_EDITOR
from infrastructure.store.base import StoredDocument
from reservations.errors import InvalidReservationError

_E = TypeVar("_E", bound=Enum)


class ReservationCategory(Enum):
    """Service category of a reservation."""

    HAIRCUT = "haircut"
    COLOR = "color"
    PERM = "perm"
    TREATMENT = "treatment"
    OTHER = "other"


class ReservationStatus(Enum):
    """Booking state of a slot."""

    AVAILABLE = "available"
    BOOKED = "booked"
    BLOCKED = "blocked"


def _coerce_enum(enum_cls: Type[_E], value: Union[_E, str], field_name: str) -> _E:
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise InvalidReservationError(
            f"Invalid {field_name} {value!r}; expected one of: {allowed}"
        ) from exc


def _parse_date(value: Union[date, str], field_name: str = "date") -> date:
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as exc:
        raise InvalidReservationError(f"Invalid {field_name} {value!r}; expected YYYY-MM-DD") from exc


@dataclass(frozen=True)
class Reservation:
    """A reservation document as read from the store."""

    reservation_id: str
    date: date
    time_slot: str
    content: str
    category: ReservationCategory
    status: ReservationStatus
    created_at: int
    last_modified: int
    last_edit_by: Optional[str] = None

    @property
    def editor(self) -> str:
        """Last editor, or ``"unknown"`` when the document carries none."""

        return self.last_edit_by or UNKNOWN_EDITOR

    @classmethod
    def from_document(cls, document: StoredDocument) -> "Reservation":
        data = document.data
        return cls(
            reservation_id=document.doc_id,
            date=_parse_date(data.get("date", "")),
            time_slot=str(data.get("time_slot", "")),
            content=str(data.get("content", "")),
            category=_coerce_enum(ReservationCategory, data.get("category", "other"), "category"),
            status=_coerce_enum(ReservationStatus, data.get("status", "available"), "status"),
            created_at=document.created_at,
            last_modified=document.updated_at,
            last_edit_by=data.get("last_edit_by"),
        )

    def field_value(self, name: str) -> Any:
        """Return a mutable field as a plain value (enums unwrapped)."""

        value = getattr(self, name)
        return value.value if isinstance(value, Enum) else value


@dataclass(frozen=True)
class ReservationDraft:
    """Payload for creating a reservation."""

    date: date
    time_slot: str
    content: str = ""
    category: ReservationCategory = ReservationCategory.OTHER
    status: ReservationStatus = ReservationStatus.AVAILABLE
    last_edit_by: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "date", _parse_date(self.date))
        object.__setattr__(self, "category", _coerce_enum(ReservationCategory, self.category, "category"))
        object.__setattr__(self, "status", _coerce_enum(ReservationStatus, self.status, "status"))

    def validate_slot(self, time_slots: Sequence[str] = TIME_SLOTS) -> None:
        if self.time_slot not in time_slots:
            raise InvalidReservationError(
                f"Invalid time slot {self.time_slot!r}; expected one of: {', '.join(time_slots)}"
            )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "time_slot": self.time_slot,
            "content": self.content,
            "category": self.category.value,
            "status": self.status.value,
            "last_edit_by": self.last_edit_by,
        }


@dataclass(frozen=True)
class ReservationPatch:
    """Partial update: ``None`` means "leave this field unchanged"."""

    content: Optional[str] = None
    category: Optional[ReservationCategory] = None
    status: Optional[ReservationStatus] = None
    last_edit_by: Optional[str] = None

    def __post_init__(self) -> None:
        if self.category is not None:
            object.__setattr__(self, "category", _coerce_enum(ReservationCategory, self.category, "category"))
        if self.status is not None:
            object.__setattr__(self, "status", _coerce_enum(ReservationStatus, self.status, "status"))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ReservationPatch":
        allowed = {item.name for item in fields(cls)}
        unknown = set(data) - allowed
        if unknown:
            raise InvalidReservationError(
                f"Unknown reservation fields: {', '.join(sorted(unknown))}"
            )
        return cls(**dict(data))

    def with_editor(self, editor_id: str) -> "ReservationPatch":
        return replace(self, last_edit_by=editor_id)

    def is_empty(self) -> bool:
        return not self.to_changes()

    def to_changes(self) -> Dict[str, Any]:
        """Return only the fields that are set, in storage form."""

        changes: Dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if value is None:
                continue
            changes[item.name] = value.value if isinstance(value, Enum) else value
        return changes
