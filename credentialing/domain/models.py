"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in credentialing/models.py (persistence layer).
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from credentialing.domain.value_objects import (
    Capacity,
    CheckinMethod,
    EventId,
    Money,
    ParticipantId,
    StationId,
    TicketTypeId,
    Visibility,
)


@dataclass(frozen=True)
class Event:
    """Domain representation of an Event.

    ``timezone`` decides which calendar day a redemption belongs to.
    """

    id: EventId
    name: str
    timezone: str = "UTC"

    def __post_init__(self) -> None:
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {self.timezone}") from exc


@dataclass(frozen=True)
class AccessControl:
    """Redemption policy shared by every ticket of a ticket type.

    ``requires_escort`` and ``special_permissions`` are informational and
    are not enforced by the policy evaluator.
    """

    allow_multiple_entries: bool = False
    max_entries_per_day: int = 0
    valid_days: frozenset[date] = frozenset()
    access_zones: frozenset[str] = frozenset()
    requires_escort: bool = False
    special_permissions: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.max_entries_per_day < 0:
            raise ValueError("max_entries_per_day cannot be negative")


@dataclass(frozen=True)
class TicketType:
    """Domain representation of a TicketType."""

    id: TicketTypeId
    event_id: EventId
    name: str
    price: Money
    quantity_total: Capacity
    quantity_sold: Capacity = Capacity(0)
    access_control: AccessControl = field(default_factory=AccessControl)
    sale_starts_at: datetime | None = None
    sale_ends_at: datetime | None = None
    max_per_purchase: int | None = None
    visibility: Visibility = Visibility.PUBLIC
    is_active: bool = True


@dataclass(frozen=True)
class Participant:
    """A person holding one redeemable ticket.

    ``checked_in`` and ``checked_in_at`` cache ledger state and are
    never consulted when deciding a redemption.
    """

    id: ParticipantId
    event_id: EventId
    ticket_type_id: TicketTypeId
    name: str
    code: str
    email: str = ""
    phone: str = ""
    order_number: str = ""
    is_manual: bool = False
    checked_in: bool = False
    checked_in_at: datetime | None = None


@dataclass(frozen=True)
class CheckinEntry:
    """One redemption in the append-only ledger.

    ``sequence`` is assigned by the store on append and defines the
    authoritative order of a participant's entries.
    """

    participant_id: ParticipantId
    event_id: EventId
    ticket_type_id: TicketTypeId
    checked_in_at: datetime
    entry_number: int
    method: CheckinMethod = CheckinMethod.QR
    access_zone: str | None = None
    station_id: StationId | None = None
    operator_id: str | None = None
    notes: str = ""
    sequence: int | None = None

    @property
    def ticket_id(self) -> ParticipantId:
        return self.participant_id


@dataclass(frozen=True)
class AccessZone:
    """A named area of an event with optional capacity and time window."""

    code: str
    event_id: EventId
    name: str
    description: str = ""
    color: str = "#3b82f6"
    is_active: bool = True
    capacity: Capacity | None = None
    current_occupancy: int = 0
    starts_at_time: time | None = None
    ends_at_time: time | None = None
    required_ticket_types: tuple[TicketTypeId, ...] = ()


@dataclass(frozen=True)
class StationSettings:
    """Per-station preferences consumed by the operator UI."""

    sound_enabled: bool = True
    autoprint: bool = False
    require_confirmation: bool = False
    advanced_mode: bool = False
    label_template_id: str = ""
    printer_name: str = ""


@dataclass(frozen=True)
class CheckinStation:
    """A physical or logical credentialing point.

    ``checked_in_count`` is a monitoring counter. The ledger is the
    reconciliation source for audits.
    """

    id: StationId
    event_id: EventId
    name: str
    location: str = ""
    description: str = ""
    is_active: bool = True
    zone_code: str | None = None
    operator_id: str | None = None
    operator_name: str = ""
    checked_in_count: int = 0
    last_activity: datetime | None = None
    settings: StationSettings = field(default_factory=StationSettings)
