"""Django ORM implementation of the stores.

A redemption holds a row lock on the participant (``SELECT ... FOR
UPDATE``) for the whole read-evaluate-append sequence, so two stations
scanning the same ticket are serialized while different tickets proceed
in parallel. On PostgreSQL the wait is bounded with ``lock_timeout``;
SQLite serializes writers itself and reports contention as "database is
locked".
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime

from django.db import (
    DatabaseError,
    IntegrityError,
    OperationalError,
    connection,
    transaction,
)
from django.db.models import F

from credentialing import models as orm
from credentialing.domain import (
    AccessControl,
    AccessZone,
    Capacity,
    CheckinEntry,
    CheckinMethod,
    CheckinStation,
    Event,
    EventId,
    Money,
    Participant,
    ParticipantId,
    StationId,
    StationSettings,
    TicketType,
    TicketTypeId,
    Visibility,
)
from credentialing.domain.errors import (
    BusyError,
    DuplicateZoneError,
    PersistenceFailureError,
    UnknownCodeError,
)
from credentialing.stores.interfaces import CheckinStore, RedemptionUnit, RegistryStore

logger = logging.getLogger(__name__)

# PostgreSQL SQLSTATE for lock_not_available
_LOCK_NOT_AVAILABLE = "55P03"


def _is_lock_contention(exc: DatabaseError) -> bool:
    cause = exc.__cause__
    sqlstate = getattr(cause, "pgcode", None) or getattr(cause, "sqlstate", None)
    if sqlstate == _LOCK_NOT_AVAILABLE:
        return True
    return isinstance(exc, OperationalError) and "locked" in str(exc).lower()


def _set_lock_timeout(timeout: float) -> None:
    if connection.vendor != "postgresql":
        return
    with connection.cursor() as cursor:
        cursor.execute(
            "SELECT set_config('lock_timeout', %s, true)",
            [f"{max(int(timeout * 1000), 1)}ms"],
        )


def _event_to_domain(row: orm.Event) -> Event:
    return Event(id=EventId(row.id), name=row.name, timezone=row.timezone)


def _access_control_to_domain(row: orm.TicketType) -> AccessControl:
    return AccessControl(
        allow_multiple_entries=row.allow_multiple_entries,
        max_entries_per_day=row.max_entries_per_day,
        valid_days=frozenset(date.fromisoformat(day) for day in row.valid_days),
        access_zones=frozenset(row.access_zones),
        requires_escort=row.requires_escort,
        special_permissions=tuple(row.special_permissions),
    )


def _ticket_type_to_domain(row: orm.TicketType) -> TicketType:
    return TicketType(
        id=TicketTypeId(row.id),
        event_id=EventId(row.event_id),
        name=row.name,
        price=Money(row.price),
        quantity_total=Capacity(row.quantity_total),
        quantity_sold=Capacity(row.quantity_sold),
        access_control=_access_control_to_domain(row),
        sale_starts_at=row.sale_starts_at,
        sale_ends_at=row.sale_ends_at,
        max_per_purchase=row.max_per_purchase,
        visibility=Visibility(row.visibility),
        is_active=row.is_active,
    )


def _participant_to_domain(row: orm.Participant) -> Participant:
    return Participant(
        id=ParticipantId(row.id),
        event_id=EventId(row.event_id),
        ticket_type_id=TicketTypeId(row.ticket_type_id),
        name=row.name,
        code=row.code,
        email=row.email,
        phone=row.phone,
        order_number=row.order_number,
        is_manual=row.is_manual,
        checked_in=row.checked_in,
        checked_in_at=row.checked_in_at,
    )


def _entry_to_domain(row: orm.CheckinEntry) -> CheckinEntry:
    return CheckinEntry(
        participant_id=ParticipantId(row.participant_id),
        event_id=EventId(row.event_id),
        ticket_type_id=TicketTypeId(row.ticket_type_id),
        checked_in_at=row.checked_in_at,
        entry_number=row.entry_number,
        method=CheckinMethod(row.method),
        access_zone=row.access_zone or None,
        station_id=StationId(row.station_id) if row.station_id else None,
        operator_id=row.operator_id or None,
        notes=row.notes,
        sequence=row.id,
    )


def _station_to_domain(row: orm.CheckinStation) -> CheckinStation:
    return CheckinStation(
        id=StationId(row.id),
        event_id=EventId(row.event_id),
        name=row.name,
        location=row.location,
        description=row.description,
        is_active=row.is_active,
        zone_code=row.zone_code or None,
        operator_id=row.operator_id or None,
        operator_name=row.operator_name,
        checked_in_count=row.checked_in_count,
        last_activity=row.last_activity,
        settings=StationSettings(
            sound_enabled=row.sound_enabled,
            autoprint=row.autoprint,
            require_confirmation=row.require_confirmation,
            advanced_mode=row.advanced_mode,
            label_template_id=row.label_template_id,
            printer_name=row.printer_name,
        ),
    )


def _zone_to_domain(row: orm.AccessZone) -> AccessZone:
    return AccessZone(
        code=row.code,
        event_id=EventId(row.event_id),
        name=row.name,
        description=row.description,
        color=row.color,
        is_active=row.is_active,
        capacity=Capacity(row.capacity) if row.capacity is not None else None,
        current_occupancy=row.current_occupancy,
        starts_at_time=row.starts_at_time,
        ends_at_time=row.ends_at_time,
        required_ticket_types=tuple(
            TicketTypeId.from_string(value) for value in row.required_ticket_types
        ),
    )


def _station_fields(station: CheckinStation) -> dict:
    """Writable station columns, excluding the activity counter."""
    return {
        "name": station.name,
        "location": station.location,
        "description": station.description,
        "is_active": station.is_active,
        "zone_code": station.zone_code or "",
        "operator_id": station.operator_id or "",
        "operator_name": station.operator_name,
        "sound_enabled": station.settings.sound_enabled,
        "autoprint": station.settings.autoprint,
        "require_confirmation": station.settings.require_confirmation,
        "advanced_mode": station.settings.advanced_mode,
        "label_template_id": station.settings.label_template_id,
        "printer_name": station.settings.printer_name,
    }


def _zone_fields(zone: AccessZone) -> dict:
    return {
        "name": zone.name,
        "description": zone.description,
        "color": zone.color,
        "is_active": zone.is_active,
        "capacity": zone.capacity.value if zone.capacity is not None else None,
        "current_occupancy": zone.current_occupancy,
        "starts_at_time": zone.starts_at_time,
        "ends_at_time": zone.ends_at_time,
        "required_ticket_types": [str(t) for t in zone.required_ticket_types],
    }


class _DjangoRedemptionUnit(RedemptionUnit):
    def __init__(self, participant: orm.Participant) -> None:
        self._participant = participant

    def history(self) -> list[CheckinEntry]:
        rows = orm.CheckinEntry.objects.filter(
            event_id=self._participant.event_id,
            participant_id=self._participant.id,
        ).order_by("id")
        return [_entry_to_domain(row) for row in rows]

    def append(self, entry: CheckinEntry) -> CheckinEntry:
        try:
            row = orm.CheckinEntry.objects.create(
                participant_id=entry.participant_id.value,
                event_id=entry.event_id.value,
                ticket_type_id=entry.ticket_type_id.value,
                checked_in_at=entry.checked_in_at,
                entry_number=entry.entry_number,
                access_zone=entry.access_zone or "",
                station_id=entry.station_id.value if entry.station_id else None,
                operator_id=entry.operator_id or "",
                method=entry.method.value,
                notes=entry.notes,
            )
        except IntegrityError as exc:
            # Another writer took this entry number first
            raise BusyError(str(entry.participant_id)) from exc
        return replace(entry, sequence=row.id)

    def mark_checked_in(self, at: datetime) -> None:
        orm.Participant.objects.filter(pk=self._participant.pk).update(
            checked_in=True, checked_in_at=at
        )


class DjangoCheckinStore(CheckinStore):
    """Database-backed participants and ledger using Django ORM."""

    def get_event(self, event_id: EventId) -> Event | None:
        row = orm.Event.objects.filter(pk=event_id.value).first()
        return _event_to_domain(row) if row else None

    def find_participant_and_ticket_type(
        self, code: str, event_id: EventId
    ) -> tuple[Participant, TicketType] | None:
        row = (
            orm.Participant.objects.select_related("ticket_type")
            .filter(event_id=event_id.value, code=code)
            .order_by("-is_manual")
            .first()
        )
        if row is None:
            return None
        return _participant_to_domain(row), _ticket_type_to_domain(row.ticket_type)

    def list_participants(self, event_id: EventId) -> list[Participant]:
        rows = orm.Participant.objects.filter(event_id=event_id.value)
        return [_participant_to_domain(row) for row in rows]

    def get_participant(self, participant_id: ParticipantId) -> Participant | None:
        row = orm.Participant.objects.filter(pk=participant_id.value).first()
        return _participant_to_domain(row) if row else None

    @contextmanager
    def redemption(
        self, event_id: EventId, participant_id: ParticipantId, timeout: float
    ) -> Iterator[RedemptionUnit]:
        try:
            with transaction.atomic():
                _set_lock_timeout(timeout)
                try:
                    row = orm.Participant.objects.select_for_update().get(
                        pk=participant_id.value, event_id=event_id.value
                    )
                except orm.Participant.DoesNotExist as exc:
                    raise UnknownCodeError(str(participant_id)) from exc
                yield _DjangoRedemptionUnit(row)
        except DatabaseError as exc:
            if _is_lock_contention(exc):
                raise BusyError(str(participant_id)) from exc
            logger.exception(
                "Ledger commit failed",
                extra={
                    "event_id": str(event_id),
                    "participant_id": str(participant_id),
                },
            )
            raise PersistenceFailureError() from exc

    def query_history(
        self, event_id: EventId, participant_id: ParticipantId | None = None
    ) -> list[CheckinEntry]:
        rows = orm.CheckinEntry.objects.filter(event_id=event_id.value)
        if participant_id is not None:
            rows = rows.filter(participant_id=participant_id.value)
        return [_entry_to_domain(row) for row in rows.order_by("-id")]

    def set_checked_in(
        self, participant_id: ParticipantId, checked_in: bool, at: datetime | None
    ) -> None:
        orm.Participant.objects.filter(pk=participant_id.value).update(
            checked_in=checked_in, checked_in_at=at
        )


class DjangoRegistryStore(RegistryStore):
    """Database-backed stations, zones and ticket policies using Django ORM."""

    def add_station(self, station: CheckinStation) -> CheckinStation:
        row = orm.CheckinStation.objects.create(
            id=station.id.value,
            event_id=station.event_id.value,
            **_station_fields(station),
        )
        return _station_to_domain(row)

    def save_station(self, station: CheckinStation) -> CheckinStation:
        row = orm.CheckinStation.objects.get(pk=station.id.value)
        fields = _station_fields(station)
        for name, value in fields.items():
            setattr(row, name, value)
        row.save(update_fields=[*fields, "updated_at"])
        return _station_to_domain(row)

    def get_station(self, station_id: StationId) -> CheckinStation | None:
        row = orm.CheckinStation.objects.filter(pk=station_id.value).first()
        return _station_to_domain(row) if row else None

    def list_stations(self, event_id: EventId) -> list[CheckinStation]:
        rows = orm.CheckinStation.objects.filter(event_id=event_id.value)
        return [_station_to_domain(row) for row in rows]

    def find_station_by_operator(self, operator_id: str) -> CheckinStation | None:
        row = orm.CheckinStation.objects.filter(operator_id=operator_id).first()
        return _station_to_domain(row) if row else None

    def record_station_activity(self, station_id: StationId, at: datetime) -> None:
        orm.CheckinStation.objects.filter(pk=station_id.value).update(
            checked_in_count=F("checked_in_count") + 1,
            last_activity=at,
        )

    def add_zone(self, zone: AccessZone) -> AccessZone:
        try:
            with transaction.atomic():
                row = orm.AccessZone.objects.create(
                    event_id=zone.event_id.value, code=zone.code, **_zone_fields(zone)
                )
        except IntegrityError as exc:
            raise DuplicateZoneError(zone.code) from exc
        return _zone_to_domain(row)

    def save_zone(self, zone: AccessZone) -> AccessZone:
        row = orm.AccessZone.objects.get(event_id=zone.event_id.value, code=zone.code)
        fields = _zone_fields(zone)
        for name, value in fields.items():
            setattr(row, name, value)
        row.save(update_fields=[*fields, "updated_at"])
        return _zone_to_domain(row)

    def get_zone(self, event_id: EventId, code: str) -> AccessZone | None:
        row = orm.AccessZone.objects.filter(event_id=event_id.value, code=code).first()
        return _zone_to_domain(row) if row else None

    def list_zones(self, event_id: EventId) -> list[AccessZone]:
        rows = orm.AccessZone.objects.filter(event_id=event_id.value).order_by("name")
        return [_zone_to_domain(row) for row in rows]

    def get_ticket_type(
        self, event_id: EventId, ticket_type_id: TicketTypeId
    ) -> TicketType | None:
        row = orm.TicketType.objects.filter(
            pk=ticket_type_id.value, event_id=event_id.value
        ).first()
        return _ticket_type_to_domain(row) if row else None

    def save_access_control(
        self, ticket_type_id: TicketTypeId, access_control: AccessControl
    ) -> None:
        orm.TicketType.objects.filter(pk=ticket_type_id.value).update(
            allow_multiple_entries=access_control.allow_multiple_entries,
            max_entries_per_day=access_control.max_entries_per_day,
            valid_days=sorted(day.isoformat() for day in access_control.valid_days),
            access_zones=sorted(access_control.access_zones),
            requires_escort=access_control.requires_escort,
            special_permissions=list(access_control.special_permissions),
        )
