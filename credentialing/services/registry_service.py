"""Registry service - stations, access zones and ticket type policies.

A station's ``checked_in_count`` is never written here: it only grows
through ``RegistryStore.record_station_activity`` on a successful
redemption.
"""

import logging
from dataclasses import dataclass, fields, replace
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from credentialing.domain import (
    AccessControl,
    AccessZone,
    CheckinStation,
    EventId,
    StationId,
    StationSettings,
    TicketTypeId,
)
from credentialing.domain.errors import (
    DuplicateZoneError,
    EventNotFoundError,
    StationNotFoundError,
    TicketTypeNotFoundError,
    ZoneNotFoundError,
)
from credentialing.stores.interfaces import CheckinStore, RegistryStore

logger = logging.getLogger(__name__)

ONLINE_WINDOW = timedelta(minutes=5)
IDLE_WINDOW = timedelta(minutes=15)

_STATION_IMMUTABLE = frozenset({"id", "event_id", "checked_in_count", "last_activity"})
_ZONE_IMMUTABLE = frozenset({"code", "event_id"})


class StationStatus(Enum):
    INACTIVE = "inactive"
    NO_ACTIVITY = "no_activity"
    ONLINE = "online"
    IDLE = "idle"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class StationSummary:
    total: int
    active: int
    online: int
    total_checkins: int


def station_status(station: CheckinStation, now: datetime) -> StationStatus:
    if not station.is_active:
        return StationStatus.INACTIVE
    if station.last_activity is None:
        return StationStatus.NO_ACTIVITY
    elapsed = now - station.last_activity
    if elapsed < ONLINE_WINDOW:
        return StationStatus.ONLINE
    if elapsed < IDLE_WINDOW:
        return StationStatus.IDLE
    return StationStatus.DISCONNECTED


def _reject_unknown(
    changes: dict[str, Any], allowed: set[str], immutable: frozenset[str]
) -> None:
    for name in changes:
        if name in immutable or name not in allowed:
            raise ValueError(f"Field cannot be updated: {name}")


class RegistryService:
    """Service for station and zone management."""

    def __init__(self, store: CheckinStore, registry: RegistryStore) -> None:
        self._store = store
        self._registry = registry

    # Stations

    def create_station(
        self,
        event_id: EventId,
        name: str,
        location: str = "",
        description: str = "",
        zone_code: str | None = None,
        operator_id: str | None = None,
        operator_name: str = "",
        is_active: bool = True,
        settings: StationSettings | None = None,
    ) -> CheckinStation:
        """Register a new station with a zero counter.

        Raises:
            EventNotFoundError: If the event does not exist.
            ZoneNotFoundError: If ``zone_code`` is not a zone of the event.
        """
        self._require_event(event_id)
        if zone_code:
            self._require_zone(event_id, zone_code)
        station = CheckinStation(
            id=StationId.new(),
            event_id=event_id,
            name=name,
            location=location,
            description=description,
            is_active=is_active,
            zone_code=zone_code or None,
            operator_id=operator_id or None,
            operator_name=operator_name,
            settings=settings or StationSettings(),
        )
        created = self._registry.add_station(station)
        logger.info(
            "Station created",
            extra={"station_id": str(created.id), "event_id": str(event_id)},
        )
        return created

    def update_station(self, station_id: StationId, **changes: Any) -> CheckinStation:
        """Apply a partial update. ``settings`` may be a dict of setting changes.

        Raises:
            StationNotFoundError: If the station does not exist.
            ZoneNotFoundError: If a new ``zone_code`` is not a zone of the event.
            ValueError: If a change targets an unknown or read-only field.
        """
        station = self.get_station(station_id)
        _reject_unknown(
            changes, {f.name for f in fields(CheckinStation)}, _STATION_IMMUTABLE
        )
        settings_changes = changes.pop("settings", None)
        if isinstance(settings_changes, dict):
            changes["settings"] = replace(station.settings, **settings_changes)
        elif settings_changes is not None:
            changes["settings"] = settings_changes
        if changes.get("zone_code"):
            self._require_zone(station.event_id, changes["zone_code"])
        elif "zone_code" in changes:
            changes["zone_code"] = None
        return self._registry.save_station(replace(station, **changes))

    def get_station(self, station_id: StationId) -> CheckinStation:
        station = self._registry.get_station(station_id)
        if station is None:
            raise StationNotFoundError(str(station_id))
        return station

    def list_stations(self, event_id: EventId) -> list[CheckinStation]:
        return self._registry.list_stations(event_id)

    def get_station_by_operator(self, operator_id: str) -> CheckinStation | None:
        return self._registry.find_station_by_operator(operator_id)

    def station_summary(self, event_id: EventId, now: datetime) -> StationSummary:
        stations = self._registry.list_stations(event_id)
        return StationSummary(
            total=len(stations),
            active=sum(1 for s in stations if s.is_active),
            online=sum(
                1 for s in stations if station_status(s, now) is StationStatus.ONLINE
            ),
            total_checkins=sum(s.checked_in_count for s in stations),
        )

    # Zones

    def create_zone(self, zone: AccessZone) -> AccessZone:
        """Register an access zone.

        Raises:
            EventNotFoundError: If the event does not exist.
            DuplicateZoneError: If the zone code is taken within the event.
        """
        self._require_event(zone.event_id)
        if self._registry.get_zone(zone.event_id, zone.code) is not None:
            raise DuplicateZoneError(zone.code)
        return self._registry.add_zone(zone)

    def update_zone(
        self, event_id: EventId, code: str, /, **changes: Any
    ) -> AccessZone:
        """Apply ``changes`` to a zone. The code and event are fixed.

        Raises:
            ZoneNotFoundError: If the zone does not exist.
            ValueError: If a change names an unknown or fixed field.
        """
        zone = self.get_zone(event_id, code)
        _reject_unknown(changes, {f.name for f in fields(AccessZone)}, _ZONE_IMMUTABLE)
        return self._registry.save_zone(replace(zone, **changes))

    def get_zone(self, event_id: EventId, code: str) -> AccessZone:
        zone = self._registry.get_zone(event_id, code)
        if zone is None:
            raise ZoneNotFoundError(code)
        return zone

    def list_zones(self, event_id: EventId) -> list[AccessZone]:
        """Return the active zones of an event."""
        return [z for z in self._registry.list_zones(event_id) if z.is_active]

    # Ticket policies

    def update_ticket_access_control(
        self, event_id: EventId, ticket_type_id: TicketTypeId, **changes: Any
    ) -> AccessControl:
        """Merge ``changes`` into a ticket type's access policy.

        Raises:
            TicketTypeNotFoundError: If the ticket type is not part of the event.
            ValueError: If a change names an unknown policy field.
        """
        ticket_type = self._registry.get_ticket_type(event_id, ticket_type_id)
        if ticket_type is None:
            raise TicketTypeNotFoundError(str(ticket_type_id))
        _reject_unknown(changes, {f.name for f in fields(AccessControl)}, frozenset())
        if "valid_days" in changes:
            changes["valid_days"] = frozenset(changes["valid_days"])
        if "access_zones" in changes:
            changes["access_zones"] = frozenset(changes["access_zones"])
        if "special_permissions" in changes:
            changes["special_permissions"] = tuple(changes["special_permissions"])
        access_control = replace(ticket_type.access_control, **changes)
        self._registry.save_access_control(ticket_type_id, access_control)
        logger.info(
            "Ticket access control updated",
            extra={"ticket_type_id": str(ticket_type_id)},
        )
        return access_control

    def _require_event(self, event_id: EventId) -> None:
        if self._store.get_event(event_id) is None:
            raise EventNotFoundError(str(event_id))

    def _require_zone(self, event_id: EventId, code: str) -> None:
        if self._registry.get_zone(event_id, code) is None:
            raise ZoneNotFoundError(code)
