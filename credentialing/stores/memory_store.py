"""In-process implementation of the stores.

Used by tests and by single-process deployments. Redemptions for
different participants run in parallel; each participant has its own
lock, acquired with a bounded wait. A participant lock lives only while
some redemption holds a reference to it.
"""

import itertools
import threading
import weakref
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime

from credentialing.domain import (
    AccessControl,
    AccessZone,
    CheckinEntry,
    CheckinStation,
    Event,
    EventId,
    Participant,
    ParticipantId,
    StationId,
    TicketType,
    TicketTypeId,
)
from credentialing.domain.errors import BusyError
from credentialing.stores.interfaces import CheckinStore, RedemptionUnit, RegistryStore


class _MemoryRedemptionUnit(RedemptionUnit):
    def __init__(
        self, store: "InMemoryStore", event_id: EventId, participant_id: ParticipantId
    ) -> None:
        self._store = store
        self.participant_id = participant_id
        self._history = store._ledger_for(event_id, participant_id)
        self.staged_entries: list[CheckinEntry] = []
        self.checked_in_at: datetime | None = None

    def history(self) -> list[CheckinEntry]:
        return list(self._history) + list(self.staged_entries)

    def append(self, entry: CheckinEntry) -> CheckinEntry:
        staged = replace(entry, sequence=self._store._next_sequence())
        self.staged_entries.append(staged)
        return staged

    def mark_checked_in(self, at: datetime) -> None:
        self.checked_in_at = at


class InMemoryStore(CheckinStore, RegistryStore):
    """Dictionary-backed store implementing both store interfaces."""

    def __init__(self) -> None:
        self._events: dict[EventId, Event] = {}
        self._ticket_types: dict[TicketTypeId, TicketType] = {}
        self._participants: dict[ParticipantId, Participant] = {}
        self._ledger: list[CheckinEntry] = []
        self._stations: dict[StationId, CheckinStation] = {}
        self._zones: dict[tuple[EventId, str], AccessZone] = {}
        self._sequence = itertools.count(1)
        self._guard = threading.Lock()
        self._participant_locks: weakref.WeakValueDictionary[
            ParticipantId, threading.Lock
        ] = weakref.WeakValueDictionary()

    # Seeding, outside the store interfaces

    def add_event(self, event: Event) -> Event:
        self._events[event.id] = event
        return event

    def add_ticket_type(self, ticket_type: TicketType) -> TicketType:
        self._ticket_types[ticket_type.id] = ticket_type
        return ticket_type

    def add_participant(self, participant: Participant) -> Participant:
        self._participants[participant.id] = participant
        return participant

    # CheckinStore

    def get_event(self, event_id: EventId) -> Event | None:
        return self._events.get(event_id)

    def find_participant_and_ticket_type(
        self, code: str, event_id: EventId
    ) -> tuple[Participant, TicketType] | None:
        candidates = [
            p
            for p in self._participants.values()
            if p.event_id == event_id and p.code == code
        ]
        # Manual participants win over order attendees
        candidates.sort(key=lambda p: not p.is_manual)
        for participant in candidates:
            ticket_type = self._ticket_types.get(participant.ticket_type_id)
            if ticket_type is not None:
                return participant, ticket_type
        return None

    def list_participants(self, event_id: EventId) -> list[Participant]:
        return [p for p in self._participants.values() if p.event_id == event_id]

    def get_participant(self, participant_id: ParticipantId) -> Participant | None:
        return self._participants.get(participant_id)

    @contextmanager
    def redemption(
        self, event_id: EventId, participant_id: ParticipantId, timeout: float
    ) -> Iterator[RedemptionUnit]:
        lock = self._lock_for(participant_id)
        if not lock.acquire(timeout=timeout):
            raise BusyError(str(participant_id))
        try:
            unit = _MemoryRedemptionUnit(self, event_id, participant_id)
            yield unit
            self._commit(unit)
        finally:
            lock.release()

    def query_history(
        self, event_id: EventId, participant_id: ParticipantId | None = None
    ) -> list[CheckinEntry]:
        with self._guard:
            entries = [
                e
                for e in self._ledger
                if e.event_id == event_id
                and (participant_id is None or e.participant_id == participant_id)
            ]
        return sorted(entries, key=lambda e: e.sequence or 0, reverse=True)

    def set_checked_in(
        self, participant_id: ParticipantId, checked_in: bool, at: datetime | None
    ) -> None:
        participant = self._participants[participant_id]
        self._participants[participant_id] = replace(
            participant, checked_in=checked_in, checked_in_at=at
        )

    # RegistryStore

    def add_station(self, station: CheckinStation) -> CheckinStation:
        self._stations[station.id] = station
        return station

    def save_station(self, station: CheckinStation) -> CheckinStation:
        with self._guard:
            current = self._stations[station.id]
            saved = replace(
                station,
                checked_in_count=current.checked_in_count,
                last_activity=current.last_activity,
            )
            self._stations[station.id] = saved
        return saved

    def get_station(self, station_id: StationId) -> CheckinStation | None:
        return self._stations.get(station_id)

    def list_stations(self, event_id: EventId) -> list[CheckinStation]:
        return [s for s in self._stations.values() if s.event_id == event_id]

    def find_station_by_operator(self, operator_id: str) -> CheckinStation | None:
        for station in self._stations.values():
            if station.operator_id == operator_id:
                return station
        return None

    def record_station_activity(self, station_id: StationId, at: datetime) -> None:
        with self._guard:
            station = self._stations.get(station_id)
            if station is None:
                return
            self._stations[station_id] = replace(
                station,
                checked_in_count=station.checked_in_count + 1,
                last_activity=at,
            )

    def add_zone(self, zone: AccessZone) -> AccessZone:
        self._zones[(zone.event_id, zone.code)] = zone
        return zone

    def save_zone(self, zone: AccessZone) -> AccessZone:
        self._zones[(zone.event_id, zone.code)] = zone
        return zone

    def get_zone(self, event_id: EventId, code: str) -> AccessZone | None:
        return self._zones.get((event_id, code))

    def list_zones(self, event_id: EventId) -> list[AccessZone]:
        return [z for (eid, _), z in self._zones.items() if eid == event_id]

    def get_ticket_type(
        self, event_id: EventId, ticket_type_id: TicketTypeId
    ) -> TicketType | None:
        ticket_type = self._ticket_types.get(ticket_type_id)
        if ticket_type is None or ticket_type.event_id != event_id:
            return None
        return ticket_type

    def save_access_control(
        self, ticket_type_id: TicketTypeId, access_control: AccessControl
    ) -> None:
        ticket_type = self._ticket_types[ticket_type_id]
        self._ticket_types[ticket_type_id] = replace(
            ticket_type, access_control=access_control
        )

    # Internals

    def _lock_for(self, participant_id: ParticipantId) -> threading.Lock:
        with self._guard:
            lock = self._participant_locks.get(participant_id)
            if lock is None:
                lock = threading.Lock()
                self._participant_locks[participant_id] = lock
            return lock

    def _next_sequence(self) -> int:
        with self._guard:
            return next(self._sequence)

    def _ledger_for(
        self, event_id: EventId, participant_id: ParticipantId
    ) -> list[CheckinEntry]:
        with self._guard:
            entries = [
                e
                for e in self._ledger
                if e.event_id == event_id and e.participant_id == participant_id
            ]
        return sorted(entries, key=lambda e: e.sequence or 0)

    def _commit(self, unit: _MemoryRedemptionUnit) -> None:
        with self._guard:
            self._ledger.extend(unit.staged_entries)
            if unit.checked_in_at is not None:
                participant = self._participants[unit.participant_id]
                self._participants[participant.id] = replace(
                    participant, checked_in=True, checked_in_at=unit.checked_in_at
                )
