"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. The ledger exposes
no update or delete operation: corrections are new entries.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import AbstractContextManager
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


class RedemptionUnit(ABC):
    """Work done inside one participant's critical section.

    Writes become visible only when the surrounding ``redemption`` block
    exits without an exception.
    """

    @abstractmethod
    def history(self) -> list[CheckinEntry]:
        """Return the participant's entries in append order (oldest first)."""
        ...

    @abstractmethod
    def append(self, entry: CheckinEntry) -> CheckinEntry:
        """Stage a ledger entry and return it with its sequence assigned."""
        ...

    @abstractmethod
    def mark_checked_in(self, at: datetime) -> None:
        """Stage the participant's cached checked-in flag."""
        ...


class CheckinStore(ABC):
    """Interface for participants and the checkin history ledger."""

    @abstractmethod
    def get_event(self, event_id: EventId) -> Event | None:
        """Return an event by ID, or None if not found."""
        ...

    @abstractmethod
    def find_participant_and_ticket_type(
        self, code: str, event_id: EventId
    ) -> tuple[Participant, TicketType] | None:
        """Resolve a check-in code, manual participants first, then order attendees."""
        ...

    @abstractmethod
    def list_participants(self, event_id: EventId) -> list[Participant]:
        """Return every participant of an event."""
        ...

    @abstractmethod
    def get_participant(self, participant_id: ParticipantId) -> Participant | None:
        """Return a participant by ID, or None if not found."""
        ...

    @abstractmethod
    def redemption(
        self, event_id: EventId, participant_id: ParticipantId, timeout: float
    ) -> AbstractContextManager[RedemptionUnit]:
        """Open the critical section for one participant.

        Raises:
            BusyError: If the lock is not obtained within ``timeout`` seconds.
            PersistenceFailureError: If the staged writes cannot be committed.
        """
        ...

    @abstractmethod
    def query_history(
        self, event_id: EventId, participant_id: ParticipantId | None = None
    ) -> list[CheckinEntry]:
        """Return ledger entries for display, newest first."""
        ...

    @abstractmethod
    def set_checked_in(
        self, participant_id: ParticipantId, checked_in: bool, at: datetime | None
    ) -> None:
        """Overwrite the cached flag. Used only when rebuilding from the ledger."""
        ...


class RegistryStore(ABC):
    """Interface for stations, access zones and ticket type policies."""

    @abstractmethod
    def add_station(self, station: CheckinStation) -> CheckinStation:
        ...

    @abstractmethod
    def save_station(self, station: CheckinStation) -> CheckinStation:
        """Persist station attributes. Never writes the activity counter."""
        ...

    @abstractmethod
    def get_station(self, station_id: StationId) -> CheckinStation | None:
        ...

    @abstractmethod
    def list_stations(self, event_id: EventId) -> list[CheckinStation]:
        ...

    @abstractmethod
    def find_station_by_operator(self, operator_id: str) -> CheckinStation | None:
        ...

    @abstractmethod
    def record_station_activity(self, station_id: StationId, at: datetime) -> None:
        """Increment the station counter by one and stamp its last activity."""
        ...

    @abstractmethod
    def add_zone(self, zone: AccessZone) -> AccessZone:
        ...

    @abstractmethod
    def save_zone(self, zone: AccessZone) -> AccessZone:
        ...

    @abstractmethod
    def get_zone(self, event_id: EventId, code: str) -> AccessZone | None:
        ...

    @abstractmethod
    def list_zones(self, event_id: EventId) -> list[AccessZone]:
        """Return all zones of an event, active or not."""
        ...

    @abstractmethod
    def get_ticket_type(
        self, event_id: EventId, ticket_type_id: TicketTypeId
    ) -> TicketType | None:
        ...

    @abstractmethod
    def save_access_control(
        self, ticket_type_id: TicketTypeId, access_control: AccessControl
    ) -> None:
        ...


def iter_ascending(entries: list[CheckinEntry]) -> Iterator[CheckinEntry]:
    """Yield entries in append order regardless of how they were sorted."""
    return iter(sorted(entries, key=lambda entry: entry.sequence or 0))
