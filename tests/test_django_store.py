"""Integration tests for the Django ORM stores.

Run with: pytest tests/test_django_store.py -v
"""

from datetime import date
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError
from django.db import DatabaseError, OperationalError
from django.utils import timezone

from credentialing import models as orm
from credentialing.domain import (
    AccessControl,
    AccessZone,
    CheckinEntry,
    CheckinStation,
    EventId,
    ParticipantId,
    StationId,
    TicketTypeId,
)
from credentialing.domain.errors import (
    BusyError,
    DuplicateZoneError,
    PersistenceFailureError,
    UnknownCodeError,
)
from credentialing.services.redemption_service import (
    RedemptionOptions,
    RedemptionService,
)
from credentialing.stores import django_store
from credentialing.stores.django_store import DjangoCheckinStore, DjangoRegistryStore


@pytest.fixture
def checkin_store() -> DjangoCheckinStore:
    return DjangoCheckinStore()


@pytest.fixture
def registry_store() -> DjangoRegistryStore:
    return DjangoRegistryStore()


@pytest.fixture
def db_service(checkin_store, registry_store, engine_settings) -> RedemptionService:
    return RedemptionService(
        checkin_store, registry_store, settings=engine_settings, clock=timezone.now
    )


def _event_id(row) -> EventId:
    return EventId(row.id)


@pytest.mark.django_db
class TestRedemptionWithDatabase:
    """Tests for redemptions persisted through the ORM."""

    def test_redeem_writes_entry_and_flag(self, db_service, db_event, db_participant):
        """A successful redemption appends one row and sets the cached flag."""
        result = db_service.redeem("TCXA3K9P", _event_id(db_event))

        assert result.ok
        assert orm.CheckinEntry.objects.count() == 1
        db_participant.refresh_from_db()
        assert db_participant.checked_in is True
        assert db_participant.checked_in_at == result.entry.checked_in_at

    def test_second_redeem_already(self, db_service, db_event, db_participant):
        """The ledger row from the first redemption denies the second."""
        db_service.redeem("TCXA3K9P", _event_id(db_event))

        result = db_service.redeem("TCXA3K9P", _event_id(db_event))

        assert result.status == "already"
        assert orm.CheckinEntry.objects.count() == 1

    def test_sequence_is_row_id(
        self, db_service, db_event, db_ticket_type, db_participant
    ):
        """Entries carry the row id as their append sequence."""
        db_ticket_type.allow_multiple_entries = True
        db_ticket_type.save()

        first = db_service.redeem("TCXA3K9P", _event_id(db_event))
        second = db_service.redeem("TCXA3K9P", _event_id(db_event))

        assert second.entry.sequence > first.entry.sequence
        assert second.entry_number == 2
        rows = orm.CheckinEntry.objects.order_by("id")
        assert [row.entry_number for row in rows] == [1, 2]

    def test_code_resolves_within_event(
        self, checkin_store, db_event, db_ticket_type, db_participant
    ):
        """The same code in another event resolves to that event's participant only."""
        other_event = orm.Event.objects.create(name="Other")
        other_type = orm.TicketType.objects.create(
            event=other_event, name="General", price=Decimal("10.00"), quantity_total=10
        )
        orm.Participant.objects.create(
            event=other_event,
            ticket_type=other_type,
            name="Grace Hopper",
            code="TCXA3K9P",
        )

        participant, ticket_type = checkin_store.find_participant_and_ticket_type(
            "TCXA3K9P", _event_id(db_event)
        )

        assert participant.id == ParticipantId(db_participant.id)
        assert ticket_type.id == TicketTypeId(db_ticket_type.id)
        missing = checkin_store.find_participant_and_ticket_type(
            "NOPE0000", _event_id(db_event)
        )
        assert missing is None

    def test_station_counter_uses_database_increment(
        self, db_service, registry_store, db_event, db_participant
    ):
        """Station activity increments the stored counter."""
        station = registry_store.add_station(
            CheckinStation(
                id=StationId.new(), event_id=_event_id(db_event), name="Gate A"
            )
        )

        db_service.redeem(
            "TCXA3K9P", _event_id(db_event), RedemptionOptions(station_id=station.id)
        )

        row = orm.CheckinStation.objects.get(pk=station.id.value)
        assert row.checked_in_count == 1
        assert row.last_activity is not None

    def test_commit_failure_rolls_back(
        self, db_service, db_event, db_participant, monkeypatch
    ):
        """A database error mid-redemption leaves no entry and raises."""

        def fail(self, at):
            raise DatabaseError("disk full")

        monkeypatch.setattr(django_store._DjangoRedemptionUnit, "mark_checked_in", fail)

        with pytest.raises(PersistenceFailureError):
            db_service.redeem("TCXA3K9P", _event_id(db_event))
        assert orm.CheckinEntry.objects.count() == 0


@pytest.mark.django_db
class TestRedemptionUnit:
    """Tests for the participant critical section."""

    def test_participant_of_other_event(self, checkin_store, db_participant):
        """Locking a participant under the wrong event is an unknown code."""
        with pytest.raises(UnknownCodeError):
            with checkin_store.redemption(
                EventId(orm.Event.objects.create(name="Other").id),
                ParticipantId(db_participant.id),
                timeout=1,
            ):
                pass

    def test_duplicate_entry_number_is_busy(
        self, checkin_store, db_event, db_ticket_type, db_participant
    ):
        """The unique entry number constraint reports a lost race as busy."""
        entry = CheckinEntry(
            participant_id=ParticipantId(db_participant.id),
            event_id=_event_id(db_event),
            ticket_type_id=TicketTypeId(db_ticket_type.id),
            checked_in_at=timezone.now(),
            entry_number=1,
        )

        with pytest.raises(BusyError):
            with checkin_store.redemption(
                _event_id(db_event), entry.participant_id, 1
            ) as unit:
                unit.append(entry)
                unit.append(entry)
        assert orm.CheckinEntry.objects.count() == 0

    def test_history_ascending_inside_unit(
        self, db_service, checkin_store, db_event, db_ticket_type, db_participant
    ):
        """The unit sees prior entries oldest first."""
        db_ticket_type.allow_multiple_entries = True
        db_ticket_type.save()
        for _ in range(3):
            db_service.redeem("TCXA3K9P", _event_id(db_event))

        with checkin_store.redemption(
            _event_id(db_event), ParticipantId(db_participant.id), 1
        ) as unit:
            numbers = [entry.entry_number for entry in unit.history()]

        assert numbers == [1, 2, 3]

    def test_query_history_newest_first(
        self, db_service, checkin_store, db_event, db_ticket_type, db_participant
    ):
        """Display queries return the newest entry first."""
        db_ticket_type.allow_multiple_entries = True
        db_ticket_type.save()
        db_service.redeem("TCXA3K9P", _event_id(db_event))
        db_service.redeem("TCXA3K9P", _event_id(db_event))

        entries = checkin_store.query_history(_event_id(db_event))

        assert [e.entry_number for e in entries] == [2, 1]


class TestLockContention:
    """Tests for classifying database errors."""

    def test_sqlite_locked_is_contention(self):
        """SQLite's locked error counts as contention."""
        assert django_store._is_lock_contention(OperationalError("database is locked"))

    def test_other_errors_are_not_contention(self):
        """Unrelated database errors are persistence failures."""
        assert not django_store._is_lock_contention(DatabaseError("disk full"))


@pytest.mark.django_db
class TestRegistryStore:
    """Tests for stations, zones and policies in the database."""

    def test_save_station_keeps_counter(self, registry_store, db_event):
        """Saving station attributes never overwrites the activity counter."""
        station = registry_store.add_station(
            CheckinStation(
                id=StationId.new(), event_id=_event_id(db_event), name="Gate A"
            )
        )
        registry_store.record_station_activity(station.id, timezone.now())

        saved = registry_store.save_station(station)

        assert saved.checked_in_count == 1

    def test_duplicate_zone(self, registry_store, db_event):
        """The zone code constraint surfaces as DuplicateZoneError."""
        zone = AccessZone(code="vip", event_id=_event_id(db_event), name="VIP")
        registry_store.add_zone(zone)

        with pytest.raises(DuplicateZoneError):
            registry_store.add_zone(zone)

    def test_access_control_round_trip(self, registry_store, db_event, db_ticket_type):
        """Policies survive a save and reload."""
        policy = AccessControl(
            allow_multiple_entries=True,
            max_entries_per_day=2,
            valid_days=frozenset({date(2025, 3, 11), date(2025, 3, 10)}),
            access_zones=frozenset({"vip"}),
            special_permissions=("press",),
        )
        ticket_type_id = TicketTypeId(db_ticket_type.id)

        registry_store.save_access_control(ticket_type_id, policy)

        db_ticket_type.refresh_from_db()
        assert db_ticket_type.valid_days == ["2025-03-10", "2025-03-11"]
        loaded = registry_store.get_ticket_type(_event_id(db_event), ticket_type_id)
        assert loaded.access_control == policy
        assert loaded.price.amount == Decimal("50.00")


@pytest.mark.django_db
class TestEventTimezone:
    """Tests for the stored event timezone."""

    def test_unknown_timezone_fails_validation(self):
        """Model validation rejects names missing from the zone database."""
        event = orm.Event(name="Tech Conference", timezone="Mars/Olympus_Mons")

        with pytest.raises(ValidationError) as excinfo:
            event.full_clean()

        assert "timezone" in excinfo.value.message_dict

    def test_known_timezone_passes_validation(self):
        """IANA names validate."""
        orm.Event(name="Tech Conference", timezone="America/Sao_Paulo").full_clean()
