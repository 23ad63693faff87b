"""Pytest configuration and shared fixtures."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from rest_framework.test import APIClient

from credentialing import models as orm
from credentialing.conf import EngineSettings
from credentialing.domain import (
    AccessControl,
    Capacity,
    Event,
    EventId,
    Money,
    Participant,
    ParticipantId,
    TicketType,
    TicketTypeId,
)
from credentialing.services.redemption_service import RedemptionService
from credentialing.stores.memory_store import InMemoryStore

START = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture(autouse=True)
def clear_cache():
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(START)


@pytest.fixture
def engine_settings() -> EngineSettings:
    return EngineSettings(lock_timeout_seconds=5.0, busy_backoff_seconds=0)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def event(store: InMemoryStore) -> Event:
    return store.add_event(Event(id=EventId(uuid4()), name="Tech Conference"))


@pytest.fixture
def make_ticket_type(store: InMemoryStore, event: Event):
    def factory(name: str = "General", **policy) -> TicketType:
        return store.add_ticket_type(
            TicketType(
                id=TicketTypeId(uuid4()),
                event_id=event.id,
                name=name,
                price=Money(Decimal("50.00")),
                quantity_total=Capacity(100),
                access_control=AccessControl(**policy),
            )
        )

    return factory


@pytest.fixture
def make_participant(store: InMemoryStore, event: Event):
    def factory(ticket_type: TicketType, code: str, **fields) -> Participant:
        return store.add_participant(
            Participant(
                id=ParticipantId.new(),
                event_id=event.id,
                ticket_type_id=ticket_type.id,
                name=fields.pop("name", "Ada Lovelace"),
                code=code,
                **fields,
            )
        )

    return factory


@pytest.fixture
def service(
    store: InMemoryStore, clock: FakeClock, engine_settings: EngineSettings
) -> RedemptionService:
    return RedemptionService(store, store, settings=engine_settings, clock=clock)


@pytest.fixture
def seed_store():
    """Seed an event with one single-entry participant (code TCXA3K9P)."""

    def factory(target: InMemoryStore) -> Event:
        event = target.add_event(Event(id=EventId(uuid4()), name="Tech Conference"))
        ticket_type = target.add_ticket_type(
            TicketType(
                id=TicketTypeId(uuid4()),
                event_id=event.id,
                name="General",
                price=Money(Decimal("10.00")),
                quantity_total=Capacity(10),
            )
        )
        target.add_participant(
            Participant(
                id=ParticipantId.new(),
                event_id=event.id,
                ticket_type_id=ticket_type.id,
                name="Ada Lovelace",
                code="TCXA3K9P",
            )
        )
        return event

    return factory


# Database rows


@pytest.fixture
def db_event(db) -> orm.Event:
    return orm.Event.objects.create(name="Tech Conference")


@pytest.fixture
def db_ticket_type(db_event: orm.Event) -> orm.TicketType:
    return orm.TicketType.objects.create(
        event=db_event,
        name="General",
        price=Decimal("50.00"),
        quantity_total=100,
    )


@pytest.fixture
def db_participant(
    db_event: orm.Event, db_ticket_type: orm.TicketType
) -> orm.Participant:
    return orm.Participant.objects.create(
        event=db_event,
        ticket_type=db_ticket_type,
        name="Ada Lovelace",
        email="ada@example.com",
        code="TCXA3K9P",
        order_number="ORD-1001",
    )
