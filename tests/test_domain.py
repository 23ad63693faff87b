"""Unit tests for domain primitives, models and errors.

Run with: pytest tests/test_domain.py -v
"""

from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from credentialing.conf import EngineSettings
from credentialing.domain import (
    AccessControl,
    Capacity,
    CheckinEntry,
    Event,
    EventId,
    Money,
    ParticipantId,
    StationId,
    TicketTypeId,
)
from credentialing.domain.errors import (
    BusyError,
    DomainError,
    ErrorCode,
    InvalidIdError,
    TokenError,
    TokenExpiredError,
    UnknownCodeError,
)


class TestIdentifiers:
    """Tests for the UUID identifier value objects."""

    def test_from_string_parses_uuid(self):
        """from_string accepts the canonical UUID form."""
        event_id = EventId.from_string("7b0e1c52-3a6f-4a43-9d55-2f4f0c1e8a11")
        assert event_id.value == UUID("7b0e1c52-3a6f-4a43-9d55-2f4f0c1e8a11")
        assert str(event_id) == "7b0e1c52-3a6f-4a43-9d55-2f4f0c1e8a11"

    def test_from_string_rejects_garbage(self):
        """from_string raises ValueError for a malformed UUID."""
        with pytest.raises(ValueError):
            TicketTypeId.from_string("not-a-uuid")

    def test_new_ids_are_unique(self):
        """new() produces distinct identifiers."""
        assert ParticipantId.new() != ParticipantId.new()
        assert StationId.new() != StationId.new()

    def test_ids_compare_by_value(self):
        """Two ids wrapping the same UUID are equal and hash alike."""
        raw = "0f5b8c7e-8d7c-4d0b-9d0a-6c2a9a0b1c3d"
        ids = {EventId.from_string(raw), EventId.from_string(raw)}
        assert ids == {EventId.from_string(raw)}


class TestMoneyAndCapacity:
    """Tests for validated numeric value objects."""

    def test_money_rejects_negative(self):
        """Money cannot be negative."""
        with pytest.raises(ValueError):
            Money(Decimal("-1"))

    def test_money_renders_two_decimals(self):
        """Money renders with two decimal places."""
        assert str(Money(Decimal("5"))) == "5.00"

    def test_capacity_rejects_negative(self):
        """Capacity cannot be negative."""
        with pytest.raises(ValueError):
            Capacity(-1)


class TestEvent:
    """Tests for the event domain model."""

    def test_named_timezone_accepted(self):
        """IANA timezone names are accepted."""
        event_id = EventId.from_string("7b0e1c52-3a6f-4a43-9d55-2f4f0c1e8a11")
        assert Event(id=event_id, name="Tech", timezone="America/Sao_Paulo").timezone

    @pytest.mark.parametrize("tz", ["Mars/Olympus_Mons", "", "../etc/passwd"])
    def test_unknown_timezone_rejected(self, tz):
        """An event cannot carry a timezone the zone database does not know."""
        event_id = EventId.from_string("7b0e1c52-3a6f-4a43-9d55-2f4f0c1e8a11")
        with pytest.raises(ValueError):
            Event(id=event_id, name="Tech", timezone=tz)


class TestAccessControl:
    """Tests for the ticket type access policy."""

    def test_defaults_are_single_entry_unrestricted(self):
        """A default policy allows one entry, any day, any zone."""
        policy = AccessControl()
        assert policy.allow_multiple_entries is False
        assert policy.max_entries_per_day == 0
        assert policy.valid_days == frozenset()
        assert policy.access_zones == frozenset()

    def test_negative_daily_limit_rejected(self):
        """max_entries_per_day cannot be negative."""
        with pytest.raises(ValueError):
            AccessControl(max_entries_per_day=-1)


class TestCheckinEntry:
    """Tests for ledger entries."""

    def test_ticket_id_is_participant_id(self):
        """Each participant holds exactly one ticket."""
        participant_id = ParticipantId.new()
        entry = CheckinEntry(
            participant_id=participant_id,
            event_id=EventId.from_string("7b0e1c52-3a6f-4a43-9d55-2f4f0c1e8a11"),
            ticket_type_id=TicketTypeId.from_string(
                "0f5b8c7e-8d7c-4d0b-9d0a-6c2a9a0b1c3d"
            ),
            checked_in_at=datetime(2025, 3, 10, tzinfo=timezone.utc),
            entry_number=1,
        )
        assert entry.ticket_id == participant_id
        assert entry.sequence is None


class TestErrors:
    """Tests for domain error codes and messages."""

    def test_unknown_code_error(self):
        """UnknownCodeError carries a user-safe message and the scanned code."""
        error = UnknownCodeError("ABC")
        assert error.code is ErrorCode.UNKNOWN_CODE
        assert error.message == "Invalid ticket code"
        assert error.scanned_code == "ABC"

    def test_token_errors_share_base(self):
        """Codec failures can be caught as TokenError."""
        assert isinstance(TokenExpiredError(), TokenError)
        assert isinstance(TokenExpiredError(), DomainError)

    def test_busy_error_can_be_raised_and_caught(self):
        """Domain errors behave as ordinary exceptions."""
        with pytest.raises(BusyError) as excinfo:
            raise BusyError("p-1")
        assert excinfo.value.participant_id == "p-1"
        assert str(excinfo.value).startswith("BUSY:")

    def test_invalid_id_message_names_kind(self):
        """InvalidIdError mentions which id was malformed."""
        assert InvalidIdError("event ID").message == "Invalid event ID format"


class TestEngineSettings:
    """Tests for engine tuning settings."""

    def test_defaults(self):
        """Defaults match the documented tuning values."""
        settings = EngineSettings()
        assert settings.lock_timeout_seconds == 2.0
        assert settings.busy_retries == 3
        assert settings.token_ttl_hours == 24
        assert settings.bulk_max_codes == 500

    def test_rejects_non_positive_lock_timeout(self):
        """The lock wait must be bounded and positive."""
        with pytest.raises(ValueError):
            EngineSettings(lock_timeout_seconds=0)

    def test_from_django_reads_overrides(self, settings):
        """from_django reads the CREDENTIALING settings dict."""
        settings.CREDENTIALING = {"BUSY_RETRIES": 0, "BULK_MAX_CODES": 10}
        engine = EngineSettings.from_django()
        assert engine.busy_retries == 0
        assert engine.bulk_max_codes == 10
        assert engine.lock_timeout_seconds == 2.0
