"""Unit tests for the ticket token codec and check-in codes.

Run with: pytest tests/test_codec.py -v
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from credentialing.domain import codec
from credentialing.domain.errors import (
    InvalidSignatureError,
    MalformedTokenError,
    TokenExpiredError,
)

ISSUED = datetime(2025, 3, 10, 9, 30, tzinfo=timezone.utc)


def _token(**overrides) -> str:
    fields = {
        "participant_id": "p-1",
        "event_id": "e-1",
        "ticket_type_id": "tt-1",
        "checkin_code": "TCXA3K9P",
        "order_number": "ORD-1001",
        "issued_at": ISSUED,
    }
    fields.update(overrides)
    return codec.encode(**fields)


class TestStringHash:
    """Tests for the 32-bit string checksum."""

    def test_matches_known_values(self):
        """The hash follows h = h * 31 + c with 32-bit wraparound."""
        assert codec._string_hash("") == 0
        assert codec._string_hash("a") == 97
        assert codec._string_hash("ab") == 97 * 31 + 98
        assert codec._string_hash("hello") == 99162322

    def test_wraps_to_signed_32_bit(self):
        """Overflow wraps into the signed 32-bit range."""
        assert codec._string_hash("polygenelubricants") == -(2**31)

    def test_hashes_utf16_code_units(self):
        """Characters outside the BMP contribute both surrogate halves."""
        assert codec._string_hash("\U0001F600") == 0xD83D * 31 + 0xDE00

    def test_base36_digits(self):
        """Base 36 rendering is upper case."""
        assert codec._to_base36(0) == "0"
        assert codec._to_base36(35) == "Z"
        assert codec._to_base36(36) == "10"


class TestEncodeDecode:
    """Tests for token encoding and decoding."""

    def test_decode_returns_encoded_fields(self):
        """A freshly encoded token decodes to the same fields."""
        payload = codec.decode(_token())
        assert payload.participant_id == "p-1"
        assert payload.event_id == "e-1"
        assert payload.ticket_type_id == "tt-1"
        assert payload.checkin_code == "TCXA3K9P"
        assert payload.order_number == "ORD-1001"
        assert payload.issued_at == ISSUED

    def test_token_is_compact_json_with_millis(self):
        """The wire form uses camelCase keys and an epoch millisecond timestamp."""
        data = json.loads(_token())
        assert data["checkInCode"] == "TCXA3K9P"
        assert data["ticketType"] == "tt-1"
        assert data["timestamp"] == int(ISSUED.timestamp()) * 1000
        assert " " not in _token()

    def test_missing_order_number_is_null(self):
        """Tickets without an order encode orderNumber as null."""
        token = _token(order_number=None)
        assert json.loads(token)["orderNumber"] is None
        assert codec.decode(token).order_number is None

    def test_tampered_field_fails_signature(self):
        """Changing any field without recomputing the hash is detected."""
        data = json.loads(_token())
        data["checkInCode"] = "TCXZZZZZ"
        with pytest.raises(InvalidSignatureError):
            codec.decode(json.dumps(data))

    def test_tampered_timestamp_fails_signature(self):
        """Extending a token's lifetime by editing the timestamp is detected."""
        data = json.loads(_token())
        data["timestamp"] += 3_600_000
        with pytest.raises(InvalidSignatureError):
            codec.decode(json.dumps(data))

    @pytest.mark.parametrize(
        "token",
        [
            "not json",
            "[1, 2, 3]",
            '{"eventId": "e-1", "checkInCode": "X", "hash": "1", "timestamp": 1}',
            (
                '{"participantId": "p", "eventId": "e", "checkInCode": "X", '
                '"hash": "1", "timestamp": "1"}'
            ),
            (
                '{"participantId": "p", "eventId": "e", "checkInCode": "X", '
                '"hash": "1", "timestamp": true}'
            ),
            (
                '{"participantId": "p", "eventId": "e", "checkInCode": "", '
                '"hash": "1", "timestamp": 1}'
            ),
        ],
    )
    def test_malformed_tokens_rejected(self, token):
        """Structurally invalid tokens raise MalformedTokenError."""
        with pytest.raises(MalformedTokenError):
            codec.decode(token)

    def test_deeply_nested_json_rejected(self):
        """Nesting past the parser recursion limit is a malformed token."""
        with pytest.raises(MalformedTokenError):
            codec.decode("[" * 2048)


class TestExpiry:
    """Tests for token time to live."""

    def test_fresh_token_validates(self):
        """A token inside its TTL is valid."""
        assert codec.validate(_token(), now=ISSUED + timedelta(hours=23))

    def test_expired_token_rejected(self):
        """A token older than its TTL raises TokenExpiredError."""
        with pytest.raises(TokenExpiredError):
            codec.decode_and_validate(_token(), ISSUED + timedelta(hours=25))
        assert not codec.validate(_token(), now=ISSUED + timedelta(hours=25))

    def test_ttl_is_configurable(self):
        """A shorter TTL expires the token sooner."""
        assert not codec.validate(
            _token(), now=ISSUED + timedelta(hours=2), ttl_hours=1
        )

    def test_last_representable_timestamp(self):
        """A token stamped at the end of year 9999 is checked without overflow."""
        token = _token(
            issued_at=datetime(9999, 12, 31, 23, 59, 59, tzinfo=timezone.utc)
        )

        payload = codec.decode_and_validate(token, ISSUED)

        assert payload.issued_at.year == 9999
        assert not codec.is_expired(payload, ISSUED)
        assert codec.validate(token, now=ISSUED)

    def test_earliest_timestamp_expired(self):
        """A token stamped at the epoch is long expired."""
        token = _token(issued_at=datetime(1970, 1, 1, tzinfo=timezone.utc))
        assert not codec.validate(token, now=ISSUED)

    def test_validate_false_for_bad_signature(self):
        """validate reports tampering as False instead of raising."""
        data = json.loads(_token())
        data["hash"] = "0"
        assert not codec.validate(json.dumps(data), now=ISSUED)


class TestCheckinCodes:
    """Tests for human-typeable check-in codes."""

    def test_code_starts_with_event_initials(self):
        """Codes begin with up to three initials of the event name."""
        code = codec.generate_checkin_code("Summer Music Festival Gala")
        assert code.startswith("SMF")
        assert len(code) == codec.CODE_LENGTH
        assert all(char in codec.ALPHABET for char in code)

    def test_short_names_padded_with_x(self):
        """Names with fewer than three words are padded with X."""
        assert codec.generate_checkin_code("Tech Conference").startswith("TCX")
        assert codec.generate_checkin_code("").startswith("XXX")

    def test_initials_upper_cased(self):
        """Lower-case names still yield upper-case initials."""
        assert codec.generate_checkin_code("  lowercase  words ").startswith("LWX")

    def test_codes_vary(self):
        """The random part differs between calls."""
        codes = {codec.generate_checkin_code("Tech Conference") for _ in range(20)}
        assert len(codes) > 1

    def test_parse_splits_code(self):
        """parse_checkin_code returns initials and random part."""
        assert codec.parse_checkin_code("TCXA3K9P") == ("TCX", "A3K9P")
        assert codec.parse_checkin_code("SHORT") is None
