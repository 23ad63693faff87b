"""Ticket token encoding and decoding.

A token is a compact JSON object carrying the identity fields of one
participant plus an integrity checksum:

    {"participantId": ..., "eventId": ..., "ticketType": ...,
     "checkInCode": ..., "orderNumber": ..., "timestamp": <epoch ms>,
     "hash": <base36>}

The checksum is the classic 32-bit ``h = h * 31 + c`` string hash over
``participantId|eventId|ticketType|checkInCode|orderNumber|timestamp``
(UTF-16 code units, absolute value, upper-case base 36). It detects
accidental or casual tampering; it is not a cryptographic signature.

Check-in codes are short human-typeable strings: three event initials
followed by five random base36 characters, e.g. ``TCXA3K9P``.
"""


import json
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from credentialing.domain.errors import (
    InvalidSignatureError,
    MalformedTokenError,
    TokenError,
    TokenExpiredError,
)

# Base36 alphabet, upper case
ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
BASE = len(ALPHABET)

CODE_LENGTH = 8
INITIALS_LENGTH = 3
DEFAULT_TTL_HOURS = 24

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_REQUIRED_FIELDS = ("participantId", "eventId", "checkInCode", "hash")


@dataclass(frozen=True)
class TokenPayload:
    participant_id: str
    event_id: str
    ticket_type_id: str
    checkin_code: str
    order_number: str | None
    issued_at: datetime
    hash: str


def _to_base36(value: int) -> str:
    if value == 0:
        return ALPHABET[0]
    chars = []
    while value:
        value, rem = divmod(value, BASE)
        chars.append(ALPHABET[rem])
    return "".join(reversed(chars))


def _string_hash(data: str) -> int:
    """32-bit signed ``h * 31 + c`` hash over UTF-16 code units."""
    raw = data.encode("utf-16-le")
    h = 0
    for i in range(0, len(raw), 2):
        unit = raw[i] | (raw[i + 1] << 8)
        h = (h * 31 + unit) & 0xFFFFFFFF
    if h >= 0x80000000:
        h -= 0x100000000
    return h


def _to_millis(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - _EPOCH) // timedelta(milliseconds=1)


def _from_millis(millis: int) -> datetime:
    return _EPOCH + timedelta(milliseconds=millis)


def compute_hash(
    participant_id: str,
    event_id: str,
    ticket_type_id: str,
    checkin_code: str,
    order_number: str | None,
    timestamp_ms: int,
) -> str:
    data = "|".join(
        [
            participant_id,
            event_id,
            ticket_type_id,
            checkin_code,
            order_number or "",
            str(timestamp_ms),
        ]
    )
    return _to_base36(abs(_string_hash(data)))


def encode(
    participant_id: str,
    event_id: str,
    ticket_type_id: str,
    checkin_code: str,
    order_number: str | None = None,
    issued_at: datetime | None = None,
) -> str:
    """Build a signed token for printing on a ticket or label."""
    timestamp_ms = _to_millis(issued_at or datetime.now(timezone.utc))
    body = {
        "participantId": participant_id,
        "eventId": event_id,
        "ticketType": ticket_type_id,
        "checkInCode": checkin_code,
        "orderNumber": order_number,
        "timestamp": timestamp_ms,
        "hash": compute_hash(
            participant_id,
            event_id,
            ticket_type_id,
            checkin_code,
            order_number,
            timestamp_ms,
        ),
    }
    return json.dumps(body, separators=(",", ":"))


def decode(token: str) -> TokenPayload:
    """Parse a token and verify its checksum.

    Raises:
        MalformedTokenError: If the token structure cannot be parsed.
        InvalidSignatureError: If the checksum does not match the fields.
    """
    try:
        data = json.loads(token)
    except (TypeError, ValueError, RecursionError) as exc:
        raise MalformedTokenError("not valid JSON") from exc

    if not isinstance(data, dict):
        raise MalformedTokenError("not a JSON object")
    for name in _REQUIRED_FIELDS:
        if not isinstance(data.get(name), str) or not data[name]:
            raise MalformedTokenError(f"missing {name}")

    timestamp = data.get("timestamp")
    # bool is an int subclass
    if not isinstance(timestamp, int) or isinstance(timestamp, bool):
        raise MalformedTokenError("missing timestamp")

    ticket_type = data.get("ticketType") or ""
    order_number = data.get("orderNumber")
    if not isinstance(ticket_type, str) or (
        order_number is not None and not isinstance(order_number, str)
    ):
        raise MalformedTokenError("bad field type")

    expected = compute_hash(
        data["participantId"],
        data["eventId"],
        ticket_type,
        data["checkInCode"],
        order_number,
        timestamp,
    )
    if expected != data["hash"]:
        raise InvalidSignatureError()

    try:
        issued_at = _from_millis(timestamp)
    except (OverflowError, OSError, ValueError) as exc:
        raise MalformedTokenError("timestamp out of range") from exc

    return TokenPayload(
        participant_id=data["participantId"],
        event_id=data["eventId"],
        ticket_type_id=ticket_type,
        checkin_code=data["checkInCode"],
        order_number=order_number,
        issued_at=issued_at,
        hash=data["hash"],
    )


def is_expired(
    payload: TokenPayload, now: datetime, ttl_hours: float = DEFAULT_TTL_HOURS
) -> bool:
    return now - payload.issued_at > timedelta(hours=ttl_hours)


def decode_and_validate(
    token: str, now: datetime, ttl_hours: float = DEFAULT_TTL_HOURS
) -> TokenPayload:
    """Decode a token and reject it when expired.

    Raises:
        MalformedTokenError, InvalidSignatureError, TokenExpiredError
    """
    payload = decode(token)
    if is_expired(payload, now, ttl_hours):
        raise TokenExpiredError()
    return payload


def validate(
    token: str, now: datetime | None = None, ttl_hours: float = DEFAULT_TTL_HOURS
) -> bool:
    """Return True when the token parses, its checksum matches and it is fresh."""
    try:
        decode_and_validate(token, now or datetime.now(timezone.utc), ttl_hours)
    except TokenError:
        return False
    return True


def generate_checkin_code(event_name: str) -> str:
    """Generate a check-in code like ``TCXA3K9P`` for an event."""
    initials = "".join(word[0].upper() for word in event_name.split() if word)
    initials = initials[:INITIALS_LENGTH].ljust(INITIALS_LENGTH, "X")
    random_part = "".join(
        secrets.choice(ALPHABET) for _ in range(CODE_LENGTH - INITIALS_LENGTH)
    )
    return f"{initials}{random_part}"


def parse_checkin_code(code: str) -> tuple[str, str] | None:
    """Split a check-in code into event initials and random part."""
    if len(code) != CODE_LENGTH:
        return None
    return code[:INITIALS_LENGTH], code[INITIALS_LENGTH:]
