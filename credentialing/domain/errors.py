"""Domain error codes for the credentialing module.

Policy denials are not errors: they are returned as ``Decision`` values.
Only lookup failures, codec failures and infrastructure failures are raised.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    UNKNOWN_CODE = "UNKNOWN_CODE"
    MALFORMED_TOKEN = "MALFORMED_TOKEN"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    BUSY = "BUSY"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    STATION_NOT_FOUND = "STATION_NOT_FOUND"
    ZONE_NOT_FOUND = "ZONE_NOT_FOUND"
    TICKET_TYPE_NOT_FOUND = "TICKET_TYPE_NOT_FOUND"
    DUPLICATE_ZONE = "DUPLICATE_ZONE"
    INVALID_ID = "INVALID_ID"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class UnknownCodeError(DomainError):
    """Raised when a scanned or typed code matches no participant."""

    def __init__(self, code: str) -> None:
        super().__init__(
            code=ErrorCode.UNKNOWN_CODE,
            message="Invalid ticket code",
        )
        self.scanned_code = code


class TokenError(DomainError):
    """Base for codec failures. Upstream these read as an unknown code."""


class MalformedTokenError(TokenError):
    """Raised when a QR token cannot be parsed."""

    def __init__(self, reason: str) -> None:
        super().__init__(
            code=ErrorCode.MALFORMED_TOKEN,
            message="Malformed ticket token",
        )
        self.reason = reason


class InvalidSignatureError(TokenError):
    """Raised when a QR token checksum does not match its fields."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.INVALID_SIGNATURE,
            message="Ticket token signature mismatch",
        )


class TokenExpiredError(TokenError):
    """Raised when a QR token is older than its time to live."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.TOKEN_EXPIRED,
            message="Ticket token expired",
        )


class BusyError(DomainError):
    """Raised when the per-participant lock could not be taken in time."""

    def __init__(self, participant_id: str) -> None:
        super().__init__(
            code=ErrorCode.BUSY,
            message="Check-in is busy for this ticket, please retry",
        )
        self.participant_id = participant_id


class PersistenceFailureError(DomainError):
    """Raised when a ledger entry could not be durably committed."""

    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.PERSISTENCE_FAILURE,
            message="Check-in could not be recorded",
        )


class EventNotFoundError(DomainError):
    """Raised when an event is not found."""

    def __init__(self, event_id: str) -> None:
        super().__init__(
            code=ErrorCode.EVENT_NOT_FOUND,
            message="Event not found",
        )
        self.event_id = event_id


class StationNotFoundError(DomainError):
    """Raised when a check-in station is not found."""

    def __init__(self, station_id: str) -> None:
        super().__init__(
            code=ErrorCode.STATION_NOT_FOUND,
            message="Check-in station not found",
        )
        self.station_id = station_id


class ZoneNotFoundError(DomainError):
    """Raised when an access zone is not found for an event."""

    def __init__(self, zone_code: str) -> None:
        super().__init__(
            code=ErrorCode.ZONE_NOT_FOUND,
            message="Access zone not found",
        )
        self.zone_code = zone_code


class TicketTypeNotFoundError(DomainError):
    """Raised when a ticket type is not found for an event."""

    def __init__(self, ticket_type_id: str) -> None:
        super().__init__(
            code=ErrorCode.TICKET_TYPE_NOT_FOUND,
            message="Ticket type not found",
        )
        self.ticket_type_id = ticket_type_id


class DuplicateZoneError(DomainError):
    """Raised when a zone code is already used within an event."""

    def __init__(self, zone_code: str) -> None:
        super().__init__(
            code=ErrorCode.DUPLICATE_ZONE,
            message="Access zone code already exists for this event",
        )
        self.zone_code = zone_code


class InvalidIdError(DomainError):
    """Raised when an identifier is not a valid UUID."""

    def __init__(self, kind: str = "id") -> None:
        super().__init__(
            code=ErrorCode.INVALID_ID,
            message=f"Invalid {kind} format",
        )
