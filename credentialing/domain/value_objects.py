"""Domain primitives that enforce validity at creation time."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Self
from uuid import UUID, uuid4


@dataclass(frozen=True)
class EventId:
    """Unique identifier for an Event."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class ParticipantId:
    """Unique identifier for a Participant (one redeemable ticket)."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    @classmethod
    def new(cls) -> Self:
        return cls(value=uuid4())

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class TicketTypeId:
    """Unique identifier for a TicketType."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class StationId:
    """Unique identifier for a CheckinStation."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    @classmethod
    def new(cls) -> Self:
        return cls(value=uuid4())

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Money:
    """Price representation with validation."""

    amount: Decimal

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("Money amount cannot be negative")

    def __str__(self) -> str:
        return f"{self.amount:.2f}"


@dataclass(frozen=True)
class Capacity:
    """Non-negative integer representing capacity."""

    value: int

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError("Capacity cannot be negative")


class CheckinMethod(Enum):
    """How a redemption reached the engine."""

    QR = "qr"
    MANUAL = "manual"
    BATCH = "lote"


class Visibility(Enum):
    PUBLIC = "public"
    PRIVATE = "private"
