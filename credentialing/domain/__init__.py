from credentialing.domain.models import (
    AccessControl,
    AccessZone,
    CheckinEntry,
    CheckinStation,
    Event,
    Participant,
    StationSettings,
    TicketType,
)
from credentialing.domain.policy import Decision, DecisionKind
from credentialing.domain.value_objects import (
    Capacity,
    CheckinMethod,
    EventId,
    Money,
    ParticipantId,
    StationId,
    TicketTypeId,
    Visibility,
)

__all__ = [
    "AccessControl",
    "AccessZone",
    "CheckinEntry",
    "CheckinStation",
    "Event",
    "Participant",
    "StationSettings",
    "TicketType",
    "Decision",
    "DecisionKind",
    "EventId",
    "ParticipantId",
    "StationId",
    "TicketTypeId",
    "Money",
    "Capacity",
    "CheckinMethod",
    "Visibility",
]
