"""Code service - issues check-in codes and QR tokens for ticket rendering."""

from datetime import datetime

from credentialing.domain import EventId, ParticipantId, codec
from credentialing.domain.errors import EventNotFoundError, UnknownCodeError
from credentialing.stores.interfaces import CheckinStore


class CodeService:
    def __init__(self, store: CheckinStore) -> None:
        self._store = store

    def generate_code(self, event_id: EventId) -> str:
        """Return a fresh check-in code carrying the event initials.

        Raises:
            EventNotFoundError: If the event does not exist.
        """
        event = self._store.get_event(event_id)
        if event is None:
            raise EventNotFoundError(str(event_id))
        return codec.generate_checkin_code(event.name)

    def issue_token(
        self, event_id: EventId, participant_id: ParticipantId, issued_at: datetime
    ) -> str:
        """Encode the QR token printed on a participant's ticket.

        Raises:
            UnknownCodeError: If the participant is not part of the event.
        """
        participant = self._store.get_participant(participant_id)
        if participant is None or participant.event_id != event_id:
            raise UnknownCodeError(str(participant_id))
        return codec.encode(
            participant_id=str(participant.id),
            event_id=str(participant.event_id),
            ticket_type_id=str(participant.ticket_type_id),
            checkin_code=participant.code,
            order_number=participant.order_number or None,
            issued_at=issued_at,
        )
