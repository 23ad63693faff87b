"""History service - read side of the checkin ledger.

The cached ``checked_in`` flag on participants is derivable from the
ledger at any time; ``reconcile_checked_in_flags`` rebuilds it.
"""

import logging
from dataclasses import dataclass

from credentialing.domain import CheckinEntry, EventId, ParticipantId
from credentialing.domain.errors import EventNotFoundError
from credentialing.stores.interfaces import CheckinStore, iter_ascending

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventStats:
    total: int
    checked_in: int
    pending: int
    checkin_rate: float
    multiple_entries: int
    total_entries: int


class HistoryService:
    """Service for ledger queries and reports."""

    def __init__(self, store: CheckinStore) -> None:
        self._store = store

    def get_history(
        self, event_id: EventId, participant_id: ParticipantId | None = None
    ) -> list[CheckinEntry]:
        """Return ledger entries, newest first.

        Raises:
            EventNotFoundError: If the event does not exist.
        """
        self._require_event(event_id)
        return self._store.query_history(event_id, participant_id)

    def event_stats(self, event_id: EventId) -> EventStats:
        """Attendance figures computed from the ledger, not from cached flags."""
        self._require_event(event_id)
        participants = self._store.list_participants(event_id)
        entries = self._store.query_history(event_id)

        per_participant: dict[ParticipantId, int] = {}
        for entry in entries:
            count = per_participant.get(entry.participant_id, 0)
            per_participant[entry.participant_id] = count + 1

        total = len(participants)
        checked_in = sum(1 for p in participants if p.id in per_participant)
        return EventStats(
            total=total,
            checked_in=checked_in,
            pending=total - checked_in,
            checkin_rate=round(checked_in / total * 100, 1) if total else 0.0,
            multiple_entries=sum(1 for count in per_participant.values() if count > 1),
            total_entries=len(entries),
        )

    def reconcile_checked_in_flags(self, event_id: EventId) -> int:
        """Rewrite cached flags from the ledger. Returns how many changed.

        Matches what redemption writes: the flag is set by any entry and
        ``checked_in_at`` holds the time of the latest one.
        """
        self._require_event(event_id)
        latest_entry: dict[ParticipantId, CheckinEntry] = {}
        for entry in iter_ascending(self._store.query_history(event_id)):
            latest_entry[entry.participant_id] = entry

        fixed = 0
        for participant in self._store.list_participants(event_id):
            entry = latest_entry.get(participant.id)
            expected = entry is not None
            expected_at = entry.checked_in_at if entry else None
            if (
                participant.checked_in == expected
                and participant.checked_in_at == expected_at
            ):
                continue
            self._store.set_checked_in(participant.id, expected, expected_at)
            fixed += 1

        if fixed:
            logger.warning(
                "Reconciled cached check-in flags",
                extra={"event_id": str(event_id), "fixed": fixed},
            )
        return fixed

    def _require_event(self, event_id: EventId) -> None:
        if self._store.get_event(event_id) is None:
            raise EventNotFoundError(str(event_id))
