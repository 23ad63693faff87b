"""Redemption service - the check-in entry point.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return results or domain errors

Policy denials come back as ``RedemptionResult`` values. Only a ledger
commit failure escapes as an exception (``PersistenceFailureError``).
"""

import logging
import threading
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Self

from credentialing.conf import EngineSettings
from credentialing.domain import (
    CheckinEntry,
    CheckinMethod,
    CheckinStation,
    Decision,
    EventId,
    Participant,
    StationId,
    TicketType,
)
from credentialing.domain import codec
from credentialing.domain.errors import BusyError, TokenError, UnknownCodeError
from credentialing.domain.policy import evaluate
from credentialing.stores.interfaces import CheckinStore, RegistryStore

logger = logging.getLogger(__name__)

RedemptionListener = Callable[[CheckinEntry], None]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RedemptionOptions:
    access_zone: str | None = None
    station_id: StationId | None = None
    operator_id: str | None = None
    allow_multiple_entries_override: bool | None = None
    method: CheckinMethod = CheckinMethod.QR
    notes: str = ""


@dataclass(frozen=True)
class RedemptionResult:
    """What the operator sees after a scan. ``status`` is ok, already or error."""

    status: str
    message: str
    entry_number: int | None = None
    participant: Participant | None = None
    entry: CheckinEntry | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @classmethod
    def from_decision(
        cls,
        decision: Decision,
        participant: Participant | None = None,
        entry: CheckinEntry | None = None,
    ) -> Self:
        return cls(
            status=decision.status,
            message=decision.message,
            entry_number=decision.entry_number,
            participant=participant,
            entry=entry,
        )

    @classmethod
    def error(cls, message: str, participant: Participant | None = None) -> Self:
        return cls(status="error", message=message, participant=participant)


@dataclass(frozen=True)
class BulkCheckinResult:
    successful: int = 0
    failed: int = 0
    already_checked: int = 0
    processed: int = 0
    cancelled: bool = False


class RedemptionService:
    """Coordinates code resolution, policy evaluation and the ledger append."""

    def __init__(
        self,
        store: CheckinStore,
        registry: RegistryStore,
        settings: EngineSettings | None = None,
        clock: Callable[[], datetime] = utc_now,
        listeners: Iterable[RedemptionListener] = (),
    ) -> None:
        self._store = store
        self._registry = registry
        self._settings = settings or EngineSettings()
        self._clock = clock
        self._listeners = list(listeners)

    def add_listener(self, listener: RedemptionListener) -> None:
        self._listeners.append(listener)

    def redeem(
        self,
        code: str,
        event_id: EventId,
        options: RedemptionOptions | None = None,
    ) -> RedemptionResult:
        """Check in the ticket holding ``code``.

        Raises:
            PersistenceFailureError: If an allowed entry could not be committed.
        """
        return self._redeem(code, event_id, options or RedemptionOptions())

    def redeem_token(
        self,
        token: str,
        event_id: EventId,
        options: RedemptionOptions | None = None,
    ) -> RedemptionResult:
        """Check in from a scanned QR token. Codec failures read as an unknown code.

        The token must name the participant its check-in code resolves to.
        """
        try:
            payload = codec.decode_and_validate(
                token, self._clock(), self._settings.token_ttl_hours
            )
        except TokenError as exc:
            logger.info(
                "Rejected ticket token",
                extra={"event_id": str(event_id), "reason": exc.code.value},
            )
            return RedemptionResult.from_decision(Decision.unknown_ticket())

        if payload.event_id != str(event_id):
            logger.info(
                "Ticket token for another event", extra={"event_id": str(event_id)}
            )
            return RedemptionResult.from_decision(Decision.unknown_ticket())

        return self._redeem(
            payload.checkin_code,
            event_id,
            options or RedemptionOptions(),
            token_participant_id=payload.participant_id,
        )

    def _redeem(
        self,
        code: str,
        event_id: EventId,
        options: RedemptionOptions,
        token_participant_id: str | None = None,
    ) -> RedemptionResult:
        code = code.strip()

        event = self._store.get_event(event_id)
        if event is None:
            return RedemptionResult.error("Event not found")

        station: CheckinStation | None = None
        if options.station_id is not None:
            station = self._registry.get_station(options.station_id)
            if station is None or station.event_id != event_id:
                return RedemptionResult.error("Check-in station not found")
            if not station.is_active:
                return RedemptionResult.error("Check-in station is inactive")
            if options.access_zone is None and station.zone_code:
                options = replace(options, access_zone=station.zone_code)

        resolved = (
            self._store.find_participant_and_ticket_type(code, event_id)
            if code
            else None
        )
        if resolved is None:
            logger.info(
                "Unknown check-in code",
                extra={
                    "event_id": str(event_id),
                    "station_id": str(options.station_id),
                },
            )
            return RedemptionResult.from_decision(Decision.unknown_ticket())
        participant, ticket_type = resolved

        if (
            token_participant_id is not None
            and token_participant_id != str(participant.id)
        ):
            logger.info(
                "Ticket token names another participant",
                extra={
                    "event_id": str(event_id),
                    "participant_id": str(participant.id),
                },
            )
            return RedemptionResult.from_decision(Decision.unknown_ticket())

        attempts = self._settings.busy_retries + 1
        for attempt in range(attempts):
            try:
                result = self._redeem_locked(
                    participant, ticket_type, event.timezone, options
                )
            except BusyError:
                logger.warning(
                    "Participant lock busy",
                    extra={
                        "participant_id": str(participant.id),
                        "attempt": attempt + 1,
                    },
                )
                if attempt + 1 < attempts:
                    time.sleep(self._settings.busy_backoff_seconds * (attempt + 1))
                continue
            except UnknownCodeError:
                return RedemptionResult.from_decision(Decision.unknown_ticket())

            if result.entry is not None:
                self._after_commit(result.entry, station)
            return result

        return RedemptionResult.error(
            BusyError(str(participant.id)).message, participant
        )

    def bulk_check_in(
        self,
        codes: Sequence[str],
        event_id: EventId,
        options: RedemptionOptions | None = None,
        cancel: threading.Event | None = None,
    ) -> BulkCheckinResult:
        """Redeem codes one after another, tallying outcomes.

        A denial never stops the batch. Setting ``cancel`` stops it before
        the next code.
        """
        options = options or RedemptionOptions(method=CheckinMethod.BATCH)
        successful = failed = already = processed = 0

        for code in codes:
            if cancel is not None and cancel.is_set():
                logger.info(
                    "Bulk check-in cancelled",
                    extra={"event_id": str(event_id), "processed": processed},
                )
                return BulkCheckinResult(
                    successful, failed, already, processed, cancelled=True
                )

            result = self.redeem(code, event_id, options)
            processed += 1
            if result.status == "ok":
                successful += 1
            elif result.status == "already":
                already += 1
            else:
                failed += 1

        return BulkCheckinResult(successful, failed, already, processed)

    def _redeem_locked(
        self,
        participant: Participant,
        ticket_type: TicketType,
        tz: str,
        options: RedemptionOptions,
    ) -> RedemptionResult:
        access_control = ticket_type.access_control
        if options.allow_multiple_entries_override is not None:
            access_control = replace(
                access_control,
                allow_multiple_entries=options.allow_multiple_entries_override,
            )

        with self._store.redemption(
            participant.event_id, participant.id, self._settings.lock_timeout_seconds
        ) as unit:
            history = unit.history()
            now = self._clock()
            decision = evaluate(access_control, history, options.access_zone, now, tz)
            if not decision.allowed:
                logger.info(
                    "Check-in denied",
                    extra={
                        "participant_id": str(participant.id),
                        "decision": decision.kind.value,
                    },
                )
                return RedemptionResult.from_decision(decision, participant)

            entry = unit.append(
                CheckinEntry(
                    participant_id=participant.id,
                    event_id=participant.event_id,
                    ticket_type_id=ticket_type.id,
                    checked_in_at=now,
                    entry_number=decision.entry_number,
                    method=options.method,
                    access_zone=options.access_zone,
                    station_id=options.station_id,
                    operator_id=options.operator_id,
                    notes=options.notes,
                )
            )
            unit.mark_checked_in(now)

        logger.info(
            "Check-in recorded",
            extra={
                "participant_id": str(participant.id),
                "entry_number": entry.entry_number,
                "station_id": str(options.station_id),
            },
        )
        checked_in = replace(
            participant, checked_in=True, checked_in_at=entry.checked_in_at
        )
        return RedemptionResult.from_decision(decision, checked_in, entry)

    def _after_commit(
        self, entry: CheckinEntry, station: CheckinStation | None
    ) -> None:
        if station is not None:
            try:
                self._registry.record_station_activity(station.id, entry.checked_in_at)
            except Exception:
                # The ledger already holds the entry
                logger.warning(
                    "Station counter update failed",
                    extra={"station_id": str(station.id)},
                    exc_info=True,
                )

        for listener in self._listeners:
            try:
                listener(entry)
            except Exception:
                logger.exception(
                    "Redemption listener failed",
                    extra={"participant_id": str(entry.participant_id)},
                )
