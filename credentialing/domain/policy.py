"""Access policy evaluation.

Rules are checked in a fixed order and the first failing rule wins, so an
operator always sees "already checked in" before any day or zone problem.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Self
from zoneinfo import ZoneInfo

from credentialing.domain.models import AccessControl, CheckinEntry


class DecisionKind(Enum):
    ALLOW = "ALLOW"
    DENY_ALREADY = "DENY_ALREADY"
    DENY_DAILY_LIMIT = "DENY_DAILY_LIMIT"
    DENY_INVALID_DAY = "DENY_INVALID_DAY"
    DENY_ZONE = "DENY_ZONE"
    DENY_UNKNOWN_TICKET = "DENY_UNKNOWN_TICKET"


@dataclass(frozen=True)
class Decision:
    """Outcome of evaluating one redemption attempt."""

    kind: DecisionKind
    entry_number: int | None = None
    daily_limit: int | None = None

    @classmethod
    def allow(cls, entry_number: int) -> Self:
        return cls(DecisionKind.ALLOW, entry_number=entry_number)

    @classmethod
    def unknown_ticket(cls) -> Self:
        return cls(DecisionKind.DENY_UNKNOWN_TICKET)

    @property
    def allowed(self) -> bool:
        return self.kind is DecisionKind.ALLOW

    @property
    def status(self) -> str:
        if self.kind is DecisionKind.ALLOW:
            return "ok"
        if self.kind is DecisionKind.DENY_ALREADY:
            return "already"
        return "error"

    @property
    def message(self) -> str:
        match self.kind:
            case DecisionKind.ALLOW if self.entry_number == 1:
                return "Check-in successful!"
            case DecisionKind.ALLOW:
                return f"Check-in successful! Entry #{self.entry_number}"
            case DecisionKind.DENY_ALREADY:
                return "Participant already checked in"
            case DecisionKind.DENY_DAILY_LIMIT:
                return f"Daily limit of {self.daily_limit} entries reached"
            case DecisionKind.DENY_INVALID_DAY:
                return "Ticket not valid for today"
            case DecisionKind.DENY_ZONE:
                return "Access not allowed to this zone"
            case _:
                return "Invalid ticket code"


def local_day(moment: datetime, tz: str = "UTC") -> date:
    """Calendar date of ``moment`` in the given IANA timezone."""
    return moment.astimezone(ZoneInfo(tz)).date()


def evaluate(
    access_control: AccessControl | None,
    history: Sequence[CheckinEntry],
    requested_zone: str | None,
    now: datetime,
    tz: str = "UTC",
) -> Decision:
    """Decide whether a participant may enter now.

    ``history`` holds every prior entry of the participant for the event;
    only its length and entry timestamps are used, so display order does
    not matter here.
    """
    policy = access_control or AccessControl()
    today = local_day(now, tz)

    if history and not policy.allow_multiple_entries:
        return Decision(DecisionKind.DENY_ALREADY)

    if policy.max_entries_per_day > 0:
        today_entries = sum(
            1 for entry in history if local_day(entry.checked_in_at, tz) == today
        )
        if today_entries >= policy.max_entries_per_day:
            return Decision(
                DecisionKind.DENY_DAILY_LIMIT,
                daily_limit=policy.max_entries_per_day,
            )

    if policy.valid_days and today not in policy.valid_days:
        return Decision(DecisionKind.DENY_INVALID_DAY)

    if (
        requested_zone
        and policy.access_zones
        and requested_zone not in policy.access_zones
    ):
        return Decision(DecisionKind.DENY_ZONE)

    return Decision.allow(len(history) + 1)
