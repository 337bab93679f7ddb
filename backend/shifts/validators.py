"""
shifts.validators — Shift conflict validation.

``ShiftValidator`` decides whether a proposed shift may be persisted.  It
reads from two collaborators and never writes:

    officer_directory.find_officers_by_ids(ids)    -> list of officers
    shift_store.find_shifts_by_any_officer(ids)    -> list of ShiftRecord

Rules run in a fixed order and the first failure wins:

    1. missing_time_bounds    start or end absent
    2. start_after_end        start >= end
    3. start_in_past          start earlier than now
    4. duration_exceeded      end - start > max duration
    5. officers_not_found     requested ids the directory does not know
    6.                        (fetch candidate shifts, minus the proposal itself)
    7. overlapping_shift      half-open [start, end) intersection
    8. insufficient_rest      gap to a neighbouring shift < min rest
    9. daily_limit_exceeded   same-day shift count would exceed the maximum

The validator holds no state between calls.  Callers that persist the
outcome are responsible for serialising concurrent writers (see
``ShiftService``).

Usage::

    validator = ShiftValidator(OfficerDirectory(), ShiftStore())
    result = validator.validate(ProposedShift(start, end, {1, 2}))
    result.raise_if_rejected()
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Protocol

from django.conf import settings
from django.utils import timezone

from core.domain.exceptions import DomainError


class RejectionCode:
    MISSING_TIME_BOUNDS = "missing_time_bounds"
    START_AFTER_END = "start_after_end"
    START_IN_PAST = "start_in_past"
    DURATION_EXCEEDED = "duration_exceeded"
    OFFICERS_NOT_FOUND = "officers_not_found"
    OVERLAPPING_SHIFT = "overlapping_shift"
    INSUFFICIENT_REST = "insufficient_rest"
    DAILY_LIMIT_EXCEEDED = "daily_limit_exceeded"


# ═══════════════════════════════════════════════════════════════════
#  Value objects
# ═══════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ShiftPolicy:
    max_duration: datetime.timedelta
    min_rest: datetime.timedelta
    max_shifts_per_day: int
    time_zone: datetime.tzinfo | None = None

    @classmethod
    def from_settings(cls) -> ShiftPolicy:
        conf = settings.SHIFT_POLICY
        return cls(
            max_duration=datetime.timedelta(hours=conf["MAX_DURATION_HOURS"]),
            min_rest=datetime.timedelta(hours=conf["MIN_REST_HOURS"]),
            max_shifts_per_day=conf["MAX_SHIFTS_PER_DAY"],
        )

    def local_date(self, value: datetime.datetime) -> datetime.date:
        """Calendar day of ``value`` in the policy zone (default: ``TIME_ZONE``)."""
        return timezone.localtime(value, self.time_zone or timezone.get_default_timezone()).date()


@dataclass(frozen=True)
class ProposedShift:
    """A shift about to be created (``id`` is None) or updated."""

    start_time: datetime.datetime | None
    end_time: datetime.datetime | None
    officer_ids: frozenset[int] = field(default_factory=frozenset)
    id: int | None = None

    def __post_init__(self):
        object.__setattr__(self, "officer_ids", frozenset(self.officer_ids))


@dataclass(frozen=True)
class ShiftRecord:
    """Snapshot of a stored shift as seen by the validator."""

    id: int
    start_time: datetime.datetime
    end_time: datetime.datetime
    officer_ids: frozenset[int]

    def __post_init__(self):
        object.__setattr__(self, "officer_ids", frozenset(self.officer_ids))


@dataclass(frozen=True)
class ShiftValidationResult:
    ok: bool
    code: str | None = None
    reason: str = ""
    officer_id: int | None = None
    conflicting_shift_id: int | None = None

    @classmethod
    def accepted(cls) -> ShiftValidationResult:
        return cls(ok=True)

    @classmethod
    def rejected(
        cls,
        code: str,
        reason: str,
        *,
        officer_id: int | None = None,
        conflicting_shift_id: int | None = None,
    ) -> ShiftValidationResult:
        return cls(
            ok=False,
            code=code,
            reason=reason,
            officer_id=officer_id,
            conflicting_shift_id=conflicting_shift_id,
        )

    def raise_if_rejected(self) -> None:
        if not self.ok:
            raise ShiftRejected(self)


class ShiftRejected(DomainError):
    """
    A proposed shift broke a scheduling rule.

    Maps to HTTP 400 with ``{"detail": reason, "code": code}``.
    """

    def __init__(self, result: ShiftValidationResult) -> None:
        super().__init__(result.reason, code=result.code)
        self.result = result


# ═══════════════════════════════════════════════════════════════════
#  Collaborators
# ═══════════════════════════════════════════════════════════════════


class OfficerLookup(Protocol):
    def find_officers_by_ids(self, officer_ids: Iterable[int]) -> list[Any]: ...


class ShiftLookup(Protocol):
    def find_shifts_by_any_officer(self, officer_ids: Iterable[int]) -> list[ShiftRecord]: ...


def _format_hours(delta: datetime.timedelta) -> str:
    hours = delta.total_seconds() / 3600
    return f"{hours:g}h"


# ═══════════════════════════════════════════════════════════════════
#  Validator
# ═══════════════════════════════════════════════════════════════════


class ShiftValidator:

    def __init__(
        self,
        officer_directory: OfficerLookup,
        shift_store: ShiftLookup,
        policy: ShiftPolicy | None = None,
        clock: Callable[[], datetime.datetime] | None = None,
    ) -> None:
        self.officer_directory = officer_directory
        self.shift_store = shift_store
        self.policy = policy or ShiftPolicy.from_settings()
        self.clock = clock or timezone.now

    def validate(self, proposal: ProposedShift) -> ShiftValidationResult:
        """
        Run every rule against ``proposal`` and return the first failure,
        or an accepted result.

        Lookup errors raised by either collaborator propagate unchanged.
        """
        result = self._check_time_bounds(proposal)
        if result is not None:
            return result

        if not proposal.officer_ids:
            return ShiftValidationResult.accepted()

        result = self._check_officers_exist(proposal)
        if result is not None:
            return result

        candidates = [
            record
            for record in self.shift_store.find_shifts_by_any_officer(proposal.officer_ids)
            if proposal.id is None or record.id != proposal.id
        ]
        candidates.sort(key=lambda r: (r.start_time, r.id))

        for check in (self._check_overlap, self._check_rest, self._check_daily_load):
            result = check(proposal, candidates)
            if result is not None:
                return result
        return ShiftValidationResult.accepted()

    # ── Intrinsic rules ─────────────────────────────────────────────

    def _check_time_bounds(self, proposal: ProposedShift) -> ShiftValidationResult | None:
        start, end = proposal.start_time, proposal.end_time
        if start is None or end is None:
            return ShiftValidationResult.rejected(
                RejectionCode.MISSING_TIME_BOUNDS,
                "Shift start and end time are both required.",
            )
        if start >= end:
            return ShiftValidationResult.rejected(
                RejectionCode.START_AFTER_END,
                "Shift start time must be before its end time.",
            )
        if start < self.clock():
            return ShiftValidationResult.rejected(
                RejectionCode.START_IN_PAST,
                "Shift cannot start in the past.",
            )
        if end - start > self.policy.max_duration:
            return ShiftValidationResult.rejected(
                RejectionCode.DURATION_EXCEEDED,
                f"Shift duration cannot exceed {_format_hours(self.policy.max_duration)}.",
            )
        return None

    def _check_officers_exist(self, proposal: ProposedShift) -> ShiftValidationResult | None:
        found = {officer.pk for officer in self.officer_directory.find_officers_by_ids(proposal.officer_ids)}
        missing = sorted(proposal.officer_ids - found)
        if missing:
            return ShiftValidationResult.rejected(
                RejectionCode.OFFICERS_NOT_FOUND,
                f"Officers not found: {', '.join(str(i) for i in missing)}.",
            )
        return None

    # ── Rules against existing shifts ───────────────────────────────

    @staticmethod
    def _shared_officers(proposal: ProposedShift, record: ShiftRecord) -> list[int]:
        return sorted(proposal.officer_ids & record.officer_ids)

    def _check_overlap(self, proposal, candidates) -> ShiftValidationResult | None:
        for record in candidates:
            if not (proposal.start_time < record.end_time and record.start_time < proposal.end_time):
                continue
            for officer_id in self._shared_officers(proposal, record):
                return ShiftValidationResult.rejected(
                    RejectionCode.OVERLAPPING_SHIFT,
                    f"Officer {officer_id} has an overlapping shift (shift {record.id}).",
                    officer_id=officer_id,
                    conflicting_shift_id=record.id,
                )
        return None

    def _check_rest(self, proposal, candidates) -> ShiftValidationResult | None:
        min_rest = self.policy.min_rest
        for record in candidates:
            if record.end_time <= proposal.start_time:
                gap = proposal.start_time - record.end_time
            else:
                gap = record.start_time - proposal.end_time
            if gap >= min_rest:
                continue
            for officer_id in self._shared_officers(proposal, record):
                return ShiftValidationResult.rejected(
                    RejectionCode.INSUFFICIENT_REST,
                    f"Officer {officer_id} needs at least {_format_hours(min_rest)} of rest "
                    f"between shifts; only {_format_hours(gap)} next to shift {record.id}.",
                    officer_id=officer_id,
                    conflicting_shift_id=record.id,
                )
        return None

    def _check_daily_load(self, proposal, candidates) -> ShiftValidationResult | None:
        limit = self.policy.max_shifts_per_day
        day = self.policy.local_date(proposal.start_time)
        per_officer: dict[int, int] = {}
        for record in candidates:
            if self.policy.local_date(record.start_time) != day:
                continue
            for officer_id in self._shared_officers(proposal, record):
                per_officer[officer_id] = per_officer.get(officer_id, 0) + 1

        for officer_id in sorted(proposal.officer_ids):
            if per_officer.get(officer_id, 0) + 1 > limit:
                return ShiftValidationResult.rejected(
                    RejectionCode.DAILY_LIMIT_EXCEEDED,
                    f"Officer {officer_id} would exceed the limit of {limit} shifts on {day.isoformat()}.",
                    officer_id=officer_id,
                )
        return None
