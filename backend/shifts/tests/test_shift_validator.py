"""
Unit tests for ``ShiftValidator``.

The validator is exercised against in-memory officer directory and shift
store fakes with a fixed clock; no database is touched.
"""

from __future__ import annotations

import datetime
from types import SimpleNamespace

import pytest

from core.domain.exceptions import DomainError, LookupFailure
from shifts.validators import (
    ProposedShift,
    RejectionCode,
    ShiftPolicy,
    ShiftRecord,
    ShiftRejected,
    ShiftValidator,
)

UTC = datetime.timezone.utc
NOW = datetime.datetime(2031, 3, 2, 6, 0, tzinfo=UTC)


def at(day: int, hour: int, minute: int = 0, tz=UTC) -> datetime.datetime:
    return datetime.datetime(2031, 3, day, hour, minute, tzinfo=tz)


def policy(**overrides) -> ShiftPolicy:
    values = {
        "max_duration": datetime.timedelta(hours=12),
        "min_rest": datetime.timedelta(hours=8),
        "max_shifts_per_day": 3,
        "time_zone": UTC,
    }
    values.update(overrides)
    return ShiftPolicy(**values)


class FakeDirectory:
    def __init__(self, known_ids):
        self.known_ids = set(known_ids)
        self.calls = 0

    def find_officers_by_ids(self, officer_ids):
        self.calls += 1
        return [SimpleNamespace(pk=i) for i in sorted(set(officer_ids) & self.known_ids)]


class FakeStore:
    def __init__(self, records=()):
        self.records = list(records)
        self.calls = 0

    def find_shifts_by_any_officer(self, officer_ids):
        self.calls += 1
        wanted = set(officer_ids)
        return [r for r in self.records if r.officer_ids & wanted]


class BrokenLookup:
    def find_officers_by_ids(self, officer_ids):
        raise LookupFailure("officer directory")

    def find_shifts_by_any_officer(self, officer_ids):
        raise LookupFailure("shift store")


def make_validator(*, officers=(1, 2, 3), records=(), **policy_overrides):
    directory = FakeDirectory(officers)
    store = FakeStore(records)
    validator = ShiftValidator(directory, store, policy(**policy_overrides), clock=lambda: NOW)
    return validator, directory, store


# ════════════════════════════════════════════════════════════════════
#  Intrinsic rules
# ════════════════════════════════════════════════════════════════════


class TestTimeBounds:

    @pytest.mark.parametrize("start,end", [(None, at(3, 10)), (at(3, 9), None), (None, None)])
    def test_missing_bound_is_rejected(self, start, end):
        validator, _, _ = make_validator()
        result = validator.validate(ProposedShift(start, end, {1}))
        assert not result.ok
        assert result.code == RejectionCode.MISSING_TIME_BOUNDS

    def test_start_equal_to_end_is_rejected(self):
        validator, _, _ = make_validator()
        result = validator.validate(ProposedShift(at(3, 9), at(3, 9), {1}))
        assert result.code == RejectionCode.START_AFTER_END

    def test_start_after_end_is_rejected(self):
        validator, _, _ = make_validator()
        result = validator.validate(ProposedShift(at(3, 10), at(3, 9), {1}))
        assert result.code == RejectionCode.START_AFTER_END

    def test_start_in_past_is_rejected(self):
        validator, _, _ = make_validator()
        result = validator.validate(
            ProposedShift(NOW - datetime.timedelta(minutes=1), NOW + datetime.timedelta(hours=1), {1})
        )
        assert result.code == RejectionCode.START_IN_PAST

    def test_start_exactly_now_is_accepted(self):
        validator, _, _ = make_validator()
        result = validator.validate(ProposedShift(NOW, NOW + datetime.timedelta(hours=4), {1}))
        assert result.ok

    def test_duration_at_limit_is_accepted(self):
        validator, _, _ = make_validator()
        assert validator.validate(ProposedShift(at(3, 6), at(3, 18), {1})).ok

    def test_duration_over_limit_names_the_limit(self):
        validator, _, _ = make_validator()
        result = validator.validate(ProposedShift(at(3, 6), at(3, 18, 1), {1}))
        assert result.code == RejectionCode.DURATION_EXCEEDED
        assert "12h" in result.reason

    def test_intrinsic_failure_skips_lookups(self):
        validator, directory, store = make_validator()
        validator.validate(ProposedShift(at(1, 9), at(1, 10), {99}))
        assert directory.calls == 0
        assert store.calls == 0


class TestOfficerExistence:

    def test_missing_officers_are_named_exactly(self):
        validator, _, _ = make_validator(officers=[1])
        result = validator.validate(ProposedShift(at(3, 9), at(3, 17), {1, 2, 3}))
        assert result.code == RejectionCode.OFFICERS_NOT_FOUND
        assert result.reason == "Officers not found: 2, 3."

    def test_unknown_officer_wins_over_conflict(self):
        existing = ShiftRecord(10, at(3, 9), at(3, 17), {1})
        validator, _, store = make_validator(officers=[1], records=[existing])
        result = validator.validate(ProposedShift(at(3, 10), at(3, 12), {1, 7}))
        assert result.code == RejectionCode.OFFICERS_NOT_FOUND
        assert store.calls == 0

    def test_empty_officer_set_needs_no_lookup(self):
        validator, directory, store = make_validator()
        assert validator.validate(ProposedShift(at(3, 9), at(3, 17))).ok
        assert directory.calls == 0
        assert store.calls == 0


# ════════════════════════════════════════════════════════════════════
#  Rules against existing shifts
# ════════════════════════════════════════════════════════════════════


class TestOverlapAndRest:
    """Officer 1 already works 09:00–17:00 on the 3rd."""

    existing = ShiftRecord(10, at(3, 9), at(3, 17), {1})

    def test_overlap_names_officer_and_shift(self):
        validator, _, _ = make_validator(records=[self.existing])
        result = validator.validate(ProposedShift(at(3, 16), at(3, 20), {1}))
        assert result.code == RejectionCode.OVERLAPPING_SHIFT
        assert result.officer_id == 1
        assert result.conflicting_shift_id == 10
        assert "Officer 1" in result.reason

    def test_contained_shift_overlaps(self):
        validator, _, _ = make_validator(records=[self.existing])
        result = validator.validate(ProposedShift(at(3, 10), at(3, 11), {1}))
        assert result.code == RejectionCode.OVERLAPPING_SHIFT

    def test_adjacent_shift_is_a_rest_violation_not_an_overlap(self):
        validator, _, _ = make_validator(records=[self.existing])
        result = validator.validate(ProposedShift(at(3, 17), at(3, 21), {1}))
        assert result.code == RejectionCode.INSUFFICIENT_REST
        assert result.officer_id == 1

    def test_adjacent_shift_accepted_without_rest_requirement(self):
        validator, _, _ = make_validator(records=[self.existing], min_rest=datetime.timedelta(0))
        assert validator.validate(ProposedShift(at(3, 17), at(3, 21), {1})).ok

    def test_rest_gap_equal_to_minimum_is_accepted(self):
        validator, _, _ = make_validator(records=[self.existing])
        assert validator.validate(ProposedShift(at(4, 1), at(4, 5), {1})).ok

    def test_rest_gap_just_below_minimum_is_rejected(self):
        validator, _, _ = make_validator(records=[self.existing])
        result = validator.validate(ProposedShift(at(4, 0, 59), at(4, 5), {1}))
        assert result.code == RejectionCode.INSUFFICIENT_REST

    def test_rest_before_following_shift_is_checked(self):
        validator, _, _ = make_validator(records=[self.existing])
        result = validator.validate(ProposedShift(at(3, 6, 30), at(3, 8), {1}))
        assert result.code == RejectionCode.INSUFFICIENT_REST
        assert result.conflicting_shift_id == 10

    def test_other_officers_shifts_do_not_conflict(self):
        validator, _, _ = make_validator(records=[self.existing])
        assert validator.validate(ProposedShift(at(3, 10), at(3, 12), {2})).ok

    def test_update_excludes_the_shift_itself(self):
        validator, _, _ = make_validator(records=[self.existing])
        result = validator.validate(ProposedShift(at(3, 10), at(3, 18), {1}, id=10))
        assert result.ok

    def test_overlap_is_checked_before_rest(self):
        near = ShiftRecord(11, at(3, 18), at(3, 20), {1})
        validator, _, _ = make_validator(records=[self.existing, near])
        result = validator.validate(ProposedShift(at(3, 16), at(3, 17, 30), {1}))
        assert result.code == RejectionCode.OVERLAPPING_SHIFT
        assert result.conflicting_shift_id == 10

    def test_lowest_officer_id_is_reported_first(self):
        shared = ShiftRecord(12, at(3, 9), at(3, 17), {3, 2})
        validator, _, _ = make_validator(records=[shared])
        result = validator.validate(ProposedShift(at(3, 12), at(3, 14), {2, 3}))
        assert result.officer_id == 2


class TestDailyLoad:

    no_rest = datetime.timedelta(0)

    def day_of_three(self):
        return [
            ShiftRecord(20, at(3, 0), at(3, 1), {1}),
            ShiftRecord(21, at(3, 2), at(3, 3), {1}),
            ShiftRecord(22, at(3, 4), at(3, 5), {1}),
        ]

    def test_fourth_shift_on_same_day_is_rejected(self):
        validator, _, _ = make_validator(records=self.day_of_three(), min_rest=self.no_rest)
        result = validator.validate(ProposedShift(at(3, 6), at(3, 7), {1}))
        assert result.code == RejectionCode.DAILY_LIMIT_EXCEEDED
        assert result.officer_id == 1
        assert "3 shifts" in result.reason

    def test_removing_one_shift_allows_exactly_one_more(self):
        records = self.day_of_three()[:2]
        validator, _, _ = make_validator(records=records, min_rest=self.no_rest)
        assert validator.validate(ProposedShift(at(3, 6), at(3, 7), {1})).ok

    def test_shifts_on_other_days_are_not_counted(self):
        records = self.day_of_three()[:2] + [ShiftRecord(23, at(4, 4), at(4, 5), {1})]
        validator, _, _ = make_validator(records=records, min_rest=self.no_rest)
        assert validator.validate(ProposedShift(at(3, 6), at(3, 7), {1})).ok

    def test_day_boundary_follows_configured_time_zone(self):
        eastern = datetime.timezone(datetime.timedelta(hours=-5))
        # 03:00 UTC on the 3rd is 22:00 on the 2nd in UTC-5.
        records = [ShiftRecord(30, at(3, 3), at(3, 4), {1})]
        proposal = ProposedShift(at(3, 10), at(3, 11), {1})

        utc_validator, _, _ = make_validator(
            records=records, min_rest=self.no_rest, max_shifts_per_day=1,
        )
        assert utc_validator.validate(proposal).code == RejectionCode.DAILY_LIMIT_EXCEEDED

        local_validator, _, _ = make_validator(
            records=records, min_rest=self.no_rest, max_shifts_per_day=1, time_zone=eastern,
        )
        assert local_validator.validate(proposal).ok


# ════════════════════════════════════════════════════════════════════
#  Errors
# ════════════════════════════════════════════════════════════════════


class TestErrors:

    def test_directory_failure_propagates(self):
        validator = ShiftValidator(BrokenLookup(), FakeStore(), policy(), clock=lambda: NOW)
        with pytest.raises(LookupFailure):
            validator.validate(ProposedShift(at(3, 9), at(3, 17), {1}))

    def test_store_failure_propagates(self):
        validator = ShiftValidator(FakeDirectory([1]), BrokenLookup(), policy(), clock=lambda: NOW)
        with pytest.raises(LookupFailure) as excinfo:
            validator.validate(ProposedShift(at(3, 9), at(3, 17), {1}))
        assert not isinstance(excinfo.value, DomainError)

    def test_raise_if_rejected_carries_code(self):
        validator, _, _ = make_validator()
        result = validator.validate(ProposedShift(at(3, 9), at(3, 8), {1}))
        with pytest.raises(ShiftRejected) as excinfo:
            result.raise_if_rejected()
        assert excinfo.value.code == RejectionCode.START_AFTER_END
        assert excinfo.value.result is result

    def test_accepted_result_does_not_raise(self):
        validator, _, _ = make_validator()
        validator.validate(ProposedShift(at(3, 9), at(3, 17), {1})).raise_if_rejected()
