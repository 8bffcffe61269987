from dataclasses import replace
from datetime import date

import pytest

from app.core.errors import BookingValidationError
from app.validation.engine import BookingCandidate, BookingValidator, ValidatedBooking
from app.validation.violations import ViolationCode

TODAY = date(2026, 10, 19)


@pytest.fixture
def validator():
    return BookingValidator(today=lambda: TODAY)


@pytest.fixture
def candidate():
    return BookingCandidate(
        first_name="Mary-Anne",
        last_name="O'Neil",
        email="mary@uni.edu",
        nationality="Ireland",
        university="TCD",
        birth_date="2006-10-19",
        room_type="Double Room",
        arrival_date="2026-10-20",
        departure_date="2026-10-22",
    )


def test_valid_candidate_produces_validated_booking(validator, candidate):
    booking = validator.validate(candidate)
    assert isinstance(booking, ValidatedBooking)
    assert booking.birth_date == date(2006, 10, 19)
    assert booking.arrival_date == date(2026, 10, 20)
    assert booking.interest is None


@pytest.mark.parametrize("field", ["first_name", "last_name", "email", "nationality", "university",
                                   "birth_date", "room_type", "arrival_date", "departure_date"])
def test_blank_required_field_reports_only_required(validator, candidate, field):
    violations = validator.collect(replace(candidate, **{field: "  "}))
    assert violations.fields() == [field]
    assert violations.codes(field) == [ViolationCode.REQUIRED]


def test_blank_field_does_not_mask_other_violations(validator, candidate):
    violations = validator.collect(replace(candidate, first_name="", last_name="Doe<b>", arrival_date="2026-10-01"))
    assert violations.codes("first_name") == [ViolationCode.REQUIRED]
    assert violations.codes("last_name") == [ViolationCode.INVALID_FORMAT]
    assert violations.codes("arrival_date") == [ViolationCode.PAST_DATE]


def test_every_violation_of_a_field_is_kept_in_rule_order(validator, candidate):
    violations = validator.collect(replace(candidate, first_name="<" * 51))
    assert violations.codes("first_name") == [ViolationCode.TOO_LONG, ViolationCode.INVALID_FORMAT]


def test_optional_fields_may_be_absent(validator, candidate):
    assert not validator.collect(replace(candidate, interest=None, comments=""))


def test_optional_fields_have_length_bounds(validator, candidate):
    violations = validator.collect(replace(candidate, interest="x" * 101, comments="a" * 1001))
    assert violations.as_dict() == {
        "interest": ["is too long (maximum is 100 characters)"],
        "comments": ["is too long (maximum is 1000 characters)"],
    }


def test_revalidation_is_idempotent(validator, candidate):
    assert not validator.collect(candidate)
    assert not validator.collect(candidate)
    bad = replace(candidate, email="nope", departure_date="2026-10-20")
    assert validator.collect(bad) == validator.collect(bad)


def test_past_arrival_regardless_of_departure(validator, candidate):
    violations = validator.collect(replace(candidate, arrival_date="2026-10-18", departure_date="2026-10-17"))
    assert violations.codes("arrival_date") == [ViolationCode.PAST_DATE]
    assert violations.codes("departure_date") == [ViolationCode.ORDER_VIOLATION]


def test_email_taken_adds_duplicate_violation(validator, candidate):
    seen = []
    violations = validator.collect(candidate, email_taken=lambda e: seen.append(e) or True)
    assert seen == ["mary@uni.edu"]
    assert violations.as_dict() == {"email": ["has already been taken"]}
    assert violations.codes("email") == [ViolationCode.DUPLICATE_EMAIL]


def test_email_taken_is_skipped_for_blank_email(validator, candidate):
    def never(_):
        raise AssertionError("should not be called")
    violations = validator.collect(replace(candidate, email=""), email_taken=never)
    assert violations.codes("email") == [ViolationCode.REQUIRED]


def test_validate_raises_with_full_violation_set(validator, candidate):
    with pytest.raises(BookingValidationError) as exc:
        validator.validate(replace(candidate, room_type="Penthouse", birth_date="2010-01-01"))
    assert exc.value.violations.as_dict() == {
        "birth_date": ["indicates age under 18. Must be at least 18 years old to book."],
        "room_type": ["Penthouse is not a valid room type"],
    }


def test_today_is_read_at_validation_time(candidate):
    days = iter([date(2026, 10, 19), date(2026, 10, 21)])
    validator = BookingValidator(today=lambda: next(days))
    assert not validator.collect(candidate)
    assert validator.collect(candidate).codes("arrival_date") == [ViolationCode.PAST_DATE]


def test_from_payload_trims_and_ignores_unknown_keys():
    c = BookingCandidate.from_payload({"first_name": "  Ann ", "id": "x", "interest": None})
    assert c.first_name == "Ann"
    assert c.interest is None
