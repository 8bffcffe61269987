"""Booking validation engine.

Runs every field rule and every cross-field rule against a candidate and
collects all violations; nothing short-circuits. The optional ``email_taken``
callback is only an advisory pre-check: the unique index on ``lower(email)``
is what actually guarantees uniqueness.
"""

from dataclasses import dataclass, fields as dc_fields
from datetime import date
from typing import Callable, Optional

from app.core.errors import BookingValidationError
from app.validation import rules
from app.validation.violations import Violation, ViolationCode, ViolationSet

BOOKING_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "nationality",
    "university",
    "birth_date",
    "interest",
    "room_type",
    "arrival_date",
    "departure_date",
    "comments",
)


@dataclass(frozen=True)
class BookingCandidate:
    """Raw, trimmed submission values. No semantic checks happen here."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    nationality: Optional[str] = None
    university: Optional[str] = None
    birth_date: Optional[str] = None
    interest: Optional[str] = None
    room_type: Optional[str] = None
    arrival_date: Optional[str] = None
    departure_date: Optional[str] = None
    comments: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: dict) -> "BookingCandidate":
        values = {}
        for name in BOOKING_FIELDS:
            v = payload.get(name)
            values[name] = v.strip() if isinstance(v, str) else v
        return cls(**values)


@dataclass(frozen=True)
class ValidatedBooking:
    first_name: str
    last_name: str
    email: str
    nationality: str
    university: str
    birth_date: date
    room_type: str
    arrival_date: date
    departure_date: date
    interest: Optional[str] = None
    comments: Optional[str] = None

    def as_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in dc_fields(self)}


def _field_rules() -> list[tuple[str, list[rules.FieldRule]]]:
    names = lambda f: [rules.required(f), rules.max_length(f, 50), rules.name_format(f)]
    return [
        ("first_name", names("first_name")),
        ("last_name", names("last_name")),
        ("email", [rules.required("email"), rules.max_length("email", 255), rules.email_format("email")]),
        ("nationality", [rules.required("nationality"), rules.max_length("nationality", 100)]),
        ("university", [rules.required("university"), rules.max_length("university", 200)]),
        ("birth_date", [rules.required("birth_date"), rules.iso_date("birth_date")]),
        ("interest", [rules.max_length("interest", 100)]),
        ("room_type", [rules.required("room_type"), rules.one_of("room_type", rules.ROOM_TYPES, "room type")]),
        ("arrival_date", [rules.required("arrival_date"), rules.iso_date("arrival_date")]),
        ("departure_date", [rules.required("departure_date"), rules.iso_date("departure_date")]),
        ("comments", [rules.max_length("comments", 1000)]),
    ]


class BookingValidator:
    def __init__(
        self,
        min_age: int = 18,
        max_age: int = 98,
        today: Callable[[], date] = date.today,
    ):
        self.field_rules = _field_rules()
        self.cross_field_rules = [
            rules.date_ordering,
            rules.no_past_arrival,
            rules.age_bounds(min_age, max_age),
        ]
        self._today = today

    def collect(
        self,
        candidate: BookingCandidate,
        email_taken: Optional[Callable[[str], bool]] = None,
    ) -> ViolationSet:
        found: list[Violation] = []
        for field, field_rules in self.field_rules:
            value = getattr(candidate, field)
            for rule in field_rules:
                v = rule(value)
                if v is not None:
                    found.append(v)

        if email_taken is not None and not rules.is_blank(candidate.email) and email_taken(candidate.email):
            found.append(duplicate_email())

        # "today" is resolved here, at acceptance time, never taken from the client
        today = self._today()
        for rule in self.cross_field_rules:
            found.extend(rule(candidate, today))

        # group by field in declaration order, keeping each field's rule order
        order = {name: i for i, name in enumerate(BOOKING_FIELDS)}
        found.sort(key=lambda v: order.get(v.field, len(order)))
        return ViolationSet(found)

    def validate(
        self,
        candidate: BookingCandidate,
        email_taken: Optional[Callable[[str], bool]] = None,
    ) -> ValidatedBooking:
        violations = self.collect(candidate, email_taken=email_taken)
        if violations:
            raise BookingValidationError(violations)
        return ValidatedBooking(
            first_name=candidate.first_name,
            last_name=candidate.last_name,
            email=candidate.email,
            nationality=candidate.nationality,
            university=candidate.university,
            birth_date=rules.parse_date(candidate.birth_date),
            room_type=candidate.room_type,
            arrival_date=rules.parse_date(candidate.arrival_date),
            departure_date=rules.parse_date(candidate.departure_date),
            interest=candidate.interest or None,
            comments=candidate.comments or None,
        )


def duplicate_email() -> Violation:
    return Violation("email", ViolationCode.DUPLICATE_EMAIL, "has already been taken")
