"""Single-field and cross-field booking rules.

Field rules are built by small factories and return ``Violation | None`` for a
raw value. Cross-field rules receive the whole candidate plus ``today``.
Format and length rules skip blank values so a blank field only reports
``required``.
"""

import re
from datetime import date
from typing import Callable, Optional

from app.validation.violations import Violation, ViolationCode

FieldRule = Callable[[Optional[str]], Optional[Violation]]

# Letters incl. Latin-1 accented (À-ÿ), whitespace, hyphen, apostrophe.
NAME_PATTERN = re.compile(r"\A[a-zA-ZÀ-ÿ\s\-']+\Z")
# local-part "@" domain, the domain needing at least one dot.
EMAIL_PATTERN = re.compile(
    r"\A[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+\Z"
)

ROOM_TYPES = ("Luxus Room", "Affordable Room", "Tied-Budget Room", "Double Room")


def is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def parse_date(value: Optional[str]) -> Optional[date]:
    """ISO date or None; never raises."""
    if is_blank(value):
        return None
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        return None


def years_before(today: date, years: int) -> date:
    try:
        return today.replace(year=today.year - years)
    except ValueError:
        # Feb 29 -> Feb 28 in non-leap years
        return today.replace(year=today.year - years, day=28)


# ---- field rules ----

def required(field: str) -> FieldRule:
    def rule(value):
        if is_blank(value):
            return Violation(field, ViolationCode.REQUIRED, "can't be blank")
        return None
    return rule


def max_length(field: str, maximum: int) -> FieldRule:
    def rule(value):
        if not is_blank(value) and len(str(value)) > maximum:
            return Violation(field, ViolationCode.TOO_LONG, f"is too long (maximum is {maximum} characters)")
        return None
    return rule


def name_format(field: str) -> FieldRule:
    def rule(value):
        if not is_blank(value) and not NAME_PATTERN.match(str(value)):
            return Violation(
                field,
                ViolationCode.INVALID_FORMAT,
                "can only contain letters, spaces, hyphens, and apostrophes",
            )
        return None
    return rule


def email_format(field: str) -> FieldRule:
    def rule(value):
        if not is_blank(value) and not EMAIL_PATTERN.match(str(value).strip()):
            return Violation(field, ViolationCode.INVALID_FORMAT, "is not a valid email address")
        return None
    return rule


def iso_date(field: str) -> FieldRule:
    def rule(value):
        if not is_blank(value) and parse_date(value) is None:
            return Violation(field, ViolationCode.INVALID_FORMAT, "is not a valid date")
        return None
    return rule


def one_of(field: str, allowed: tuple[str, ...], noun: str) -> FieldRule:
    def rule(value):
        if not is_blank(value) and value not in allowed:
            # The rejected value is only echoed back, never used to look anything up.
            return Violation(field, ViolationCode.NOT_ALLOWED, f"{value} is not a valid {noun}")
        return None
    return rule


# ---- cross-field rules ----

def date_ordering(candidate, today: date) -> list[Violation]:
    arrival = parse_date(candidate.arrival_date)
    departure = parse_date(candidate.departure_date)
    if arrival is None or departure is None:
        return []
    if arrival >= departure:
        return [Violation("departure_date", ViolationCode.ORDER_VIOLATION, "must be after the arrival date")]
    return []


def no_past_arrival(candidate, today: date) -> list[Violation]:
    arrival = parse_date(candidate.arrival_date)
    if arrival is not None and arrival < today:
        return [Violation("arrival_date", ViolationCode.PAST_DATE, "cannot be in the past")]
    return []


def age_bounds(min_age: int, max_age: int):
    def rule(candidate, today: date) -> list[Violation]:
        birth = parse_date(candidate.birth_date)
        if birth is None:
            return []
        if birth > years_before(today, min_age):
            return [Violation(
                "birth_date",
                ViolationCode.TOO_YOUNG,
                f"indicates age under {min_age}. Must be at least {min_age} years old to book.",
            )]
        if birth < years_before(today, max_age):
            return [Violation("birth_date", ViolationCode.IMPLAUSIBLE, "is not valid. Please check the date.")]
        return []
    return rule
