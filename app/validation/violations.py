from dataclasses import dataclass
from enum import Enum


class ViolationCode(str, Enum):
    REQUIRED = "required"
    TOO_LONG = "too_long"
    INVALID_FORMAT = "invalid_format"
    NOT_ALLOWED = "not_allowed"
    ORDER_VIOLATION = "order_violation"
    PAST_DATE = "past_date"
    TOO_YOUNG = "too_young"
    IMPLAUSIBLE = "implausible"
    DUPLICATE_EMAIL = "duplicate_email"


@dataclass(frozen=True)
class Violation:
    field: str
    code: ViolationCode
    message: str


class ViolationSet:
    """Ordered field -> violations mapping produced by one validation pass."""

    def __init__(self, violations: list[Violation] | None = None):
        self._items: list[Violation] = []
        for v in violations or []:
            self.add(v)

    def add(self, violation: Violation) -> None:
        self._items.append(violation)

    def __bool__(self) -> bool:
        return bool(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ViolationSet):
            return NotImplemented
        return self._items == other._items

    def fields(self) -> list[str]:
        seen: list[str] = []
        for v in self._items:
            if v.field not in seen:
                seen.append(v.field)
        return seen

    def codes(self, field: str) -> list[ViolationCode]:
        return [v.code for v in self._items if v.field == field]

    def messages(self, field: str) -> list[str]:
        return [v.message for v in self._items if v.field == field]

    def as_dict(self) -> dict[str, list[str]]:
        """Shape used in the 422 response body."""
        return {f: self.messages(f) for f in self.fields()}
