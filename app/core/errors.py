"""Error taxonomy shared by the pipeline and the HTTP layer."""

import uuid

from app.validation.violations import ViolationSet


class BookingValidationError(Exception):
    """A booking failed one or more rules; carries every violation found."""

    def __init__(self, violations: ViolationSet):
        super().__init__("booking validation failed")
        self.violations = violations


class MalformedRequestError(Exception):
    """The request body could not be read as a booking submission."""


class RequestTooLarge(Exception):
    """The request body is over the size the API is willing to buffer."""


def create_error_reference() -> str:
    """Reference returned to the client and written to the log for 5xx errors."""
    return f"ERR-{uuid.uuid4().hex[:8].upper()}"
