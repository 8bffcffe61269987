import logging
import uuid
from sqlalchemy.orm import Session
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from app.core.errors import BookingValidationError, MalformedRequestError
from app.models.booking import Booking
from app.validation.engine import BookingCandidate, BookingValidator, duplicate_email
from app.validation.violations import ViolationSet

logger = logging.getLogger(__name__)


def email_taken(db: Session, email: str) -> bool:
    q = select(Booking.id).where(func.lower(Booking.email) == email.strip().lower()).limit(1)
    return db.execute(q).first() is not None


def submit_booking(db: Session, payload: dict, validator: BookingValidator) -> Booking:
    """Validate and persist one submission.

    Raises BookingValidationError with every violation found, including a
    duplicate email detected only when the unique index rejects the insert.
    """
    if not isinstance(payload, dict):
        raise MalformedRequestError("booking must be an object")
    candidate = BookingCandidate.from_payload(payload)
    try:
        validated = validator.validate(candidate, email_taken=lambda e: email_taken(db, e))
    except BookingValidationError as e:
        logger.info("booking rejected: fields=%s", e.violations.fields())
        raise

    booking = Booking(id=str(uuid.uuid4()), **validated.as_dict())
    db.add(booking)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        # Lost the check-then-insert race against a concurrent identical email.
        if email_taken(db, validated.email):
            logger.info("booking rejected at insert: duplicate email")
            raise BookingValidationError(ViolationSet([duplicate_email()]))
        raise
    db.refresh(booking)
    logger.info("booking created: id=%s", booking.id)
    return booking


def list_bookings(db: Session, limit: int = 100, offset: int = 0) -> list[Booking]:
    q = select(Booking).order_by(Booking.created_at.desc()).limit(limit).offset(offset)
    return list(db.execute(q).scalars().all())
