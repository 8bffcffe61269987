from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session
from app.db.session import get_db
from app.api.deps import get_validator
from app.schemas.booking import BookingCreate, BookingEnvelope, BookingList, BookingOut
from app.services.booking_service import submit_booking, list_bookings
from app.validation.engine import BookingValidator

router = APIRouter(tags=["bookings"])

ALLOWED_METHODS = "GET, POST, OPTIONS"

@router.post("/bookings", response_model=BookingEnvelope, status_code=201)
def create_booking(
    body: BookingCreate,
    db: Session = Depends(get_db),
    validator: BookingValidator = Depends(get_validator),
):
    booking = submit_booking(db, body.booking.model_dump(), validator)
    return BookingEnvelope(booking=BookingOut.model_validate(booking))

@router.get("/bookings", response_model=BookingList)
def get_bookings(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
):
    items = list_bookings(db, limit=limit, offset=offset)
    return BookingList(bookings=[BookingOut.model_validate(b) for b in items])

@router.options("/{path:path}")
def options_request(path: str):
    """Non-preflight OPTIONS; real preflights are answered by CORSMiddleware."""
    return Response(status_code=204, headers={"Allow": ALLOWED_METHODS})
