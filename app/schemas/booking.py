from datetime import date, datetime
from pydantic import BaseModel, ConfigDict
from typing import List, Optional

class BookingIn(BaseModel):
    # Plain strings: the validation engine owns every semantic rule, including dates.
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

class BookingCreate(BaseModel):
    booking: BookingIn

class BookingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    first_name: str
    last_name: str
    email: str
    nationality: str
    university: str
    birth_date: date
    interest: Optional[str] = None
    room_type: str
    arrival_date: date
    departure_date: date
    comments: Optional[str] = None
    created_at: Optional[datetime] = None

class BookingEnvelope(BaseModel):
    booking: BookingOut

class BookingList(BaseModel):
    bookings: List[BookingOut]
