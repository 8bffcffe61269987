from fastapi import Request
from app.validation.engine import BookingValidator

def get_validator(request: Request) -> BookingValidator:
    return request.app.state.validator
