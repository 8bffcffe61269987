from datetime import date, timedelta

from app.validation.rules import years_before


def booking_payload(**overrides) -> dict:
    """A submission that passes every rule as of today."""
    today = date.today()
    data = {
        "first_name": "John",
        "last_name": "Doe",
        "email": "john.doe@example.com",
        "nationality": "USA",
        "university": "MIT",
        "birth_date": years_before(today, 20).isoformat(),
        "room_type": "Luxus Room",
        "arrival_date": (today + timedelta(days=1)).isoformat(),
        "departure_date": (today + timedelta(days=3)).isoformat(),
        "comments": "Looking forward to my stay",
    }
    data.update(overrides)
    return data


def stored_booking(**overrides):
    """A ``Booking`` row built from ``booking_payload``, for seeding the table directly."""
    import uuid

    from app.models.booking import Booking

    created_at = overrides.pop("created_at", None)
    data = booking_payload(**overrides)
    for name in ("birth_date", "arrival_date", "departure_date"):
        data[name] = date.fromisoformat(data[name])
    return Booking(id=str(uuid.uuid4()), created_at=created_at, **data)
