from sqlalchemy import String, Date, DateTime, Text, Index, func
from sqlalchemy.orm import Mapped, mapped_column
from datetime import date, datetime, timezone
from app.db.session import Base

class Booking(Base):
    __tablename__ = "bookings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)

    first_name: Mapped[str] = mapped_column(String(50))
    last_name: Mapped[str] = mapped_column(String(50))
    email: Mapped[str] = mapped_column(String(255))
    nationality: Mapped[str] = mapped_column(String(100))
    university: Mapped[str] = mapped_column(String(200))
    birth_date: Mapped[date] = mapped_column(Date)
    interest: Mapped[str] = mapped_column(String(100), nullable=True)

    room_type: Mapped[str] = mapped_column(String(30))  # Luxus Room|Affordable Room|Tied-Budget Room|Double Room
    arrival_date: Mapped[date] = mapped_column(Date)
    departure_date: Mapped[date] = mapped_column(Date)
    comments: Mapped[str] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


# Final authority on uniqueness; the pre-insert query is only advisory.
Index("uq_bookings_email_lower", func.lower(Booking.email), unique=True)
