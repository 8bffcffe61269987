"""bookings table

Revision ID: 0001_bookings
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_bookings"
down_revision = None
branch_labels = None
depends_on = None

def upgrade() -> None:
    op.create_table(
        "bookings",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("first_name", sa.String(length=50), nullable=False),
        sa.Column("last_name", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("nationality", sa.String(length=100), nullable=False),
        sa.Column("university", sa.String(length=200), nullable=False),
        sa.Column("birth_date", sa.Date(), nullable=False),
        sa.Column("interest", sa.String(length=100), nullable=True),
        sa.Column("room_type", sa.String(length=30), nullable=False),
        sa.Column("arrival_date", sa.Date(), nullable=False),
        sa.Column("departure_date", sa.Date(), nullable=False),
        sa.Column("comments", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    # Case-insensitive uniqueness is enforced here, not by the pre-insert query.
    op.create_index("uq_bookings_email_lower", "bookings", [sa.text("lower(email)")], unique=True)

def downgrade() -> None:
    op.drop_index("uq_bookings_email_lower", table_name="bookings")
    op.drop_table("bookings")
