#!/usr/bin/env python3
"""Container entrypoint: migrate the bookings schema, then hand the process to uvicorn."""
import os
import sys

from app.core.config import settings

if settings.DATABASE_URL.startswith("postgresql"):
    import wait_for_db  # noqa: F401  blocks until the server accepts connections

from alembic.config import Config
from alembic import command

alembic_cfg = Config(os.path.join(os.path.dirname(__file__), "alembic.ini"))
alembic_cfg.set_main_option("sqlalchemy.url", settings.DATABASE_URL)
command.upgrade(alembic_cfg, "head")

# RequestLogMiddleware writes the per-request line without the query string,
# so uvicorn's own access log stays off.
os.execv(
    sys.executable,
    [
        sys.executable, "-m", "uvicorn", "app.main:app",
        "--host", "0.0.0.0",
        "--port", os.getenv("PORT", "8000"),
        "--no-access-log",
    ],
)
