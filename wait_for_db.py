"""Poll Postgres until it accepts a connection or DB_WAIT_TIMEOUT runs out.

Importing this module does the waiting; start_api.py imports it before migrating.
"""
import os, time
from urllib.parse import urlparse

import psycopg2

from app.core.config import settings

DATABASE_URL = settings.DATABASE_URL or os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise SystemExit("DATABASE_URL is not set")

# psycopg2 does not understand the "+driver" part of a SQLAlchemy URL.
url = DATABASE_URL.replace("postgresql+psycopg2://", "postgresql://")
p = urlparse(url)

host = p.hostname or "db"
port = p.port or 5432
user = p.username or "bookings"
password = p.password or "bookings"
dbname = (p.path or "/bookings").lstrip("/") or "bookings"

timeout_s = int(os.getenv("DB_WAIT_TIMEOUT", "60"))
start = time.time()

print(f"[wait_for_db] {host}:{port}/{dbname}, giving up after {timeout_s}s")
while True:
    try:
        conn = psycopg2.connect(host=host, port=port, user=user, password=password, dbname=dbname)
        conn.close()
        print("[wait_for_db] database is up")
        break
    except psycopg2.OperationalError as e:
        if time.time() - start > timeout_s:
            print(f"[wait_for_db] gave up; last error was {type(e).__name__}")
            raise
        time.sleep(1)
