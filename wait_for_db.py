import logging
import os
import time
from urllib.parse import urlparse

import psycopg2

logger = logging.getLogger("wait_for_db")

DATABASE_URL = os.getenv("DATABASE_URL") or ""
if not DATABASE_URL:
    from app.core.config import settings
    DATABASE_URL = settings.DATABASE_URL


def wait(url: str, timeout_s: int) -> None:
    # SQLAlchemy URL may start with postgresql+psycopg2://
    url = url.replace("postgresql+psycopg2://", "postgresql://").replace("postgres://", "postgresql://")
    p = urlparse(url)

    host = p.hostname or "db"
    port = p.port or 5432
    user = p.username or "studio"
    password = p.password or "studio"
    dbname = (p.path or "/studio").lstrip("/") or "studio"

    start = time.time()
    logger.info("waiting_for_postgres", extra={"extra": {"host": host, "port": port, "db": dbname, "timeout_s": timeout_s}})
    while True:
        try:
            conn = psycopg2.connect(host=host, port=port, user=user, password=password, dbname=dbname)
            conn.close()
            logger.info("postgres_ready")
            return
        except psycopg2.OperationalError as e:
            if time.time() - start > timeout_s:
                logger.error("postgres_wait_timeout", extra={"extra": {"error": str(e)}})
                raise
            time.sleep(1)


# SQLite needs no wait; the file is created on first connect
if DATABASE_URL.startswith(("postgres://", "postgresql")):
    wait(DATABASE_URL, int(os.getenv("DB_WAIT_TIMEOUT", "60")))
