#!/usr/bin/env python3
"""
Move legacy inline payment proofs (data:image/...;base64) out of the payments
table into files under UPLOAD_DIR. Safe to re-run: converted rows are skipped.

    python scripts/migrate_payment_proofs.py
"""
import logging
import sys

from app.core.config import settings
from app.core.logging import configure_logging
from app.db.session import Database
from app.services.file_lock import FileLock
from app.services.proof_storage import migrate_inline_proofs

logger = logging.getLogger("migrate_payment_proofs")


def main() -> int:
    configure_logging(settings.LOG_LEVEL)
    database = Database(settings.DATABASE_URL).init()
    locks = FileLock(settings.LOCK_DIR, settings.LOCK_TIMEOUT_MS, settings.LOCK_POLL_INTERVAL_MS)
    try:
        with database.session_scope() as db:
            stats = migrate_inline_proofs(db, locks)
    finally:
        database.dispose()
    logger.info("migration_finished", extra={"extra": stats})
    return 1 if stats["failed"] else 0


if __name__ == "__main__":
    sys.exit(main())
