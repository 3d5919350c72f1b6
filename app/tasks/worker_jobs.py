import logging

from app.core.config import settings
from app.services.file_lock import FileLock

logger = logging.getLogger(__name__)


def cleanup_stale_locks(lock_dir: str | None = None, timeout_ms: int | None = None) -> dict:
    locks = FileLock(lock_dir or settings.LOCK_DIR, timeout_ms or settings.LOCK_TIMEOUT_MS)
    removed = locks.cleanup_stale()
    if removed:
        logger.info("stale_locks_cleaned", extra={"extra": {"removed": removed, "lock_dir": locks.lock_dir}})
    return {"removed": removed}
