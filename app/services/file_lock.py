"""Advisory, cross-process lock backed by exclusive-create lock files.

A lock for resource ``R`` is the file ``<lock_dir>/<md5(R)>.lock`` holding
``{"timestamp": <epoch ms>, "pid": <pid>, "resource": R}``. Creation uses
O_CREAT|O_EXCL, so exactly one process wins. Waiters poll at a fixed interval
until the file disappears or their timeout elapses. Lock files older than the
timeout are treated as abandoned and swept by ``cleanup_stale``.
"""
import hashlib
import json
import logging
import os
import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator, TypeVar

from app.core.errors import LockTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_MS = 30_000
DEFAULT_POLL_INTERVAL_MS = 100


def _now_ms() -> int:
    return int(time.time() * 1000)


class FileLock:
    def __init__(
        self,
        lock_dir: str,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
    ):
        self.lock_dir = lock_dir
        self.timeout_ms = timeout_ms
        self.poll_interval_ms = poll_interval_ms
        os.makedirs(self.lock_dir, exist_ok=True)

    def path_for(self, resource: str) -> str:
        digest = hashlib.md5(resource.encode("utf-8")).hexdigest()
        return os.path.join(self.lock_dir, f"{digest}.lock")

    def acquire(self, resource: str, timeout_ms: int | None = None) -> bool:
        timeout_ms = self.timeout_ms if timeout_ms is None else timeout_ms
        path = self.path_for(resource)
        deadline = time.monotonic() + timeout_ms / 1000
        payload = json.dumps({"timestamp": _now_ms(), "pid": os.getpid(), "resource": resource})

        while True:
            try:
                fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
            except FileExistsError:
                if time.monotonic() >= deadline:
                    logger.warning("lock_acquire_timeout", extra={"extra": {"resource": resource, "timeout_ms": timeout_ms}})
                    return False
                time.sleep(self.poll_interval_ms / 1000)
                continue
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            logger.debug("lock_acquired", extra={"extra": {"resource": resource}})
            return True

    def release(self, resource: str) -> None:
        try:
            os.remove(self.path_for(resource))
        except FileNotFoundError:
            return
        logger.debug("lock_released", extra={"extra": {"resource": resource}})

    @contextmanager
    def hold(self, resource: str, timeout_ms: int | None = None) -> Iterator[None]:
        if not self.acquire(resource, timeout_ms):
            raise LockTimeoutError(f"Failed to acquire lock for {resource}", resource=resource)
        try:
            yield
        finally:
            self.release(resource)

    def with_lock(self, resource: str, fn: Callable[[], T], timeout_ms: int | None = None) -> T:
        with self.hold(resource, timeout_ms):
            return fn()

    def _read(self, path: str) -> dict[str, Any] | None:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError):
            return None
        return data if isinstance(data, dict) else None

    def cleanup_stale(self) -> int:
        """Remove lock files older than the timeout. Returns how many were removed."""
        removed = 0
        now = _now_ms()
        try:
            names = os.listdir(self.lock_dir)
        except FileNotFoundError:
            return 0

        for name in names:
            if not name.endswith(".lock"):
                continue
            path = os.path.join(self.lock_dir, name)
            data = self._read(path)
            if data is not None and isinstance(data.get("timestamp"), (int, float)):
                stamp = int(data["timestamp"])
            else:
                # unreadable or half-written: fall back to mtime
                try:
                    stamp = int(os.path.getmtime(path) * 1000)
                except FileNotFoundError:
                    continue
            if now - stamp <= self.timeout_ms:
                continue
            try:
                os.remove(path)
            except FileNotFoundError:
                continue
            removed += 1
            logger.info("stale_lock_removed", extra={"extra": {"file": name, "age_ms": now - stamp}})
        return removed

    def status(self, resource: str) -> dict[str, Any]:
        path = self.path_for(resource)
        if not os.path.exists(path):
            return {"locked": False, "data": None, "age_ms": None}
        data = self._read(path)
        age = None
        if data is not None and isinstance(data.get("timestamp"), (int, float)):
            age = _now_ms() - int(data["timestamp"])
        return {"locked": True, "data": data, "age_ms": age}

    def force_release(self, resource: str) -> bool:
        try:
            os.remove(self.path_for(resource))
        except FileNotFoundError:
            return False
        logger.warning("lock_force_released", extra={"extra": {"resource": resource}})
        return True
