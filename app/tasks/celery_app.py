from urllib.parse import urlparse, urlunparse, parse_qs, urlencode

from celery import Celery
from celery.signals import worker_ready
from app.core.config import settings


def _redis_url_for_celery(url: str) -> str:
    """rediss:// brokers need ssl_cert_reqs in the query string."""
    if not url or not url.strip().lower().startswith("rediss://"):
        return url
    parsed = urlparse(url)
    qs = parse_qs(parsed.query)
    if "ssl_cert_reqs" not in qs:
        qs["ssl_cert_reqs"] = ["CERT_NONE"]
        return urlunparse(parsed._replace(query=urlencode(qs, doseq=True)))
    return url


_redis_url = _redis_url_for_celery(settings.REDIS_URL)

celery = Celery(
    "studio_ops",
    broker=_redis_url,
    backend=_redis_url,
    include=["app.tasks.jobs"],
)

celery.conf.timezone = "Asia/Jakarta"

# Locks left behind by a crashed API process would block that booking until the next sweep
@worker_ready.connect
def on_worker_ready(sender, **kwargs):
    from app.tasks.jobs import cleanup_stale_locks
    cleanup_stale_locks.delay()

celery.conf.beat_schedule = {
    "cleanup-stale-locks": {
        "task": "app.tasks.jobs.cleanup_stale_locks",
        "schedule": float(settings.LOCK_CLEANUP_INTERVAL_SECONDS),
    },
}
