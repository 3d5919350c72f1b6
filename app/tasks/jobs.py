from app.tasks.celery_app import celery
from app.tasks import worker_jobs

@celery.task(name="app.tasks.jobs.cleanup_stale_locks")
def cleanup_stale_locks():
    return worker_jobs.cleanup_stale_locks()
