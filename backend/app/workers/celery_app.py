"""
Celery application configuration.
Sets up Celery with Redis broker and result backend, and the beat schedule
that drains the caption queue.
"""
import logging
from celery import Celery
from celery.signals import task_prerun, task_postrun, task_failure, worker_process_init
from app.config import settings
from app.utils.metrics import worker_tasks_in_progress, worker_tasks_total
from app.utils.logging import configure_logging
from app.workers.metrics_server import start_metrics_server

logger = logging.getLogger(__name__)

PROCESS_CAPTION_QUEUE = "process_caption_queue"

celery_app = Celery(
    "control_tower",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "app.tasks.process_captions",
    ]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    # No task time limit: a dequeued caption batch always runs to completion
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=50,
    # The caption pool is concurrent inside one task; one task per worker is enough
    worker_concurrency=1,
    beat_schedule={
        "drain-caption-queue": {
            "task": PROCESS_CAPTION_QUEUE,
            "schedule": float(settings.caption_queue_interval),
            "kwargs": {
                "limit": settings.caption_queue_limit,
                "concurrency": settings.caption_queue_concurrency,
            },
        },
    },
)


@worker_process_init.connect
def worker_process_init_handler(**kwargs):
    """Per worker process: JSON logging and the Prometheus endpoint."""
    configure_logging('ct-worker', settings.log_level)
    try:
        start_metrics_server(port=9090)
    except OSError as e:
        logger.warning(f"Failed to start metrics server: {e}")


@task_prerun.connect
def task_prerun_handler(sender=None, task_id=None, task=None, **kwds):
    task_name = task.name if task else "unknown"
    worker_tasks_in_progress.labels(task_name=task_name).inc()


@task_postrun.connect
def task_postrun_handler(sender=None, task_id=None, task=None, state=None, **kwds):
    task_name = task.name if task else "unknown"
    worker_tasks_in_progress.labels(task_name=task_name).dec()
    worker_tasks_total.labels(task_name=task_name, state=state or "unknown").inc()


@task_failure.connect
def task_failure_handler(sender=None, task_id=None, exception=None, **kwds):
    task_name = sender.name if sender else "unknown"
    logger.error(f"Task {task_name} [{task_id}] failed: {exception}")
