from celery import Celery

from app.core.config import settings

celery_app = Celery(
    "worker",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["app.jobs.tasks"],  # Explicitly include tasks module
)

celery_app.conf.update(
    # Payloads are base64 strings, so plain JSON is enough
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    # Task timeout settings
    task_soft_time_limit=settings.VIDEO_TASK_TIMEOUT,
    task_time_limit=settings.VIDEO_TASK_TIMEOUT + 30,
    # Worker settings
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    worker_max_tasks_per_child=50,
    # Single attempt per user action
    task_max_retries=0,
    # Local/test mode runs tasks in-process
    task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
    task_eager_propagates=True,
)
