"""Celery application configuration"""

from celery import Celery
from reservepay.config import settings

# Create Celery app
celery_app = Celery(
    "reservepay",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=[
        "reservepay.jobs.tasks",
    ],
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=120,
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
)
