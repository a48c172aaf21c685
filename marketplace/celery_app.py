"""Celery application configuration."""

from celery import Celery

from marketplace.config import get_settings

settings = get_settings()

app = Celery(
    "marketplace",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["marketplace.tasks.email"],
)

# Celery configuration
app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=60,  # 1 minute max per email
    task_soft_time_limit=45,
    task_ignore_result=True,
    broker_connection_timeout=5,
)
