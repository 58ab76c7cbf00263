# autospa/config/celery_config.py
"""Celery application factory"""
from celery import Celery

from autospa.config.settings import get_settings


def create_celery_app() -> Celery:
    settings = get_settings()

    app = Celery(
        "autospa",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
        include=["autospa.tasks.webhook_tasks"],
    )

    app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        result_serializer="json",
        accept_content=["json"],
        timezone="UTC",
        enable_utc=True,
        task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
        task_acks_late=True,
        worker_prefetch_multiplier=1,
        task_routes={
            "autospa.tasks.webhook_tasks.*": {"queue": "webhooks"},
        },
        beat_schedule={
            "retry-pending-webhooks": {
                "task": "autospa.tasks.webhook_tasks.retry_pending_webhooks",
                "schedule": 60.0,
            },
        },
    )

    return app


celery_app = create_celery_app()
