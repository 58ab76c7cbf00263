"""
Celery worker entry point
Delivers webhook events for appointment changes
"""
import logging
from celery.signals import worker_ready, worker_shutdown

from autospa.config.celery_config import celery_app
from autospa.utils.my_logging import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@worker_ready.connect
def worker_ready_handler(sender=None, **kwargs):
    logger.info("Celery worker ready")
    logger.info(f"Registered tasks: {sorted(t for t in celery_app.tasks.keys() if t.startswith('autospa.'))}")


@worker_shutdown.connect
def worker_shutdown_handler(sender=None, **kwargs):
    logger.info("Celery worker shutting down")


if __name__ == "__main__":
    celery_app.start([
        'worker',
        '--beat',
        '--loglevel=info',
        '--queues=webhooks,celery',
        '--concurrency=4',
        '--max-tasks-per-child=1000'
    ])
