"""
Celery worker entry point
Delivers booking notifications and contact verification emails
"""
import logging
from celery.signals import worker_ready, worker_shutdown

from app.config.celery_config import celery_app
from app.utils.my_logging import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


@worker_ready.connect
def worker_ready_handler(sender=None, **kwargs):
    booking_tasks = sorted(name for name in celery_app.tasks if name.startswith("app.tasks."))
    logger.info(f"Celery worker ready, booking tasks: {booking_tasks}")


@worker_shutdown.connect
def worker_shutdown_handler(sender=None, **kwargs):
    logger.info("Celery worker shutting down")


if __name__ == "__main__":
    # Emails are the only queue this service routes to
    celery_app.start([
        "worker",
        "--loglevel=info",
        "--queues=emails",
        "--concurrency=2",
        "--max-tasks-per-child=1000",
    ])
