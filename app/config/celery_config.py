# app/config/celery_config.py
"""Celery application factory"""
from celery import Celery

from app.config.settings import get_settings

settings = get_settings()


def create_celery_app() -> Celery:
    """Create the Celery app used for notification and verification emails"""
    app = Celery(
        "booking_engine",
        broker=settings.CELERY_BROKER_URL,
        backend=settings.CELERY_RESULT_BACKEND,
        include=["app.tasks.email_tasks"],
    )

    app.conf.update(
        task_serializer=settings.CELERY_TASK_SERIALIZER,
        result_serializer="json",
        accept_content=["json"],
        timezone="UTC",
        enable_utc=True,
        task_acks_late=True,
        task_always_eager=settings.CELERY_TASK_ALWAYS_EAGER,
        task_routes={
            "app.tasks.email_tasks.*": {"queue": "emails"},
        },
        # Publishing must fail fast so a broker outage never holds up a booking request
        broker_connection_retry_on_startup=True,
        broker_transport_options={"max_retries": 1, "interval_start": 0, "interval_step": 0.2},
    )

    return app


celery_app = create_celery_app()
