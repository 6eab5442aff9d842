from __future__ import annotations

from celery import Celery

from caseflow.config import settings


def make_celery() -> Celery:
    """Create the Celery app.

    Kept in a function so tests can import tasks without touching global
    state beyond settings.
    """

    celery = Celery(
        "caseflow",
        broker=settings.redis_url,
        backend=settings.redis_url,
        include=["caseflow.worker.tasks"],
    )

    celery.conf.update(
        task_serializer="json",
        result_serializer="json",
        accept_content=["json"],
        timezone="UTC",
        enable_utc=True,
        beat_schedule={
            "sweep-expired-otps": {
                "task": "caseflow.sweep_expired_otps",
                "schedule": 300.0,
            },
        },
    )

    return celery


celery_app = make_celery()
