from caseflow.worker.celery_app import celery_app  # noqa: F401
