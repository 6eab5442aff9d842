from __future__ import annotations

import asyncio
import logging

from caseflow.services.collaborators import mask_mobile
from caseflow.services.notifications import render
from caseflow.services.otp_store import build_otp_store
from caseflow.worker.celery_app import celery_app


logger = logging.getLogger(__name__)


@celery_app.task(name="caseflow.send_notification")
def send_notification(event: str, recipient: str, channel: str, context: dict | None = None) -> str:
    """Render and hand off one notification.

    Delivery providers (SMS gateway, SMTP) are configured per deployment;
    the rendered message is logged so the worker is useful without them.
    """

    message = render(event, context or {})
    logger.info(
        "notification sent event=%s channel=%s recipient=%s length=%s",
        event,
        channel,
        mask_mobile(recipient),
        len(message),
    )
    return message


@celery_app.task(name="caseflow.sweep_expired_otps")
def sweep_expired_otps() -> int:
    store = build_otp_store()
    purged = asyncio.run(store.purge_expired())
    logger.info("otp sweep purged=%s", purged)
    return purged
