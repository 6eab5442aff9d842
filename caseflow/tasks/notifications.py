from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


def emit_notification_task(*, event: str, recipient: str, channel: str, context: dict) -> None:
    """Emit an async job delivering one notification.

    This function must be non-fatal: a broker outage must not fail the
    workflow transition that triggered it.
    """

    try:
        # Import lazily so the HTTP app can start even if the worker's broker
        # settings are unusable in a given environment.
        from caseflow.worker.tasks import send_notification

        send_notification.delay(event, recipient, channel, context)
    except Exception:
        logger.exception(
            "Failed to emit send_notification task (event=%s channel=%s)",
            event,
            channel,
        )
