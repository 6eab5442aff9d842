from __future__ import annotations

import logging

from caseflow.services.collaborators import NotificationDispatcher
from caseflow.workflow.events import TransitionEvent
from caseflow.workflow.states import Status

logger = logging.getLogger("caseflow.notifications")

# Applicant-facing events keyed by the status a transition lands in.
STATUS_EVENTS: dict[str, str] = {
    Status.SUBMITTED.value: "application_submitted",
    Status.REVERTED_TO_APPLICANT.value: "application_reverted",
    Status.REVERTED_BY_DTDO.value: "application_reverted",
    Status.OBJECTION_RAISED.value: "inspection_objection",
    Status.INSPECTION_SCHEDULED.value: "inspection_scheduled",
    Status.PAYMENT_PENDING.value: "payment_pending",
    Status.APPROVED.value: "application_approved",
    Status.REJECTED.value: "application_rejected",
}

TEMPLATES: dict[str, str] = {
    "application_submitted": "Your application {application_number} has been submitted.",
    "application_reverted": (
        "Your application {application_number} has been sent back for corrections. Remarks: {remarks}"
    ),
    "inspection_objection": (
        "An objection was raised on application {application_number} after inspection. Remarks: {remarks}"
    ),
    "inspection_scheduled": "An inspection has been scheduled for application {application_number}.",
    "payment_pending": "Application {application_number} is approved subject to payment of the registration fee.",
    "application_approved": "Application {application_number} is approved. Your certificate is ready.",
    "application_rejected": "Application {application_number} has been rejected. Remarks: {remarks}",
    "sendback_otp": (
        "OTP {otp} authorizes sending application {application_number} back to the applicant. "
        "Reason: {reason}"
    ),
}


def render(event: str, context: dict) -> str:
    template = TEMPLATES.get(event)
    if template is None:
        return f"{event}: {context.get('application_number', '')}".strip()

    values = {"remarks": "-", "reason": "-", "application_number": "", **{k: v for k, v in context.items() if v}}
    try:
        return template.format(**values)
    except KeyError:
        logger.warning("notification template missing a field event=%s", event)
        return template


class NotificationSubscriber:
    """Tells the applicant about transitions that concern them."""

    def __init__(self, dispatcher: NotificationDispatcher) -> None:
        self._dispatcher = dispatcher

    async def __call__(self, event: TransitionEvent) -> None:
        name = STATUS_EVENTS.get(event.new_status)
        if name is None or event.previous_status == event.new_status:
            return
        if not event.owner_mobile:
            logger.info("no owner mobile, skipping notification application_id=%s", event.application_id)
            return

        self._dispatcher.dispatch(
            name,
            event.owner_mobile,
            "sms",
            {
                "application_id": str(event.application_id),
                "application_number": event.application_number,
                "remarks": event.remarks,
                "status": event.new_status,
            },
        )
