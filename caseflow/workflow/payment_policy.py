from __future__ import annotations

import logging
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.config import settings
from caseflow.crud.system_setting import get_setting, upsert_setting
from caseflow.workflow.states import (
    FEE_EXEMPT_KINDS,
    SETTLED_PAYMENT_STATUSES,
    ApplicationKind,
    Status,
)
from caseflow.workflow.transitions import Transition

logger = logging.getLogger("caseflow.workflow.payment")

PAYMENT_WORKFLOW_SETTING_KEY = "payment_workflow"


class PaymentWorkflow(str, Enum):
    UPFRONT = "upfront"
    ON_APPROVAL = "on_approval"


def _coerce(value) -> PaymentWorkflow:
    return PaymentWorkflow.UPFRONT if value == PaymentWorkflow.UPFRONT.value else PaymentWorkflow.ON_APPROVAL


def is_fee_exempt(kind: str) -> bool:
    try:
        return ApplicationKind(kind) in FEE_EXEMPT_KINDS
    except ValueError:
        return False


def is_payment_settled(payment_status: str | None) -> bool:
    return payment_status in {s.value for s in SETTLED_PAYMENT_STATUSES}


class PaymentPolicy:
    """Global switch deciding when the registration fee is collected.

    The setting is read from `system_settings` on every call and never cached
    against an application; approval targets are derived from what the
    application itself has recorded.
    """

    def __init__(self, *, default: str | None = None) -> None:
        self._default = _coerce(default or settings.default_payment_workflow)

    async def current(self, session: AsyncSession) -> PaymentWorkflow:
        record = await get_setting(session, PAYMENT_WORKFLOW_SETTING_KEY)
        if record is None:
            return self._default
        return _coerce((record.setting_value or {}).get("workflow"))

    async def set(self, session: AsyncSession, workflow: PaymentWorkflow | str) -> PaymentWorkflow:
        value = PaymentWorkflow(workflow)
        await upsert_setting(session, PAYMENT_WORKFLOW_SETTING_KEY, {"workflow": value.value})
        await session.commit()
        logger.info("payment_workflow updated workflow=%s", value.value)
        return value

    def requires_payment_before_submit(self, workflow: PaymentWorkflow, app) -> bool:
        return workflow == PaymentWorkflow.UPFRONT and not is_fee_exempt(app.kind)

    def approval_target(self, transition: Transition, app) -> Status:
        """Pick the target for a transition that branches on payment."""

        if transition.settled_target is None:
            return transition.target
        if is_fee_exempt(app.kind) or is_payment_settled(app.payment_status):
            return transition.settled_target
        return transition.target
