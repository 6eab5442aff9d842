from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.api.deps import get_actor, get_db, get_engine
from caseflow.schemas.workflow import PaymentWorkflowRead
from caseflow.services.workflow_engine import WorkflowEngine
from caseflow.workflow.actor import Actor
from caseflow.workflow.errors import Forbidden
from caseflow.workflow.states import Role


router = APIRouter(prefix="/settings", tags=["settings"])

_SETTINGS_ROLES = {Role.DISTRICT_TOURISM_OFFICER.value, Role.SYSTEM.value}


@router.get("/payment-workflow", response_model=PaymentWorkflowRead)
async def get_payment_workflow_endpoint(
    engine: WorkflowEngine = Depends(get_engine),
    session: AsyncSession = Depends(get_db),
) -> PaymentWorkflowRead:
    workflow = await engine.payment_policy.current(session)
    return PaymentWorkflowRead(workflow=workflow.value)


@router.put("/payment-workflow", response_model=PaymentWorkflowRead)
async def set_payment_workflow_endpoint(
    payload: PaymentWorkflowRead,
    actor: Actor = Depends(get_actor),
    engine: WorkflowEngine = Depends(get_engine),
    session: AsyncSession = Depends(get_db),
) -> PaymentWorkflowRead:
    if actor.role not in _SETTINGS_ROLES:
        raise Forbidden("only administrators can change the payment workflow")

    workflow = await engine.payment_policy.set(session, payload.workflow)
    return PaymentWorkflowRead(workflow=workflow.value)
