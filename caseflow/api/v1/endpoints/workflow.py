from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, Body, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.api.deps import get_actor, get_db, get_engine, parse_application_id
from caseflow.schemas.workflow import ActionRequest, TransitionResultRead
from caseflow.services.workflow_engine import WorkflowEngine
from caseflow.workflow.actor import Actor
from caseflow.workflow.transitions import INTERNAL_ACTIONS, Action


router = APIRouter(prefix="/applications", tags=["workflow"])

# Driven by the payment gateway through /payments/callback.
_CALLBACK_ACTIONS = {Action.RECORD_PAYMENT_CONFIRMED}


@router.post("/{application_id}/actions/{action}", response_model=TransitionResultRead)
async def perform_action_endpoint(
    application_id: str,
    action: str,
    payload: ActionRequest | None = Body(None),
    actor: Actor = Depends(get_actor),
    engine: WorkflowEngine = Depends(get_engine),
    session: AsyncSession = Depends(get_db),
) -> TransitionResultRead:
    app_id = parse_application_id(application_id)

    try:
        requested = Action(action)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown action: {action}")
    if requested in INTERNAL_ACTIONS or requested in _CALLBACK_ACTIONS:
        raise HTTPException(status_code=404, detail=f"Unknown action: {action}")

    data = payload.model_dump(exclude_none=True) if payload is not None else {}
    result = await engine.perform(session, requested, app_id, actor, data)
    return TransitionResultRead(**asdict(result))
