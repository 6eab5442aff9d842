from __future__ import annotations

import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.api.deps import get_db, get_engine
from caseflow.schemas.workflow import PaymentCallback, TransitionResultRead
from caseflow.services.workflow_engine import WorkflowEngine


logger = logging.getLogger("caseflow.api.payments")

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/callback", response_model=TransitionResultRead)
async def payment_callback_endpoint(
    payload: PaymentCallback,
    engine: WorkflowEngine = Depends(get_engine),
    session: AsyncSession = Depends(get_db),
) -> TransitionResultRead:
    logger.info(
        "payment callback application_id=%s status=%s",
        payload.application_id,
        payload.status,
    )
    result = await engine.record_payment_confirmed(
        session,
        payload.application_id,
        transaction_id=payload.transaction_id,
        payment_status=payload.status,
    )
    return TransitionResultRead(**asdict(result))
