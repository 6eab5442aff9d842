from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.api.deps import get_actor, get_db, get_engine, parse_application_id
from caseflow.schemas.workflow import OtpIssuedRead, OtpRequest, OtpVerifiedRead, OtpVerify, RevertCheckRead
from caseflow.services.workflow_engine import WorkflowEngine
from caseflow.workflow.actor import Actor


router = APIRouter(prefix="/applications", tags=["sendback-otp"])


@router.post("/{application_id}/sendback-otp/request", response_model=OtpIssuedRead)
async def request_sendback_otp_endpoint(
    application_id: str,
    payload: OtpRequest,
    actor: Actor = Depends(get_actor),
    engine: WorkflowEngine = Depends(get_engine),
    session: AsyncSession = Depends(get_db),
) -> OtpIssuedRead:
    app_id = parse_application_id(application_id)

    issued = await engine.otp_gate.request_otp(session, application_id=app_id, actor=actor, reason=payload.reason)
    return OtpIssuedRead(
        message=f"OTP sent to the district officer ({issued.masked_mobile})",
        expires_in=issued.expires_in,
        masked_mobile=issued.masked_mobile,
    )


@router.post("/{application_id}/sendback-otp/verify", response_model=OtpVerifiedRead)
async def verify_sendback_otp_endpoint(
    application_id: str,
    payload: OtpVerify,
    actor: Actor = Depends(get_actor),
    engine: WorkflowEngine = Depends(get_engine),
    session: AsyncSession = Depends(get_db),
) -> OtpVerifiedRead:
    app_id = parse_application_id(application_id)

    await engine.otp_gate.verify_otp(session, application_id=app_id, code=payload.otp, actor=actor)
    return OtpVerifiedRead(verified=True, message="OTP verified. You may now send the application back.")


@router.get("/{application_id}/sendback-otp/check", response_model=RevertCheckRead)
async def check_sendback_endpoint(
    application_id: str,
    engine: WorkflowEngine = Depends(get_engine),
    session: AsyncSession = Depends(get_db),
) -> RevertCheckRead:
    app_id = parse_application_id(application_id)

    check = await engine.otp_gate.check(session, application_id=app_id)
    return RevertCheckRead(
        revert_count=check.revert_count,
        will_auto_reject=check.will_auto_reject,
        message=check.message,
    )
