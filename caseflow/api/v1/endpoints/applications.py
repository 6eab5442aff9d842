from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.api.deps import get_actor, get_db, parse_application_id
from caseflow.crud.application import create_application, get_application, update_application
from caseflow.crud.application_action import list_actions
from caseflow.schemas.application import (
    ApplicationCreate,
    ApplicationRead,
    ApplicationUpdate,
    CorrectionStateRead,
)
from caseflow.schemas.workflow import AuditRecordRead
from caseflow.workflow.actor import Actor
from caseflow.workflow.corrections import correction_state
from caseflow.workflow.errors import Forbidden, NotFound
from caseflow.workflow.states import Role
from caseflow.workflow.transitions import DEFAULT_TABLE


router = APIRouter(prefix="/applications", tags=["applications"])


def to_read(app) -> ApplicationRead:
    out = ApplicationRead.model_validate(app)
    state = correction_state(app)
    out.correction = CorrectionStateRead(
        requested_by=state.requested_by,
        resubmitted=state.resubmitted,
        revert_count=state.revert_count,
        correction_submission_count=state.correction_submission_count,
        needs_owner_action=state.needs_owner_action,
    )
    out.next_actions = [a.value for a in DEFAULT_TABLE.actions_from(app.status)]
    return out


def _ensure_owner(app, actor: Actor) -> None:
    if actor.role != Role.PROPERTY_OWNER.value or actor.id != app.owner_id:
        raise Forbidden("not application owner")


@router.post("", response_model=ApplicationRead, status_code=status.HTTP_201_CREATED)
async def create_application_endpoint(
    payload: ApplicationCreate,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
) -> ApplicationRead:
    if actor.role != Role.PROPERTY_OWNER.value or actor.id != payload.owner_id:
        raise Forbidden("applications are created by their owner")

    app = await create_application(session, payload)
    return to_read(app)


@router.get("/{application_id}", response_model=ApplicationRead)
async def get_application_endpoint(
    application_id: str,
    session: AsyncSession = Depends(get_db),
) -> ApplicationRead:
    app_id = parse_application_id(application_id)

    # Superseded applications stay readable by id.
    app = await get_application(session, application_id=app_id)
    if app is None:
        raise HTTPException(status_code=404, detail="Application not found")
    return to_read(app)


@router.patch("/{application_id}", response_model=ApplicationRead)
async def update_application_endpoint(
    application_id: str,
    payload: ApplicationUpdate,
    actor: Actor = Depends(get_actor),
    session: AsyncSession = Depends(get_db),
) -> ApplicationRead:
    app_id = parse_application_id(application_id)

    app = await get_application(session, application_id=app_id)
    if app is None:
        raise NotFound("Application not found")
    _ensure_owner(app, actor)

    updated = await update_application(session, db_obj=app, obj_in=payload)
    return to_read(updated)


@router.get("/{application_id}/actions", response_model=list[AuditRecordRead])
async def list_application_actions_endpoint(
    application_id: str,
    successful_only: bool = Query(False, description="Only records that changed the status"),
    limit: int | None = Query(None, ge=1, le=1000),
    session: AsyncSession = Depends(get_db),
) -> list[AuditRecordRead]:
    app_id = parse_application_id(application_id)

    app = await get_application(session, application_id=app_id)
    if app is None:
        raise HTTPException(status_code=404, detail="Application not found")

    records = await list_actions(session, application_id=app_id, successful_only=successful_only, limit=limit)
    return [AuditRecordRead.model_validate(r) for r in records]
