from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.api.deps import get_db
from caseflow.crud.application import list_active_applications
from caseflow.schemas.application import ApplicationListItem, ApplicationListResponse


router = APIRouter(prefix="/owners", tags=["owners"])


@router.get("/{owner_id}/applications", response_model=ApplicationListResponse)
async def list_owner_applications_endpoint(
    owner_id: str,
    session: AsyncSession = Depends(get_db),
) -> ApplicationListResponse:
    """Applications that still describe the property; superseded ones are left out."""

    try:
        owner_uuid = uuid.UUID(owner_id)
    except ValueError:
        raise HTTPException(status_code=422, detail="Invalid owner_id")

    items = await list_active_applications(session, owner_id=owner_uuid)
    return ApplicationListResponse(
        items=[ApplicationListItem.model_validate(i) for i in items],
        total=len(items),
    )
