from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator

from fastapi import Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.services.workflow_engine import WorkflowEngine
from caseflow.workflow.actor import Actor
from caseflow.workflow.states import Role


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    async with request.app.state.session_factory() as session:
        yield session


def get_engine(request: Request) -> WorkflowEngine:
    return request.app.state.workflow_engine


async def get_actor(
    x_actor_id: str | None = Header(None),
    x_actor_role: str | None = Header(None),
    x_actor_district: str | None = Header(None),
) -> Actor:
    """Caller identity as forwarded by the authenticating gateway."""

    if not x_actor_role:
        raise HTTPException(status_code=401, detail="Missing X-Actor-Role")
    try:
        role = Role(x_actor_role)
    except ValueError:
        raise HTTPException(status_code=401, detail="Unknown actor role")

    actor_id = None
    if x_actor_id:
        try:
            actor_id = uuid.UUID(x_actor_id)
        except ValueError:
            raise HTTPException(status_code=401, detail="Invalid X-Actor-Id")
    elif role != Role.SYSTEM:
        raise HTTPException(status_code=401, detail="Missing X-Actor-Id")

    return Actor(id=actor_id, role=role.value, district=x_actor_district)


def parse_application_id(application_id: str) -> uuid.UUID:
    try:
        # Keep it explicit to get a clean 404 for malformed UUIDs.
        return uuid.UUID(application_id)
    except ValueError:
        raise HTTPException(status_code=404, detail="Application not found")
