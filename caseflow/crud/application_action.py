from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.models.application_action import ApplicationAction


async def append_action(
    session: AsyncSession,
    *,
    application_id: UUID,
    action: str,
    effective_action: str | None,
    previous_status: str | None,
    new_status: str | None,
    actor_id: UUID | None,
    actor_role: str,
    remarks: str | None = None,
    error_code: str | None = None,
) -> ApplicationAction:
    """Append one audit record. Does not commit; the caller owns the transaction."""

    record = ApplicationAction(
        application_id=application_id,
        action=action,
        effective_action=effective_action,
        previous_status=previous_status,
        new_status=new_status,
        actor_id=actor_id,
        actor_role=actor_role,
        remarks=remarks,
        error_code=error_code,
    )
    session.add(record)
    await session.flush()  # assigns the sequence id
    return record


async def list_actions(
    session: AsyncSession,
    *,
    application_id: UUID,
    successful_only: bool = False,
    limit: int | None = None,
) -> list[ApplicationAction]:
    """Audit trail in order: created_at, then insertion sequence."""

    stmt = select(ApplicationAction).where(ApplicationAction.application_id == application_id)
    if successful_only:
        stmt = stmt.where(ApplicationAction.new_status.is_not(None))
    stmt = stmt.order_by(ApplicationAction.created_at.asc(), ApplicationAction.id.asc())
    if limit is not None:
        stmt = stmt.limit(limit)

    res = await session.execute(stmt)
    return list(res.scalars().all())
