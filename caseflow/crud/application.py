from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.models.application import OPEN_REGISTRATION_INDEX, Application
from caseflow.models.application_action import ApplicationAction
from caseflow.models.base import utcnow
from caseflow.schemas.application import ApplicationCreate, ApplicationUpdate
from caseflow.services.numbering import next_application_number
from caseflow.workflow.errors import GuardFailed, NotFound
from caseflow.workflow.states import (
    EDITABLE_STATUSES,
    TERMINAL_STATUSES,
    Role,
    Status,
)

_TERMINAL_VALUES = [s.value for s in TERMINAL_STATUSES]
_NULLABLE_EDIT_FIELDS = {"owner_mobile", "room_delta"}


async def get_application(session: AsyncSession, *, application_id) -> Application | None:
    # populate_existing: never trust a stale identity-map copy of the status.
    stmt = select(Application).where(Application.id == application_id).execution_options(populate_existing=True)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def create_application(session: AsyncSession, obj_in: ApplicationCreate) -> Application:
    """Create a draft and its `create` audit record.

    Follow-up kinds must point at an approved application of the same owner
    that has no other open service request.
    """

    if obj_in.parent_application_id is not None:
        await _check_parent_for_service_request(session, obj_in)

    number = await next_application_number(session, kind=obj_in.kind.value, district=obj_in.district)

    app = Application(
        application_number=number,
        owner_id=obj_in.owner_id,
        owner_mobile=obj_in.owner_mobile,
        property_name=obj_in.property_name.strip(),
        district=obj_in.district.strip(),
        category=obj_in.category,
        total_rooms=obj_in.total_rooms,
        kind=obj_in.kind.value,
        status=Status.DRAFT.value,
        parent_application_id=obj_in.parent_application_id,
        room_delta=obj_in.room_delta,
        documents=[d.model_dump(exclude_none=True) for d in obj_in.documents],
        payment_status="unpaid",
        revert_count=0,
        correction_submission_count=0,
    )
    session.add(app)
    await session.flush()  # ensure app.id is available

    session.add(
        ApplicationAction(
            application_id=app.id,
            action="create",
            effective_action="create",
            previous_status=None,
            new_status=Status.DRAFT.value,
            actor_id=obj_in.owner_id,
            actor_role=Role.PROPERTY_OWNER.value,
            remarks=f"{obj_in.kind.value} draft {number} created",
        )
    )

    await session.commit()
    await session.refresh(app)
    return app


async def _check_parent_for_service_request(session: AsyncSession, obj_in: ApplicationCreate) -> None:
    parent = await get_application(session, application_id=obj_in.parent_application_id)
    if parent is None:
        raise NotFound("Base application not found")
    if parent.owner_id != obj_in.owner_id:
        raise GuardFailed("base application belongs to another owner")
    if parent.status != Status.APPROVED.value:
        raise GuardFailed("base application not approved")

    open_request = await session.execute(
        select(Application.id)
        .where(Application.parent_application_id == parent.id)
        .where(Application.status.not_in(_TERMINAL_VALUES))
        .limit(1)
    )
    if open_request.scalar_one_or_none() is not None:
        raise GuardFailed("an open service request already exists for this application")


async def update_application(session: AsyncSession, *, db_obj: Application, obj_in: ApplicationUpdate) -> Application:
    """Apply applicant edits. Status is never touched here."""

    if db_obj.status not in {s.value for s in EDITABLE_STATUSES}:
        raise GuardFailed(f"application cannot be edited in status {db_obj.status}")

    data = obj_in.model_dump(exclude_unset=True)
    data = {k: v for k, v in data.items() if v is not None or k in _NULLABLE_EDIT_FIELDS}
    if data.get("property_name") is not None:
        data["property_name"] = data["property_name"].strip()
    if "documents" in data:
        data["documents"] = [d.model_dump(exclude_none=True) for d in obj_in.documents or []]
    if data.get("category") is not None and data["category"] not in {"diamond", "gold", "silver"}:
        raise GuardFailed("category must be one of: diamond, gold, silver")

    for field, value in data.items():
        setattr(db_obj, field, value)
    db_obj.updated_at = utcnow()

    session.add(db_obj)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        _raise_if_duplicate_registration(exc)
        raise
    await session.refresh(db_obj)
    return db_obj


async def compare_and_set_status(
    session: AsyncSession,
    *,
    application_id: UUID,
    expected_status: str,
    values: dict,
) -> bool:
    """Conditionally write `values` (including the new status).

    Returns False when the stored status no longer equals `expected_status`,
    i.e. another writer got there first. Does not commit.
    """

    stmt = (
        update(Application)
        .where(Application.id == application_id)
        .where(Application.status == expected_status)
        .values(**values, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    try:
        res = await session.execute(stmt)
    except IntegrityError as exc:
        _raise_if_duplicate_registration(exc)
        raise
    return res.rowcount == 1


def _raise_if_duplicate_registration(exc: IntegrityError) -> None:
    # Concurrent submissions both pass the duplicate guard; the index decides.
    if OPEN_REGISTRATION_INDEX in str(exc.orig):
        raise GuardFailed("duplicate active application") from exc


async def count_open_registrations(
    session: AsyncSession,
    *,
    owner_id: UUID,
    property_name: str,
    kinds: list[str],
    exclude_id: UUID | None = None,
) -> int:
    """Submitted, non-terminal registrations for the same owner + property."""

    stmt = (
        select(func.count())
        .select_from(Application)
        .where(Application.owner_id == owner_id)
        .where(func.lower(Application.property_name) == property_name.strip().lower())
        .where(Application.kind.in_(kinds))
        .where(Application.status.not_in(_TERMINAL_VALUES + [Status.DRAFT.value]))
    )
    if exclude_id is not None:
        stmt = stmt.where(Application.id != exclude_id)

    return int((await session.execute(stmt)).scalar_one())


async def list_active_applications(session: AsyncSession, *, owner_id: UUID) -> list[Application]:
    """Owner's applications excluding superseded ones (newest first)."""

    stmt = (
        select(Application)
        .where(Application.owner_id == owner_id)
        .where(Application.status != Status.SUPERSEDED.value)
        .order_by(Application.created_at.desc(), Application.application_number.desc())
    )
    res = await session.execute(stmt)
    return list(res.scalars().all())

