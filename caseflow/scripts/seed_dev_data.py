from __future__ import annotations

import asyncio
import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from caseflow.config import settings
from caseflow.crud.system_setting import get_setting, upsert_setting
from caseflow.models.user import User
from caseflow.workflow.payment_policy import PAYMENT_WORKFLOW_SETTING_KEY
from caseflow.workflow.states import Role


@dataclass(frozen=True)
class SeedUserSpec:
    full_name: str
    role: str
    district: str
    mobile: str
    email: str


@dataclass(frozen=True)
class SeedResult:
    user_ids: tuple[uuid.UUID, ...]
    payment_workflow: str


DEMO_DISTRICTS: tuple[tuple[str, str], ...] = (
    ("Shimla", "98160000"),
    ("Kullu", "98170000"),
    ("Kangra", "98180000"),
)


def _officer_specs() -> tuple[SeedUserSpec, ...]:
    specs: list[SeedUserSpec] = []
    for district, mobile_prefix in DEMO_DISTRICTS:
        slug = district.lower()
        specs.append(
            SeedUserSpec(
                full_name=f"{district} Dealing Assistant",
                role=Role.DEALING_ASSISTANT.value,
                district=district,
                mobile=f"{mobile_prefix}01",
                email=f"da.{slug}@demo.local",
            )
        )
        specs.append(
            SeedUserSpec(
                full_name=f"{district} DTDO",
                role=Role.DISTRICT_TOURISM_OFFICER.value,
                district=district,
                mobile=f"{mobile_prefix}02",
                email=f"dtdo.{slug}@demo.local",
            )
        )
    return tuple(specs)


DEMO_USERS = _officer_specs()


async def _get_or_create_user(session: AsyncSession, *, spec: SeedUserSpec) -> User:
    res = await session.execute(select(User).where(User.email == spec.email))
    user = res.scalar_one_or_none()

    if user is None:
        user = User(
            full_name=spec.full_name,
            role=spec.role,
            district=spec.district,
            mobile=spec.mobile,
            email=spec.email,
            is_active=True,
        )
        session.add(user)
        await session.flush()
    else:
        # Ensure the demo officers stay active and roles are as expected.
        user.is_active = True
        user.role = spec.role
        user.district = spec.district
        user.mobile = user.mobile or spec.mobile

    return user


async def _ensure_payment_workflow(session: AsyncSession) -> str:
    record = await get_setting(session, PAYMENT_WORKFLOW_SETTING_KEY)
    if record is not None:
        return (record.setting_value or {}).get("workflow", settings.default_payment_workflow)

    await upsert_setting(session, PAYMENT_WORKFLOW_SETTING_KEY, {"workflow": settings.default_payment_workflow})
    return settings.default_payment_workflow


async def seed_dev_data(session_maker: async_sessionmaker | None = None) -> SeedResult:
    """Create demo officers per district and the default payment workflow. Safe to re-run."""

    engine = None
    if session_maker is None:
        engine = create_async_engine(settings.database_url, pool_pre_ping=True)
        session_maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    async with session_maker() as session:
        async with session.begin():
            users = [await _get_or_create_user(session, spec=spec) for spec in DEMO_USERS]
            workflow = await _ensure_payment_workflow(session)

    if engine is not None:
        await engine.dispose()

    return SeedResult(user_ids=tuple(u.id for u in users), payment_workflow=workflow)


def main() -> None:
    asyncio.run(seed_dev_data())


if __name__ == "__main__":
    main()
