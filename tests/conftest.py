import os

# Settings are read at import time; point them at test backends first.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./caseflow-test.db")
os.environ.setdefault("OTP_STORE_BACKEND", "memory")
os.environ.setdefault("NOTIFICATION_BACKEND", "log")

import uuid  # noqa: E402
from datetime import datetime, timezone  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from caseflow.models import Base  # noqa: E402
from caseflow.models.user import User  # noqa: E402
from caseflow.services.collaborators import UserOfficerDirectory  # noqa: E402
from caseflow.services.otp_gate import OtpGate  # noqa: E402
from caseflow.services.otp_store import MemoryOtpStore  # noqa: E402
from caseflow.services.wiring import build_workflow_engine  # noqa: E402
from caseflow.workflow.actor import Actor  # noqa: E402
from caseflow.workflow.states import Role  # noqa: E402

from tests._workflow import DISTRICT, DTDO_MOBILE, OTP_CODE, FakeClock, RecordingNotifier  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'caseflow.db'}", poolclass=NullPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

    await engine.dispose()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc))


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def otp_store() -> MemoryOtpStore:
    return MemoryOtpStore()


@pytest.fixture
def otp_gate(otp_store, notifier, clock) -> OtpGate:
    return OtpGate(
        store=otp_store,
        officers=UserOfficerDirectory(manifest={}),
        notifier=notifier,
        clock=clock,
        code_factory=lambda: OTP_CODE,
    )


@pytest.fixture
def workflow(session_factory, notifier, otp_gate, clock):
    return build_workflow_engine(session_factory=session_factory, notifier=notifier, otp_gate=otp_gate, clock=clock)


@pytest.fixture
async def officers(session_factory) -> dict[str, Actor]:
    async with session_factory() as session:
        da = User(full_name="Shimla DA", role=Role.DEALING_ASSISTANT.value, district=DISTRICT, mobile="9816000001")
        dtdo = User(
            full_name="Shimla DTDO",
            role=Role.DISTRICT_TOURISM_OFFICER.value,
            district=DISTRICT,
            mobile=DTDO_MOBILE,
        )
        session.add_all([da, dtdo])
        await session.commit()

    return {
        "da": Actor(id=da.id, role=Role.DEALING_ASSISTANT.value, district=DISTRICT),
        "dtdo": Actor(id=dtdo.id, role=Role.DISTRICT_TOURISM_OFFICER.value, district=DISTRICT),
    }


@pytest.fixture
def owner() -> Actor:
    return Actor(id=uuid.uuid4(), role=Role.PROPERTY_OWNER.value)
