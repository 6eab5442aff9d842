import pytest
from sqlalchemy import func, select

from caseflow.crud.system_setting import get_setting
from caseflow.models.user import User
from caseflow.scripts.seed_dev_data import DEMO_USERS, seed_dev_data
from caseflow.services.collaborators import UserOfficerDirectory

pytestmark = pytest.mark.anyio


async def test_seed_dev_data_is_idempotent(session_factory):
    # Run twice to assert idempotency.
    r1 = await seed_dev_data(session_factory)
    r2 = await seed_dev_data(session_factory)

    assert r1.user_ids == r2.user_ids
    assert r1.payment_workflow == "on_approval"

    async with session_factory() as session:
        count = (await session.execute(select(func.count()).select_from(User))).scalar_one()
        assert count == len(DEMO_USERS)

        setting = await get_setting(session, "payment_workflow")
        assert setting.setting_value == {"workflow": "on_approval"}

        # Seeded DTDOs are the OTP recipients for their district.
        assert await UserOfficerDirectory(manifest={}).dtdo_mobile(session, "Kullu") == "9817000002"
