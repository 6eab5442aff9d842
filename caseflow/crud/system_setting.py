from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.models.base import utcnow
from caseflow.models.system_setting import SystemSetting


async def get_setting(session: AsyncSession, key: str) -> SystemSetting | None:
    return await session.get(SystemSetting, key)


async def upsert_setting(session: AsyncSession, key: str, value: dict) -> SystemSetting:
    """Insert or replace a setting. Does not commit."""

    record = await session.get(SystemSetting, key)
    if record is None:
        record = SystemSetting(setting_key=key, setting_value=value)
        session.add(record)
    else:
        record.setting_value = value
        record.updated_at = utcnow()

    await session.flush()
    return record
