from __future__ import annotations

import os
import sys

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from caseflow.config import settings


_engine_kwargs: dict = {"pool_pre_ping": True}

# NOTE: under pytest requests may run across different event loops and pooled
# asyncpg connections can be reused across loops, causing:
#   RuntimeError: got Future attached to a different loop
# Disable pooling while tests are running or being collected.
if os.getenv("PYTEST_CURRENT_TEST") or ("pytest" in sys.modules):
    _engine_kwargs["poolclass"] = NullPool

engine = create_async_engine(settings.database_url, **_engine_kwargs)
SessionLocal = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)

