from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.models.application_number_counter import ApplicationNumberCounter
from caseflow.workflow.states import ApplicationKind


DISTRICT_CODES: dict[str, str] = {
    "bilaspur": "BLP",
    "chamba": "CHM",
    "hamirpur": "HMR",
    "kangra": "KNG",
    "kinnaur": "KNR",
    "kullu": "KLU",
    "lahaul and spiti": "LHS",
    "mandi": "MND",
    "shimla": "SML",
    "sirmaur": "SRM",
    "solan": "SLN",
    "una": "UNA",
}

REGULAR_PREFIX = "HP-HS"
LEGACY_PREFIX = "LG-HS"


def district_code(district: str | None) -> str:
    """Three letter code for a district label such as "Shimla HQ (AC Tourism)"."""

    label = (district or "").strip().lower()
    for name, code in DISTRICT_CODES.items():
        if label.startswith(name):
            return code
    letters = "".join(ch for ch in label if ch.isalpha())
    return (letters[:3] or "XXX").upper()


def number_prefix(kind: str) -> str:
    return LEGACY_PREFIX if kind == ApplicationKind.EXISTING_RC_ONBOARDING.value else REGULAR_PREFIX


def format_application_number(*, prefix: str, year: int, district: str | None, serial: int) -> str:
    return f"{prefix}-{year}-{district_code(district)}-{serial:06d}"


def parse_serial(application_number: str) -> int:
    tail = application_number.rsplit("-", 1)[-1]
    return int(tail) if tail.isdigit() else 0


async def next_serial(session: AsyncSession, scope: str) -> int:
    """Bump and return the counter for `scope` in one statement.

    The counter row stays locked until the caller's transaction ends, so
    concurrent drafts get distinct serials.
    """

    insert = pg_insert if session.get_bind().dialect.name == "postgresql" else sqlite_insert
    stmt = (
        insert(ApplicationNumberCounter)
        .values(scope=scope, last_serial=1)
        .on_conflict_do_update(
            index_elements=[ApplicationNumberCounter.scope],
            set_={"last_serial": ApplicationNumberCounter.last_serial + 1},
        )
        .returning(ApplicationNumberCounter.last_serial)
    )
    return int((await session.execute(stmt)).scalar_one())


async def next_application_number(
    session: AsyncSession,
    *,
    kind: str,
    district: str | None,
    now: datetime | None = None,
) -> str:
    """Allocate the next number for the kind's prefix and the current year.

    Serials are global per prefix + year (not per district).
    """

    now = now or datetime.now(timezone.utc)
    prefix = number_prefix(kind)
    serial = await next_serial(session, f"{prefix}-{now.year}")
    return format_application_number(prefix=prefix, year=now.year, district=district, serial=serial)
