from __future__ import annotations

import uuid

from sqlalchemy import BigInteger, DateTime, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class ApplicationAction(Base):
    """Append-only audit record of a workflow transition attempt.

    `new_status` is NULL when the attempt failed; `error_code` then holds the
    failure kind. Rows are never updated or deleted.
    """

    __tablename__ = "application_actions"

    # Insertion sequence; breaks created_at ties.
    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    # No FK: failed attempts against unknown ids are logged too.
    application_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    action: Mapped[str] = mapped_column(String(50), nullable=False)
    effective_action: Mapped[str | None] = mapped_column(String(50), nullable=True)

    previous_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    new_status: Mapped[str | None] = mapped_column(String(50), nullable=True)

    actor_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    actor_role: Mapped[str] = mapped_column(String(50), nullable=False)

    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)
    error_code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    created_at: Mapped[object] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
