from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class ApplicationNumberCounter(Base):
    """Last serial handed out per number scope, e.g. "HP-HS-2025"."""

    __tablename__ = "application_number_counters"

    scope: Mapped[str] = mapped_column(String(40), primary_key=True)
    last_serial: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
