from __future__ import annotations

import uuid

from sqlalchemy import CheckConstraint, Date, DateTime, Index, Integer, String, Text, Uuid, func, text
from sqlalchemy.orm import Mapped, mapped_column

from caseflow.workflow.states import (
    REGISTRATION_KINDS,
    TERMINAL_STATUSES,
    ApplicationKind,
    PaymentStatus,
    Status,
)

from .base import Base, JSONType, utcnow


CATEGORIES = ("diamond", "gold", "silver")

# Submitting a registration trips this index when the owner already has one in flight.
OPEN_REGISTRATION_INDEX = "uq_applications_open_registration"


def _one_of(column: str, values) -> str:
    quoted = ", ".join(f"'{getattr(v, 'value', v)}'" for v in values)
    return f"{column} IN ({quoted})"


_OPEN_REGISTRATION_WHERE = text(
    _one_of("kind", sorted(k.value for k in REGISTRATION_KINDS))
    + " AND NOT "
    + _one_of("status", sorted([Status.DRAFT.value] + [s.value for s in TERMINAL_STATUSES]))
)


class Application(Base):
    __tablename__ = "applications"
    __table_args__ = (
        CheckConstraint(_one_of("status", Status), name="ck_applications_status"),
        CheckConstraint(_one_of("kind", ApplicationKind), name="ck_applications_kind"),
        CheckConstraint(_one_of("category", CATEGORIES), name="ck_applications_category"),
        CheckConstraint(_one_of("payment_status", PaymentStatus), name="ck_applications_payment_status"),
        CheckConstraint("revert_count >= 0", name="ck_applications_revert_count_non_negative"),
        CheckConstraint(
            "correction_submission_count >= 0",
            name="ck_applications_correction_submission_count_non_negative",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    application_number: Mapped[str] = mapped_column(String(40), nullable=False, unique=True)

    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    owner_mobile: Mapped[str | None] = mapped_column(String(20), nullable=True)
    property_name: Mapped[str] = mapped_column(String(255), nullable=False)
    district: Mapped[str] = mapped_column(String(100), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False, server_default="silver")
    total_rooms: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")

    kind: Mapped[str] = mapped_column(String(40), nullable=False, server_default="new_registration")
    # Written only through WorkflowEngine; see caseflow.services.workflow_engine.
    status: Mapped[str] = mapped_column(String(50), nullable=False, server_default="draft", index=True)

    parent_application_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    room_delta: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    documents: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    revert_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    correction_submission_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    last_reverted_by: Mapped[str | None] = mapped_column(String(50), nullable=True)
    last_reverted_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_resubmitted_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)

    da_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    dtdo_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    reviewer_remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    inspection_date: Mapped[object | None] = mapped_column(Date, nullable=True)
    inspection_report: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    payment_status: Mapped[str] = mapped_column(String(20), nullable=False, server_default="unpaid")
    payment_transaction_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    paid_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)

    certificate_number: Mapped[str | None] = mapped_column(String(60), nullable=True)
    certificate_issued_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)
    certificate_expires_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)

    submitted_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)
    superseded_at: Mapped[object | None] = mapped_column(DateTime(timezone=True), nullable=True)
    superseded_by_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)

    created_at: Mapped[object] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
    updated_at: Mapped[object] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )


Index(
    OPEN_REGISTRATION_INDEX,
    Application.owner_id,
    func.lower(Application.property_name),
    unique=True,
    postgresql_where=_OPEN_REGISTRATION_WHERE,
    sqlite_where=_OPEN_REGISTRATION_WHERE,
)
