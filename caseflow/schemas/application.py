from __future__ import annotations

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from caseflow.workflow.states import FOLLOW_UP_KINDS, ApplicationKind


class DocumentRef(BaseModel):
    type: str
    url: str | None = None
    name: str | None = None


class ApplicationCreate(BaseModel):
    owner_id: UUID
    owner_mobile: str | None = None

    kind: ApplicationKind = ApplicationKind.NEW_REGISTRATION
    property_name: str = Field(min_length=1, max_length=255)
    district: str = Field(min_length=1, max_length=100)
    category: str = "silver"
    total_rooms: int = Field(default=1, ge=1)

    parent_application_id: UUID | None = None
    room_delta: dict[str, int] | None = None
    documents: list[DocumentRef] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_service_request_link(self) -> "ApplicationCreate":
        is_follow_up = self.kind in FOLLOW_UP_KINDS
        if is_follow_up and self.parent_application_id is None:
            raise ValueError(f"parent_application_id is required for {self.kind.value}")
        if not is_follow_up and self.parent_application_id is not None:
            raise ValueError(f"parent_application_id is not allowed for {self.kind.value}")
        if self.category not in {"diamond", "gold", "silver"}:
            raise ValueError("category must be one of: diamond, gold, silver")
        return self


class ApplicationUpdate(BaseModel):
    owner_mobile: str | None = None
    property_name: str | None = Field(default=None, min_length=1, max_length=255)
    category: str | None = None
    total_rooms: int | None = Field(default=None, ge=1)
    room_delta: dict[str, int] | None = None
    documents: list[DocumentRef] | None = None


class CorrectionStateRead(BaseModel):
    requested_by: str | None
    resubmitted: bool
    revert_count: int
    correction_submission_count: int
    needs_owner_action: bool


class ApplicationListItem(BaseModel):
    id: UUID
    application_number: str
    kind: str
    status: str
    property_name: str
    district: str
    parent_application_id: UUID | None = None

    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ApplicationListResponse(BaseModel):
    items: list[ApplicationListItem]
    total: int


class ApplicationRead(BaseModel):
    id: UUID
    application_number: str

    owner_id: UUID
    owner_mobile: str | None
    property_name: str
    district: str
    category: str
    total_rooms: int

    kind: str
    status: str
    parent_application_id: UUID | None
    room_delta: dict[str, Any] | None
    documents: list[dict[str, Any]] = Field(default_factory=list)

    revert_count: int
    correction_submission_count: int
    reviewer_remarks: str | None

    inspection_date: date | None
    inspection_report: dict[str, Any] | None

    payment_status: str
    payment_transaction_id: str | None

    certificate_number: str | None
    certificate_issued_at: datetime | None
    certificate_expires_at: datetime | None

    submitted_at: datetime | None
    approved_at: datetime | None
    superseded_at: datetime | None
    superseded_by_id: UUID | None

    correction: CorrectionStateRead | None = None
    # Actions the transition table offers from the current status.
    next_actions: list[str] = Field(default_factory=list)

    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
