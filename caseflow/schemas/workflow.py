from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field


class ActionRequest(BaseModel):
    remarks: str | None = None
    inspection_date: date | None = None
    report: dict[str, Any] | None = None


class TransitionResultRead(BaseModel):
    application_id: UUID
    action: str
    effective_action: str
    previous_status: str
    new_status: str
    audit_id: int


class AuditRecordRead(BaseModel):
    id: int
    application_id: UUID
    action: str
    effective_action: str | None
    previous_status: str | None
    new_status: str | None
    actor_id: UUID | None
    actor_role: str
    remarks: str | None
    error_code: str | None
    created_at: datetime

    class Config:
        from_attributes = True


class OtpRequest(BaseModel):
    reason: str = Field(min_length=10, description="Why the application is being sent back")


class OtpVerify(BaseModel):
    otp: str = Field(min_length=6, max_length=6, pattern=r"^\d{6}$")


class OtpIssuedRead(BaseModel):
    message: str
    expires_in: int
    masked_mobile: str


class OtpVerifiedRead(BaseModel):
    verified: bool
    message: str


class RevertCheckRead(BaseModel):
    revert_count: int
    will_auto_reject: bool
    message: str


class PaymentCallback(BaseModel):
    application_id: UUID
    transaction_id: str = Field(min_length=1, max_length=100)
    status: Literal["success", "failed", "pending"]


class PaymentWorkflowRead(BaseModel):
    workflow: Literal["upfront", "on_approval"]
