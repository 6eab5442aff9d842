from __future__ import annotations

from enum import Enum


class Status(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_SCRUTINY = "under_scrutiny"
    REVERTED_TO_APPLICANT = "reverted_to_applicant"
    RESUBMITTED = "resubmitted"
    FORWARDED_TO_DTDO = "forwarded_to_dtdo"
    DTDO_REVIEW = "dtdo_review"
    REVERTED_BY_DTDO = "reverted_by_dtdo"
    OBJECTION_RAISED = "objection_raised"
    INSPECTION_SCHEDULED = "inspection_scheduled"
    INSPECTION_UNDER_REVIEW = "inspection_under_review"
    INSPECTION_COMPLETED = "inspection_completed"
    PAYMENT_PENDING = "payment_pending"
    VERIFIED_FOR_PAYMENT = "verified_for_payment"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUPERSEDED = "superseded"


class ApplicationKind(str, Enum):
    NEW_REGISTRATION = "new_registration"
    EXISTING_RC_ONBOARDING = "existing_rc_onboarding"
    RENEWAL = "renewal"
    AMENDMENT = "amendment"
    ADD_ROOMS = "add_rooms"
    DELETE_ROOMS = "delete_rooms"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    VERIFIED = "verified"
    REFUNDED = "refunded"


class Role(str, Enum):
    PROPERTY_OWNER = "property_owner"
    DEALING_ASSISTANT = "dealing_assistant"
    DISTRICT_TOURISM_OFFICER = "district_tourism_officer"
    SYSTEM = "system"


INITIAL_STATUS = Status.DRAFT

TERMINAL_STATUSES: frozenset[Status] = frozenset({Status.APPROVED, Status.REJECTED, Status.SUPERSEDED})

# Statuses in which the applicant is expected to act on officer feedback.
CORRECTION_STATUSES: frozenset[Status] = frozenset(
    {Status.REVERTED_TO_APPLICANT, Status.REVERTED_BY_DTDO, Status.OBJECTION_RAISED}
)

# The applicant may edit details and documents only here.
EDITABLE_STATUSES: frozenset[Status] = frozenset({Status.DRAFT}) | CORRECTION_STATUSES

FOLLOW_UP_KINDS: frozenset[ApplicationKind] = frozenset(
    {ApplicationKind.AMENDMENT, ApplicationKind.ADD_ROOMS, ApplicationKind.DELETE_ROOMS}
)

# One live registration per owner + property for these kinds.
REGISTRATION_KINDS: frozenset[ApplicationKind] = frozenset(
    {ApplicationKind.NEW_REGISTRATION, ApplicationKind.EXISTING_RC_ONBOARDING}
)

# No fee is collected for onboarding an already licensed property.
FEE_EXEMPT_KINDS: frozenset[ApplicationKind] = frozenset({ApplicationKind.EXISTING_RC_ONBOARDING})

INSPECTION_EXEMPT_KINDS: frozenset[ApplicationKind] = frozenset(
    {ApplicationKind.EXISTING_RC_ONBOARDING, ApplicationKind.DELETE_ROOMS, ApplicationKind.AMENDMENT}
)

SETTLED_PAYMENT_STATUSES: frozenset[PaymentStatus] = frozenset({PaymentStatus.PAID, PaymentStatus.VERIFIED})


def is_terminal(status: str) -> bool:
    return status in {s.value for s in TERMINAL_STATUSES}
