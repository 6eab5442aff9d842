from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from caseflow.config import settings
from caseflow.workflow.states import CORRECTION_STATUSES, Role, Status
from caseflow.workflow.transitions import REVERSAL_ACTIONS, Action


@dataclass(frozen=True)
class CorrectionState:
    """Derived view of an application's correction loop.

    requested_by: role of the officer behind the latest reversal, if any.
    resubmitted: the applicant has resubmitted since that reversal.
    """

    requested_by: str | None
    resubmitted: bool
    revert_count: int
    correction_submission_count: int

    @property
    def needs_owner_action(self) -> bool:
        return self.requested_by is not None and not self.resubmitted


def revert_ceiling_reached(app, *, max_reverts: int | None = None) -> bool:
    limit = settings.max_reverts if max_reverts is None else max_reverts
    return int(app.revert_count or 0) >= limit


def is_reversal(action: Action | str) -> bool:
    return Action(action) in REVERSAL_ACTIONS


def correction_state(app) -> CorrectionState:
    in_correction = app.status in {s.value for s in CORRECTION_STATUSES}
    reverted_at = app.last_reverted_at
    resubmitted_at = app.last_resubmitted_at
    resubmitted = bool(resubmitted_at and reverted_at and _after(resubmitted_at, reverted_at))

    return CorrectionState(
        requested_by=_requested_by(app) if in_correction else None,
        resubmitted=resubmitted,
        revert_count=int(app.revert_count or 0),
        correction_submission_count=int(app.correction_submission_count or 0),
    )


def reversal_effects(app, *, role: str, now: datetime) -> dict:
    """Field updates for a successful send-back; the submission counter is untouched."""

    return {
        "revert_count": int(app.revert_count or 0) + 1,
        "last_reverted_by": role,
        "last_reverted_at": now,
    }


def resubmission_effects(app, *, now: datetime) -> dict:
    return {
        "correction_submission_count": int(app.correction_submission_count or 0) + 1,
        "last_resubmitted_at": now,
    }


def reverting_tier(status: str | Status) -> Role | None:
    status = Status(status)
    if status == Status.REVERTED_TO_APPLICANT:
        return Role.DEALING_ASSISTANT
    if status in (Status.REVERTED_BY_DTDO, Status.OBJECTION_RAISED):
        return Role.DISTRICT_TOURISM_OFFICER
    return None


def _requested_by(app) -> str | None:
    if app.last_reverted_by:
        return app.last_reverted_by
    tier = reverting_tier(app.status)
    return tier.value if tier is not None else None


def _after(a: datetime, b: datetime) -> bool:
    # SQLite hands back naive datetimes; compare like with like.
    if (a.tzinfo is None) != (b.tzinfo is None):
        a = a.replace(tzinfo=None)
        b = b.replace(tzinfo=None)
    return a >= b
