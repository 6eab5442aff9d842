from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from caseflow.workflow.errors import Forbidden, InvalidTransition
from caseflow.workflow.states import Role, Status


class Action(str, Enum):
    SUBMIT = "submit"
    START_SCRUTINY = "start_scrutiny"
    FORWARD_TO_DTDO = "forward_to_dtdo"
    REVERT_TO_APPLICANT = "revert_to_applicant"
    RESUBMIT = "resubmit"
    DTDO_ACCEPT = "dtdo_accept"
    DTDO_REVERT = "dtdo_revert"
    SCHEDULE_INSPECTION = "schedule_inspection"
    SUBMIT_INSPECTION_REPORT = "submit_inspection_report"
    REVIEW_INSPECTION = "review_inspection"
    RAISE_OBJECTION = "raise_objection"
    DTDO_APPROVE = "dtdo_approve"
    DTDO_REJECT = "dtdo_reject"
    RECORD_PAYMENT_CONFIRMED = "record_payment_confirmed"
    ISSUE_CERTIFICATE = "issue_certificate"
    # Substituted by the engine; never requested directly.
    AUTO_REJECT = "auto_reject"


# Actions that send a case back to the applicant. They share one ceiling.
REVERSAL_ACTIONS: frozenset[Action] = frozenset(
    {Action.REVERT_TO_APPLICANT, Action.DTDO_REVERT, Action.RAISE_OBJECTION}
)

INTERNAL_ACTIONS: frozenset[Action] = frozenset({Action.AUTO_REJECT})


@dataclass(frozen=True)
class Transition:
    source: Status
    action: Action
    role: Role
    target: Status
    guards: tuple[str, ...] = ()
    # Target used instead of `target` when the fee is settled or not applicable.
    settled_target: Status | None = None


_OWNER = Role.PROPERTY_OWNER
_DA = Role.DEALING_ASSISTANT
_DTDO = Role.DISTRICT_TOURISM_OFFICER
_SYSTEM = Role.SYSTEM

_SUBMIT_GUARDS = ("applicant_owns", "documents_complete", "parent_approved", "no_duplicate_active", "upfront_payment")
_RESUBMIT_GUARDS = ("applicant_owns", "documents_complete")


TRANSITIONS: tuple[Transition, ...] = (
    # Applicant
    Transition(Status.DRAFT, Action.SUBMIT, _OWNER, Status.SUBMITTED, _SUBMIT_GUARDS),
    Transition(Status.REVERTED_TO_APPLICANT, Action.RESUBMIT, _OWNER, Status.UNDER_SCRUTINY, _RESUBMIT_GUARDS),
    Transition(Status.REVERTED_BY_DTDO, Action.RESUBMIT, _OWNER, Status.DTDO_REVIEW, _RESUBMIT_GUARDS),
    Transition(Status.OBJECTION_RAISED, Action.RESUBMIT, _OWNER, Status.RESUBMITTED, _RESUBMIT_GUARDS),
    # Dealing assistant
    Transition(Status.SUBMITTED, Action.START_SCRUTINY, _DA, Status.UNDER_SCRUTINY, ("officer_district",)),
    Transition(Status.RESUBMITTED, Action.START_SCRUTINY, _DA, Status.UNDER_SCRUTINY, ("officer_district",)),
    Transition(Status.UNDER_SCRUTINY, Action.FORWARD_TO_DTDO, _DA, Status.FORWARDED_TO_DTDO, ("officer_district",)),
    Transition(
        Status.UNDER_SCRUTINY,
        Action.REVERT_TO_APPLICANT,
        _DA,
        Status.REVERTED_TO_APPLICANT,
        ("officer_district", "remarks_present", "otp_verified"),
    ),
    Transition(Status.UNDER_SCRUTINY, Action.AUTO_REJECT, _DA, Status.REJECTED, ("officer_district",)),
    Transition(
        Status.INSPECTION_SCHEDULED,
        Action.SUBMIT_INSPECTION_REPORT,
        _DA,
        Status.INSPECTION_COMPLETED,
        ("officer_district", "inspection_report_attached"),
    ),
    # District tourism officer
    Transition(Status.FORWARDED_TO_DTDO, Action.DTDO_ACCEPT, _DTDO, Status.DTDO_REVIEW, ("officer_district",)),
    Transition(
        Status.DTDO_REVIEW, Action.DTDO_REVERT, _DTDO, Status.REVERTED_BY_DTDO, ("officer_district", "remarks_present")
    ),
    Transition(Status.DTDO_REVIEW, Action.AUTO_REJECT, _DTDO, Status.REJECTED, ("officer_district",)),
    Transition(
        Status.DTDO_REVIEW,
        Action.SCHEDULE_INSPECTION,
        _DTDO,
        Status.INSPECTION_SCHEDULED,
        ("officer_district", "inspection_date_present"),
    ),
    Transition(
        Status.DTDO_REVIEW,
        Action.DTDO_APPROVE,
        _DTDO,
        Status.PAYMENT_PENDING,
        ("officer_district", "inspection_not_required"),
        settled_target=Status.APPROVED,
    ),
    Transition(Status.DTDO_REVIEW, Action.DTDO_REJECT, _DTDO, Status.REJECTED, ("officer_district", "remarks_present")),
    Transition(
        Status.INSPECTION_COMPLETED, Action.REVIEW_INSPECTION, _DTDO, Status.INSPECTION_UNDER_REVIEW, ("officer_district",)
    ),
    Transition(
        Status.INSPECTION_UNDER_REVIEW,
        Action.DTDO_APPROVE,
        _DTDO,
        Status.PAYMENT_PENDING,
        ("officer_district", "inspection_report_present"),
        settled_target=Status.APPROVED,
    ),
    Transition(
        Status.INSPECTION_UNDER_REVIEW,
        Action.RAISE_OBJECTION,
        _DTDO,
        Status.OBJECTION_RAISED,
        ("officer_district", "remarks_present"),
    ),
    Transition(Status.INSPECTION_UNDER_REVIEW, Action.AUTO_REJECT, _DTDO, Status.REJECTED, ("officer_district",)),
    Transition(
        Status.INSPECTION_UNDER_REVIEW, Action.DTDO_REJECT, _DTDO, Status.REJECTED, ("officer_district", "remarks_present")
    ),
    # Payment gateway callback / system
    Transition(
        Status.DRAFT,
        Action.RECORD_PAYMENT_CONFIRMED,
        _SYSTEM,
        Status.DRAFT,
        ("payment_successful", "payment_outstanding"),
    ),
    Transition(
        Status.PAYMENT_PENDING, Action.RECORD_PAYMENT_CONFIRMED, _SYSTEM, Status.VERIFIED_FOR_PAYMENT, ("payment_successful",)
    ),
    Transition(Status.VERIFIED_FOR_PAYMENT, Action.ISSUE_CERTIFICATE, _SYSTEM, Status.APPROVED, ("payment_sufficient",)),
)


class TransitionTable:
    """Lookup over `(current status, action)`.

    Built once from a sequence of `Transition` rows; duplicate keys are a
    programming error and fail at construction time.
    """

    def __init__(self, transitions: tuple[Transition, ...] = TRANSITIONS) -> None:
        table: dict[tuple[Status, Action], Transition] = {}
        for t in transitions:
            key = (t.source, t.action)
            if key in table:
                raise ValueError(f"duplicate transition for {t.source.value} + {t.action.value}")
            table[key] = t
        self._table = table

    def __iter__(self):
        return iter(self._table.values())

    def __len__(self) -> int:
        return len(self._table)

    def get(self, source: str | Status, action: str | Action) -> Transition | None:
        try:
            key = (Status(source), Action(action))
        except ValueError:
            return None
        return self._table.get(key)

    def lookup(self, source: str | Status, action: str | Action, role: str | Role) -> Transition:
        """Return the transition or raise InvalidTransition / Forbidden."""

        transition = self.get(source, action)
        if transition is None:
            raise InvalidTransition(f"{_value(action)} is not allowed from {_value(source)}")
        if _value(role) != transition.role.value:
            raise Forbidden(f"{_value(action)} requires role {transition.role.value}")
        return transition

    def actions_from(self, source: str | Status) -> list[Action]:
        status = Status(source)
        return [t.action for t in self._table.values() if t.source == status and t.action not in INTERNAL_ACTIONS]

    def reachable_statuses(self) -> set[Status]:
        reached = {Status.DRAFT}
        for t in self._table.values():
            reached.add(t.target)
            if t.settled_target is not None:
                reached.add(t.settled_target)
        return reached


def _value(v) -> str:
    return v.value if isinstance(v, Enum) else str(v)


DEFAULT_TABLE = TransitionTable()
