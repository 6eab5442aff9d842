import pytest

from caseflow.workflow.errors import Forbidden, InvalidTransition
from caseflow.workflow.states import TERMINAL_STATUSES, Role, Status
from caseflow.workflow.transitions import DEFAULT_TABLE, TRANSITIONS, Action, Transition, TransitionTable


def test_every_status_is_reachable_from_draft():
    # superseded is entered only through the system supersede operation
    assert DEFAULT_TABLE.reachable_statuses() | {Status.SUPERSEDED} == set(Status)


def test_terminal_statuses_have_no_outgoing_transitions():
    for status in TERMINAL_STATUSES:
        assert DEFAULT_TABLE.actions_from(status) == []


def test_every_reversal_state_has_an_auto_reject_row():
    for t in DEFAULT_TABLE:
        if t.action in (Action.REVERT_TO_APPLICANT, Action.DTDO_REVERT, Action.RAISE_OBJECTION):
            auto = DEFAULT_TABLE.get(t.source, Action.AUTO_REJECT)
            assert auto is not None, t
            assert auto.target == Status.REJECTED
            assert auto.role == t.role


def test_auto_reject_is_not_offered_as_an_action():
    assert Action.AUTO_REJECT not in DEFAULT_TABLE.actions_from(Status.UNDER_SCRUTINY)
    assert Action.REVERT_TO_APPLICANT in DEFAULT_TABLE.actions_from(Status.UNDER_SCRUTINY)


def test_resubmission_routes_back_to_the_reverting_tier():
    owner = Role.PROPERTY_OWNER
    assert DEFAULT_TABLE.lookup(Status.REVERTED_TO_APPLICANT, Action.RESUBMIT, owner).target == Status.UNDER_SCRUTINY
    assert DEFAULT_TABLE.lookup(Status.REVERTED_BY_DTDO, Action.RESUBMIT, owner).target == Status.DTDO_REVIEW
    assert DEFAULT_TABLE.lookup(Status.OBJECTION_RAISED, Action.RESUBMIT, owner).target == Status.RESUBMITTED


def test_dtdo_approve_branches_on_payment():
    t = DEFAULT_TABLE.lookup(Status.DTDO_REVIEW, Action.DTDO_APPROVE, Role.DISTRICT_TOURISM_OFFICER)
    assert t.target == Status.PAYMENT_PENDING
    assert t.settled_target == Status.APPROVED


def test_lookup_unknown_pair_raises_invalid_transition():
    with pytest.raises(InvalidTransition):
        DEFAULT_TABLE.lookup(Status.DRAFT, Action.DTDO_APPROVE, Role.DISTRICT_TOURISM_OFFICER)


def test_lookup_wrong_role_raises_forbidden():
    with pytest.raises(Forbidden):
        DEFAULT_TABLE.lookup(Status.DRAFT, Action.SUBMIT, Role.DEALING_ASSISTANT)


def test_duplicate_rows_are_rejected():
    row = Transition(Status.DRAFT, Action.SUBMIT, Role.PROPERTY_OWNER, Status.SUBMITTED)
    with pytest.raises(ValueError):
        TransitionTable((row, row))


def test_table_size_matches_rows():
    assert len(DEFAULT_TABLE) == len(TRANSITIONS)
