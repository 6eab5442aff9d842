from datetime import datetime, timezone

import pytest

from caseflow.workflow.errors import GuardFailed, InvalidTransition
from caseflow.workflow.payment_policy import PaymentWorkflow

from tests._workflow import (
    ONBOARDING_DOCUMENTS,
    act,
    approve_registration,
    create_draft,
    load,
    pay,
    through_inspection,
    to_dtdo_review,
)

pytestmark = pytest.mark.anyio


async def _set_workflow(workflow, session_factory, value):
    async with session_factory() as session:
        await workflow.payment_policy.set(session, value)


async def test_default_workflow_is_on_approval(workflow, session_factory):
    async with session_factory() as session:
        assert await workflow.payment_policy.current(session) == PaymentWorkflow.ON_APPROVAL


async def test_on_approval_path_issues_certificate_after_payment(workflow, session_factory, owner, officers):
    app_id = await create_draft(session_factory, owner)
    await to_dtdo_review(workflow, session_factory, app_id, owner, officers)
    await through_inspection(workflow, session_factory, app_id, officers)

    result = await act(workflow, session_factory, "dtdo_approve", app_id, officers["dtdo"], remarks="Approved")
    assert result.new_status == "payment_pending"
    assert (await load(session_factory, app_id)).certificate_number is None

    result = await pay(workflow, session_factory, app_id, transaction_id="TXN-42")
    assert result.action == "issue_certificate"
    assert result.new_status == "approved"

    app = await load(session_factory, app_id)
    assert app.status == "approved"
    assert app.payment_status == "verified"
    assert app.payment_transaction_id == "TXN-42"
    assert app.certificate_number.startswith("HP-HST-2025-SML-")
    assert app.approved_at is not None
    issued = app.certificate_issued_at.replace(tzinfo=timezone.utc)
    expires = app.certificate_expires_at.replace(tzinfo=timezone.utc)
    assert issued == datetime(2025, 6, 1, 10, 0, tzinfo=timezone.utc)
    assert expires == datetime(2026, 6, 1, 10, 0, tzinfo=timezone.utc)


async def test_upfront_submission_requires_payment(workflow, session_factory, owner, officers):
    await _set_workflow(workflow, session_factory, "upfront")
    app_id = await create_draft(session_factory, owner)

    with pytest.raises(GuardFailed) as exc:
        await act(workflow, session_factory, "submit", app_id, owner)
    assert exc.value.reason == "payment required"

    result = await pay(workflow, session_factory, app_id, transaction_id="TXN-UP")
    assert result.new_status == "draft"
    assert (await load(session_factory, app_id)).payment_status == "paid"

    result = await act(workflow, session_factory, "submit", app_id, owner)
    assert result.new_status == "submitted"

    await act(workflow, session_factory, "start_scrutiny", app_id, officers["da"])
    await act(workflow, session_factory, "forward_to_dtdo", app_id, officers["da"])
    await act(workflow, session_factory, "dtdo_accept", app_id, officers["dtdo"])
    await through_inspection(workflow, session_factory, app_id, officers)

    result = await act(workflow, session_factory, "dtdo_approve", app_id, officers["dtdo"], remarks="Approved")
    assert result.new_status == "approved"

    app = await load(session_factory, app_id)
    assert app.payment_status == "verified"
    assert app.certificate_number is not None


async def test_duplicate_payment_on_draft_is_refused(workflow, session_factory, owner):
    await _set_workflow(workflow, session_factory, "upfront")
    app_id = await create_draft(session_factory, owner)
    await pay(workflow, session_factory, app_id)

    with pytest.raises(GuardFailed) as exc:
        await pay(workflow, session_factory, app_id, transaction_id="TXN-2")
    assert exc.value.reason == "payment already recorded"


async def test_failed_payment_callback_changes_nothing(workflow, session_factory, owner, officers):
    app_id = await create_draft(session_factory, owner)
    await to_dtdo_review(workflow, session_factory, app_id, owner, officers)
    await through_inspection(workflow, session_factory, app_id, officers)
    await act(workflow, session_factory, "dtdo_approve", app_id, officers["dtdo"], remarks="Approved")

    with pytest.raises(GuardFailed) as exc:
        await pay(workflow, session_factory, app_id, status="failed")
    assert exc.value.reason == "payment not successful"

    app = await load(session_factory, app_id)
    assert app.status == "payment_pending"
    assert app.payment_status == "unpaid"


async def test_switching_policy_does_not_affect_paid_cases(workflow, session_factory, owner, officers):
    await _set_workflow(workflow, session_factory, "upfront")
    app_id = await create_draft(session_factory, owner)
    await pay(workflow, session_factory, app_id)
    await act(workflow, session_factory, "submit", app_id, owner)

    await _set_workflow(workflow, session_factory, "on_approval")

    await act(workflow, session_factory, "start_scrutiny", app_id, officers["da"])
    await act(workflow, session_factory, "forward_to_dtdo", app_id, officers["da"])
    await act(workflow, session_factory, "dtdo_accept", app_id, officers["dtdo"])
    await through_inspection(workflow, session_factory, app_id, officers)

    result = await act(workflow, session_factory, "dtdo_approve", app_id, officers["dtdo"], remarks="Approved")
    assert result.new_status == "approved"


async def test_onboarding_is_fee_exempt_and_skips_inspection(workflow, session_factory, owner, officers):
    await _set_workflow(workflow, session_factory, "upfront")
    app_id = await create_draft(session_factory, owner, kind="existing_rc_onboarding", documents=ONBOARDING_DOCUMENTS)

    await to_dtdo_review(workflow, session_factory, app_id, owner, officers)
    result = await act(workflow, session_factory, "dtdo_approve", app_id, officers["dtdo"], remarks="Legacy RC valid")

    assert result.new_status == "approved"
    app = await load(session_factory, app_id)
    assert app.payment_status == "unpaid"
    assert app.certificate_number is not None


async def test_new_registration_needs_inspection_before_approval(workflow, session_factory, owner, officers):
    app_id = await create_draft(session_factory, owner)
    await to_dtdo_review(workflow, session_factory, app_id, owner, officers)

    with pytest.raises(GuardFailed) as exc:
        await act(workflow, session_factory, "dtdo_approve", app_id, officers["dtdo"], remarks="Looks fine")
    assert exc.value.reason == "inspection required"


async def test_certificate_cannot_be_issued_twice(workflow, session_factory, owner, officers):
    app_id = await create_draft(session_factory, owner)
    await approve_registration(workflow, session_factory, app_id, owner, officers)

    with pytest.raises(InvalidTransition):
        async with session_factory() as session:
            await workflow.issue_certificate(session, app_id)
