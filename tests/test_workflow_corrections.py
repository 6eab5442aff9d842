import pytest

from caseflow.workflow.corrections import correction_state
from caseflow.workflow.errors import GuardFailed

from tests._workflow import (
    act,
    actions,
    create_draft,
    load,
    send_back_otp,
    through_inspection,
    to_dtdo_review,
    to_under_scrutiny,
)

pytestmark = pytest.mark.anyio


async def test_revert_without_otp_is_refused(workflow, session_factory, owner, officers):
    app_id = await create_draft(session_factory, owner)
    await to_under_scrutiny(workflow, session_factory, app_id, owner, officers)

    with pytest.raises(GuardFailed) as exc:
        await act(workflow, session_factory, "revert_to_applicant", app_id, officers["da"], remarks="Fix the NOC")
    assert exc.value.reason == "otp not verified"

    app = await load(session_factory, app_id)
    assert app.status == "under_scrutiny"
    assert app.revert_count == 0


async def test_otp_gated_revert_and_resubmit(workflow, session_factory, owner, officers):
    app_id = await create_draft(session_factory, owner)
    await to_under_scrutiny(workflow, session_factory, app_id, owner, officers)
    await send_back_otp(workflow, session_factory, app_id, officers["da"])

    result = await act(
        workflow, session_factory, "revert_to_applicant", app_id, officers["da"], remarks="Fire safety NOC unreadable"
    )
    assert result.new_status == "reverted_to_applicant"

    app = await load(session_factory, app_id)
    assert app.revert_count == 1
    assert app.reviewer_remarks == "Fire safety NOC unreadable"
    state = correction_state(app)
    assert state.requested_by == "dealing_assistant"
    assert state.needs_owner_action is True

    # The verification is single use.
    assert await workflow.otp_gate.is_verified(app_id) is False

    result = await act(workflow, session_factory, "resubmit", app_id, owner)
    assert result.new_status == "under_scrutiny"

    app = await load(session_factory, app_id)
    assert app.correction_submission_count == 1
    assert app.revert_count == 1
    assert correction_state(app).needs_owner_action is False


async def test_revert_requires_remarks(workflow, session_factory, owner, officers):
    app_id = await create_draft(session_factory, owner)
    await to_under_scrutiny(workflow, session_factory, app_id, owner, officers)
    await send_back_otp(workflow, session_factory, app_id, officers["da"])

    with pytest.raises(GuardFailed) as exc:
        await act(workflow, session_factory, "revert_to_applicant", app_id, officers["da"], remarks="   ")
    assert exc.value.reason == "remarks required"


async def test_second_revert_auto_rejects(workflow, session_factory, owner, officers):
    app_id = await create_draft(session_factory, owner)
    await to_under_scrutiny(workflow, session_factory, app_id, owner, officers)
    await send_back_otp(workflow, session_factory, app_id, officers["da"])
    await act(workflow, session_factory, "revert_to_applicant", app_id, officers["da"], remarks="First round")
    await act(workflow, session_factory, "resubmit", app_id, owner)

    check = await _check(workflow, session_factory, app_id)
    assert check.will_auto_reject is True

    # No OTP is needed: the ceiling substitution happens before guards.
    result = await act(workflow, session_factory, "revert_to_applicant", app_id, officers["da"], remarks="Still wrong")

    assert result.action == "revert_to_applicant"
    assert result.effective_action == "auto_reject"
    assert result.new_status == "rejected"

    app = await load(session_factory, app_id)
    assert app.status == "rejected"
    assert app.revert_count == 1

    last = (await actions(session_factory, app_id))[-1]
    assert last.action == "revert_to_applicant"
    assert last.effective_action == "auto_reject"
    assert "auto-rejected" in last.remarks


async def test_dtdo_revert_routes_back_to_dtdo(workflow, session_factory, owner, officers):
    app_id = await create_draft(session_factory, owner)
    await to_dtdo_review(workflow, session_factory, app_id, owner, officers)

    result = await act(workflow, session_factory, "dtdo_revert", app_id, officers["dtdo"], remarks="Wrong room count")
    assert result.new_status == "reverted_by_dtdo"

    app = await load(session_factory, app_id)
    assert correction_state(app).requested_by == "district_tourism_officer"

    result = await act(workflow, session_factory, "resubmit", app_id, owner)
    assert result.new_status == "dtdo_review"


async def test_ceiling_is_shared_between_tiers(workflow, session_factory, owner, officers):
    app_id = await create_draft(session_factory, owner)
    await to_under_scrutiny(workflow, session_factory, app_id, owner, officers)
    await send_back_otp(workflow, session_factory, app_id, officers["da"])
    await act(workflow, session_factory, "revert_to_applicant", app_id, officers["da"], remarks="First round")
    await act(workflow, session_factory, "resubmit", app_id, owner)
    await act(workflow, session_factory, "forward_to_dtdo", app_id, officers["da"])
    await act(workflow, session_factory, "dtdo_accept", app_id, officers["dtdo"])

    result = await act(workflow, session_factory, "dtdo_revert", app_id, officers["dtdo"], remarks="Wrong room count")

    assert result.effective_action == "auto_reject"
    assert result.new_status == "rejected"


async def test_inspection_objection_and_resubmission(workflow, session_factory, owner, officers):
    app_id = await create_draft(session_factory, owner)
    await to_dtdo_review(workflow, session_factory, app_id, owner, officers)
    await through_inspection(workflow, session_factory, app_id, officers)

    result = await act(
        workflow, session_factory, "raise_objection", app_id, officers["dtdo"], remarks="Kitchen not as declared"
    )
    assert result.new_status == "objection_raised"

    result = await act(workflow, session_factory, "resubmit", app_id, owner)
    assert result.new_status == "resubmitted"

    result = await act(workflow, session_factory, "start_scrutiny", app_id, officers["da"])
    assert result.new_status == "under_scrutiny"


async def test_edits_only_allowed_while_correcting(workflow, session_factory, owner, officers):
    from caseflow.crud.application import get_application, update_application
    from caseflow.schemas.application import ApplicationUpdate

    app_id = await create_draft(session_factory, owner)
    await to_under_scrutiny(workflow, session_factory, app_id, owner, officers)

    async with session_factory() as session:
        app = await get_application(session, application_id=app_id)
        with pytest.raises(GuardFailed):
            await update_application(session, db_obj=app, obj_in=ApplicationUpdate(total_rooms=4))

    await send_back_otp(workflow, session_factory, app_id, officers["da"])
    await act(workflow, session_factory, "revert_to_applicant", app_id, officers["da"], remarks="Room count")

    async with session_factory() as session:
        app = await get_application(session, application_id=app_id)
        updated = await update_application(session, db_obj=app, obj_in=ApplicationUpdate(total_rooms=4))
    assert updated.total_rooms == 4
    assert updated.status == "reverted_to_applicant"


async def _check(workflow, session_factory, app_id):
    async with session_factory() as session:
        return await workflow.otp_gate.check(session, application_id=app_id)
