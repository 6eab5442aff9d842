import asyncio
import uuid

import pytest

from caseflow.workflow.errors import Forbidden, GuardFailed, InvalidTransition, NotFound
from caseflow.workflow.actor import Actor
from caseflow.workflow.states import Role

from tests._workflow import OWNER_MOBILE, SILVER_DOCUMENTS, act, actions, create_draft, load

pytestmark = pytest.mark.anyio


async def test_submit_complete_draft(workflow, session_factory, owner, notifier):
    app_id = await create_draft(session_factory, owner)

    result = await act(workflow, session_factory, "submit", app_id, owner)

    assert result.previous_status == "draft"
    assert result.new_status == "submitted"
    assert result.effective_action == "submit"

    app = await load(session_factory, app_id)
    assert app.status == "submitted"
    assert app.submitted_at is not None
    assert app.application_number.startswith("HP-HS-")
    assert app.application_number.endswith("-SML-000001")

    sent = notifier.sent[-1]
    assert sent["event"] == "application_submitted"
    assert sent["recipient"] == OWNER_MOBILE
    assert sent["channel"] == "sms"


async def test_submit_with_missing_documents_is_refused_and_audited(workflow, session_factory, owner):
    docs = [d for d in SILVER_DOCUMENTS if d["type"] != "undertaking_form_c"]
    app_id = await create_draft(session_factory, owner, documents=docs)

    with pytest.raises(GuardFailed) as exc:
        await act(workflow, session_factory, "submit", app_id, owner)
    assert exc.value.reason == "missing documents"

    app = await load(session_factory, app_id)
    assert app.status == "draft"

    records = await actions(session_factory, app_id)
    failed = records[-1]
    assert failed.action == "submit"
    assert failed.new_status is None
    assert failed.previous_status == "draft"
    assert failed.error_code == "guard_failed"
    assert "missing documents" in failed.remarks


async def test_submit_with_one_photo_is_refused(workflow, session_factory, owner):
    docs = [d for d in SILVER_DOCUMENTS if d["type"] != "property_photo"] + [{"type": "property_photo"}]
    app_id = await create_draft(session_factory, owner, documents=docs)

    with pytest.raises(GuardFailed) as exc:
        await act(workflow, session_factory, "submit", app_id, owner)
    assert exc.value.reason == "insufficient photos"


async def test_gold_category_needs_commercial_bills(workflow, session_factory, owner):
    app_id = await create_draft(session_factory, owner, category="gold")

    with pytest.raises(GuardFailed) as exc:
        await act(workflow, session_factory, "submit", app_id, owner)
    assert exc.value.reason == "missing documents"


async def test_only_the_owner_can_submit(workflow, session_factory, owner):
    app_id = await create_draft(session_factory, owner)
    stranger = Actor(id=uuid.uuid4(), role=Role.PROPERTY_OWNER)

    with pytest.raises(GuardFailed) as exc:
        await act(workflow, session_factory, "submit", app_id, stranger)
    assert exc.value.reason == "not application owner"


async def test_officer_cannot_submit(workflow, session_factory, owner, officers):
    app_id = await create_draft(session_factory, owner)

    with pytest.raises(Forbidden):
        await act(workflow, session_factory, "submit", app_id, officers["da"])


async def test_submit_twice_is_an_invalid_transition(workflow, session_factory, owner):
    app_id = await create_draft(session_factory, owner)
    await act(workflow, session_factory, "submit", app_id, owner)

    with pytest.raises(InvalidTransition):
        await act(workflow, session_factory, "submit", app_id, owner)


async def test_duplicate_active_registration_is_refused(workflow, session_factory, owner):
    first = await create_draft(session_factory, owner, property_name="Pine View Homestay")
    second = await create_draft(session_factory, owner, property_name="pine view homestay ")

    await act(workflow, session_factory, "submit", first, owner)

    with pytest.raises(GuardFailed) as exc:
        await act(workflow, session_factory, "submit", second, owner)
    assert exc.value.reason == "duplicate active application"


async def test_duplicate_check_ignores_other_drafts(workflow, session_factory, owner):
    first = await create_draft(session_factory, owner)
    await create_draft(session_factory, owner)

    result = await act(workflow, session_factory, "submit", first, owner)
    assert result.new_status == "submitted"


async def test_unknown_application_is_not_found_and_still_audited(workflow, session_factory, owner):
    missing = uuid.uuid4()

    with pytest.raises(NotFound):
        await act(workflow, session_factory, "submit", missing, owner)

    records = await actions(session_factory, missing)
    assert [r.error_code for r in records] == ["not_found"]


async def test_auto_reject_cannot_be_requested(workflow, session_factory, owner):
    app_id = await create_draft(session_factory, owner)

    with pytest.raises(InvalidTransition):
        await act(workflow, session_factory, "auto_reject", app_id, owner)
    with pytest.raises(InvalidTransition):
        await act(workflow, session_factory, "teleport", app_id, owner)

    records = await actions(session_factory, app_id)
    assert [r.error_code for r in records[-2:]] == ["invalid_transition", "invalid_transition"]
    assert (await load(session_factory, app_id)).status == "draft"


async def test_draft_numbers_are_sequential(session_factory, owner):
    first = await create_draft(session_factory, owner, property_name="A")
    second = await create_draft(session_factory, owner, property_name="B")
    onboarding = await create_draft(session_factory, owner, kind="existing_rc_onboarding", property_name="C")

    a, b, c = [await load(session_factory, i) for i in (first, second, onboarding)]
    assert a.application_number.endswith("-000001")
    assert b.application_number.endswith("-000002")
    assert c.application_number.startswith("LG-HS-")
    assert c.application_number.endswith("-000001")


async def test_concurrent_drafts_get_distinct_numbers(session_factory, owner):
    ids = await asyncio.gather(*(create_draft(session_factory, owner, property_name=f"Home {i}") for i in range(4)))

    numbers = sorted([(await load(session_factory, i)).application_number for i in ids])
    assert [n[-6:] for n in numbers] == ["000001", "000002", "000003", "000004"]
