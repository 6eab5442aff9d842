import uuid

import pytest

from caseflow.services.notifications import NotificationSubscriber, render
from caseflow.tasks.notifications import emit_notification_task
from caseflow.workflow.events import TransitionEvent


def _event(**overrides):
    values = dict(
        application_id=uuid.uuid4(),
        action="dtdo_revert",
        effective_action="dtdo_revert",
        previous_status="dtdo_review",
        new_status="reverted_by_dtdo",
        actor_id=uuid.uuid4(),
        actor_role="district_tourism_officer",
        remarks="Upload the water bill",
        application_number="HP-HS-2025-SML-000007",
        kind="new_registration",
        owner_mobile="9876543210",
    )
    values.update(overrides)
    return TransitionEvent(**values)


class _Recorder:
    def __init__(self):
        self.calls = []

    def dispatch(self, event, recipient, channel, context=None):
        self.calls.append((event, recipient, channel, context))


def test_render_fills_in_the_template():
    text = render("application_reverted", {"application_number": "HP-HS-2025-SML-000007", "remarks": "Fix it"})
    assert text == "Your application HP-HS-2025-SML-000007 has been sent back for corrections. Remarks: Fix it"


def test_render_unknown_event_falls_back():
    assert render("mystery", {"application_number": "X-1"}) == "mystery: X-1"


@pytest.mark.anyio
async def test_subscriber_notifies_owner_of_reversal():
    recorder = _Recorder()
    await NotificationSubscriber(recorder)(_event())

    [(event, recipient, channel, context)] = recorder.calls
    assert event == "application_reverted"
    assert recipient == "9876543210"
    assert channel == "sms"
    assert context["remarks"] == "Upload the water bill"


@pytest.mark.anyio
async def test_subscriber_skips_internal_statuses_and_missing_mobile():
    recorder = _Recorder()
    subscriber = NotificationSubscriber(recorder)

    await subscriber(_event(new_status="under_scrutiny"))
    await subscriber(_event(owner_mobile=None))

    assert recorder.calls == []


def test_emit_notification_task_calls_delay(monkeypatch):
    from caseflow.worker import tasks

    called = {}

    def _fake_delay(*args):
        called["args"] = args

    monkeypatch.setattr(tasks.send_notification, "delay", _fake_delay)

    emit_notification_task(event="application_submitted", recipient="9876543210", channel="sms", context={"a": 1})

    assert called["args"] == ("application_submitted", "9876543210", "sms", {"a": 1})


def test_emit_notification_task_is_non_fatal(monkeypatch):
    from caseflow.worker import tasks

    def _boom(*args):
        raise ConnectionError("broker down")

    monkeypatch.setattr(tasks.send_notification, "delay", _boom)

    # Must not raise.
    emit_notification_task(event="application_submitted", recipient="9876543210", channel="sms", context={})


def test_send_notification_task_renders_message():
    from caseflow.worker.tasks import send_notification

    message = send_notification.run("application_submitted", "9876543210", "sms", {"application_number": "N-1"})
    assert message == "Your application N-1 has been submitted."
