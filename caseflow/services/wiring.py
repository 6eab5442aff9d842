from __future__ import annotations

from collections.abc import Callable

from caseflow.config import settings
from caseflow.database import SessionLocal
from caseflow.services.collaborators import (
    CeleryNotificationDispatcher,
    LoggingNotificationDispatcher,
    NotificationDispatcher,
    UserOfficerDirectory,
)
from caseflow.services.notifications import NotificationSubscriber
from caseflow.services.otp_gate import OtpGate
from caseflow.services.otp_store import OtpStore, build_otp_store
from caseflow.services.supersession import SupersessionResolver
from caseflow.services.workflow_engine import WorkflowEngine
from caseflow.workflow.events import EventBus
from caseflow.workflow.payment_policy import PaymentPolicy


def build_notifier(backend: str | None = None) -> NotificationDispatcher:
    backend = backend or settings.notification_backend
    if backend == "celery":
        return CeleryNotificationDispatcher()
    if backend == "log":
        return LoggingNotificationDispatcher()
    raise ValueError(f"unknown notification_backend: {backend}")


def build_workflow_engine(
    *,
    session_factory: Callable = SessionLocal,
    otp_store: OtpStore | None = None,
    notifier: NotificationDispatcher | None = None,
    **engine_kwargs,
) -> WorkflowEngine:
    """Assemble the engine with its subscribers.

    Anything not passed in comes from settings.
    """

    notifier = notifier or build_notifier()
    otp_gate = engine_kwargs.pop("otp_gate", None) or OtpGate(
        store=otp_store or build_otp_store(),
        officers=UserOfficerDirectory(),
        notifier=notifier,
    )
    engine = WorkflowEngine(
        otp_gate=otp_gate,
        payment_policy=engine_kwargs.pop("payment_policy", None) or PaymentPolicy(),
        events=engine_kwargs.pop("events", None) or EventBus(),
        **engine_kwargs,
    )

    engine.events.subscribe(SupersessionResolver(engine, session_factory))
    engine.events.subscribe(NotificationSubscriber(notifier))
    return engine
