from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.config import settings
from caseflow.crud.application import compare_and_set_status, get_application
from caseflow.crud.application_action import append_action
from caseflow.services.collaborators import (
    ApplicationDocumentStore,
    CertificateIssuer,
    DocumentStore,
    NumberedCertificateIssuer,
)
from caseflow.services.otp_gate import OtpGate
from caseflow.workflow.actor import SYSTEM_ACTOR, Actor
from caseflow.workflow.corrections import (
    is_reversal,
    resubmission_effects,
    revert_ceiling_reached,
    reversal_effects,
)
from caseflow.workflow.errors import GuardFailed, InvalidTransition, NotFound, StaleState, WorkflowError
from caseflow.workflow.events import EventBus, TransitionEvent
from caseflow.workflow.guards import GuardContext, run_guards
from caseflow.workflow.payment_policy import PaymentPolicy, is_payment_settled
from caseflow.workflow.states import PaymentStatus, Role, Status
from caseflow.workflow.transitions import DEFAULT_TABLE, INTERNAL_ACTIONS, Action, Transition, TransitionTable

logger = logging.getLogger("caseflow.workflow.engine")

SUPERSEDE_ACTION = "supersede"

# Statuses a superseding approval leaves alone.
_NOT_SUPERSEDABLE = {Status.SUPERSEDED.value, Status.REJECTED.value}


@dataclass(frozen=True)
class TransitionResult:
    application_id: UUID
    action: str
    effective_action: str
    previous_status: str
    new_status: str
    audit_id: int


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _add_years(moment: datetime, years: int) -> datetime:
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:  # 29 February
        return moment.replace(year=moment.year + years, day=28)


class WorkflowEngine:
    """Drives an application through its lifecycle.

    Every operation follows the same path: load, look the move up in the
    transition table, run its guards, conditionally write the new status,
    audit, commit, then publish a TransitionEvent. Failed attempts roll back
    and are audited on their own with `new_status = NULL`.

    This is the only code that writes `Application.status`.
    """

    def __init__(
        self,
        *,
        otp_gate: OtpGate,
        documents: DocumentStore | None = None,
        certificates: CertificateIssuer | None = None,
        payment_policy: PaymentPolicy | None = None,
        events: EventBus | None = None,
        table: TransitionTable = DEFAULT_TABLE,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.otp_gate = otp_gate
        self.documents = documents or ApplicationDocumentStore()
        self.certificates = certificates or NumberedCertificateIssuer()
        self.payment_policy = payment_policy or PaymentPolicy()
        self.events = events or EventBus()
        self.table = table
        self._clock = clock

    # -- actor operations -------------------------------------------------

    async def submit(self, session, application_id, actor, payload=None) -> TransitionResult:
        return await self.perform(session, Action.SUBMIT, application_id, actor, payload)

    async def start_scrutiny(self, session, application_id, actor, payload=None) -> TransitionResult:
        return await self.perform(session, Action.START_SCRUTINY, application_id, actor, payload)

    async def forward_to_dtdo(self, session, application_id, actor, payload=None) -> TransitionResult:
        return await self.perform(session, Action.FORWARD_TO_DTDO, application_id, actor, payload)

    async def revert_to_applicant(self, session, application_id, actor, payload=None) -> TransitionResult:
        return await self.perform(session, Action.REVERT_TO_APPLICANT, application_id, actor, payload)

    async def resubmit(self, session, application_id, actor, payload=None) -> TransitionResult:
        return await self.perform(session, Action.RESUBMIT, application_id, actor, payload)

    async def dtdo_accept(self, session, application_id, actor, payload=None) -> TransitionResult:
        return await self.perform(session, Action.DTDO_ACCEPT, application_id, actor, payload)

    async def dtdo_revert(self, session, application_id, actor, payload=None) -> TransitionResult:
        return await self.perform(session, Action.DTDO_REVERT, application_id, actor, payload)

    async def schedule_inspection(self, session, application_id, actor, payload=None) -> TransitionResult:
        return await self.perform(session, Action.SCHEDULE_INSPECTION, application_id, actor, payload)

    async def submit_inspection_report(self, session, application_id, actor, payload=None) -> TransitionResult:
        return await self.perform(session, Action.SUBMIT_INSPECTION_REPORT, application_id, actor, payload)

    async def review_inspection(self, session, application_id, actor, payload=None) -> TransitionResult:
        return await self.perform(session, Action.REVIEW_INSPECTION, application_id, actor, payload)

    async def raise_objection(self, session, application_id, actor, payload=None) -> TransitionResult:
        return await self.perform(session, Action.RAISE_OBJECTION, application_id, actor, payload)

    async def dtdo_approve(self, session, application_id, actor, payload=None) -> TransitionResult:
        return await self.perform(session, Action.DTDO_APPROVE, application_id, actor, payload)

    async def dtdo_reject(self, session, application_id, actor, payload=None) -> TransitionResult:
        return await self.perform(session, Action.DTDO_REJECT, application_id, actor, payload)

    async def issue_certificate(self, session, application_id, actor=SYSTEM_ACTOR, payload=None) -> TransitionResult:
        return await self.perform(session, Action.ISSUE_CERTIFICATE, application_id, actor, payload)

    async def record_payment_confirmed(
        self,
        session: AsyncSession,
        application_id: UUID,
        *,
        transaction_id: str,
        payment_status: str,
        actor: Actor = SYSTEM_ACTOR,
    ) -> TransitionResult:
        """Gateway callback. A confirmed post-approval payment also issues the certificate."""

        return await self.perform(
            session,
            Action.RECORD_PAYMENT_CONFIRMED,
            application_id,
            actor,
            {"transaction_id": transaction_id, "payment_status": payment_status},
        )

    # -- core -------------------------------------------------------------

    async def perform(
        self,
        session: AsyncSession,
        action: Action | str,
        application_id: UUID,
        actor: Actor,
        payload: dict | None = None,
    ) -> TransitionResult:
        payload = dict(payload or {})
        action_name = action.value if isinstance(action, Action) else str(action)
        previous_status: str | None = None

        try:
            try:
                requested = Action(action_name)
            except ValueError:
                raise InvalidTransition(f"unknown action {action_name}") from None
            if requested in INTERNAL_ACTIONS:
                raise InvalidTransition(f"{action_name} cannot be requested directly")

            app = await get_application(session, application_id=application_id)
            if app is None:
                raise NotFound("Application not found")
            previous_status = app.status

            transition = self.table.lookup(app.status, requested, actor.role)
            effective, remarks = self._apply_ceiling(app, transition, payload.get("remarks"))
            if effective is not transition:
                payload["remarks"] = remarks

            ctx = GuardContext(
                session=session,
                application=app,
                actor=actor,
                transition=effective,
                payload=payload,
                documents=self.documents,
                otp_gate=self.otp_gate,
                payment_policy=self.payment_policy,
                payment_workflow=await self.payment_policy.current(session),
                min_photos=settings.min_photos,
            )
            await run_guards(effective.guards, ctx)

            target = self.payment_policy.approval_target(effective, app)
            now = self._clock()
            values = self._effects(app, effective, target, actor, payload, now)
            if target == Status.APPROVED:
                values.update(await self._approval_effects(app, now))

            swapped = await compare_and_set_status(
                session,
                application_id=app.id,
                expected_status=previous_status,
                values={"status": target.value, **values},
            )
            if not swapped:
                raise StaleState(f"application is no longer {previous_status}; reload and retry")

            record = await append_action(
                session,
                application_id=app.id,
                action=action_name,
                effective_action=effective.action.value,
                previous_status=previous_status,
                new_status=target.value,
                actor_id=actor.id,
                actor_role=actor.role,
                remarks=remarks,
            )
            await session.commit()
        except WorkflowError as exc:
            await self._record_failure(session, application_id, action_name, previous_status, actor, exc)
            raise
        except Exception:
            await session.rollback()
            raise

        await session.refresh(app)
        logger.info(
            "transition application_id=%s action=%s effective=%s %s->%s actor_role=%s",
            app.id,
            action_name,
            effective.action.value,
            previous_status,
            target.value,
            actor.role,
        )

        if effective.action == Action.REVERT_TO_APPLICANT:
            await self.otp_gate.consume_verification(app.id)

        await self.events.publish(
            TransitionEvent(
                application_id=app.id,
                action=action_name,
                effective_action=effective.action.value,
                previous_status=previous_status,
                new_status=target.value,
                actor_id=actor.id,
                actor_role=actor.role,
                remarks=remarks,
                application_number=app.application_number,
                kind=app.kind,
                owner_mobile=app.owner_mobile,
                parent_application_id=app.parent_application_id,
            )
        )

        if effective.action == Action.RECORD_PAYMENT_CONFIRMED and target == Status.VERIFIED_FOR_PAYMENT:
            # The gateway callback drives payment_pending all the way to approved.
            return await self.issue_certificate(session, app.id, SYSTEM_ACTOR)

        return TransitionResult(
            application_id=app.id,
            action=action_name,
            effective_action=effective.action.value,
            previous_status=previous_status,
            new_status=target.value,
            audit_id=record.id,
        )

    def _apply_ceiling(self, app, transition: Transition, remarks: str | None) -> tuple[Transition, str | None]:
        """Swap a second send-back for the auto-reject row of the same status."""

        if not is_reversal(transition.action) or not revert_ceiling_reached(app):
            return transition, remarks

        substitute = self.table.get(transition.source, Action.AUTO_REJECT)
        if substitute is None:  # pragma: no cover - table invariant
            raise GuardFailed("revert ceiling reached")

        note = (
            f"auto-rejected: {transition.action.value} attempted with revert_count={int(app.revert_count or 0)}"
        )
        logger.info("revert ceiling reached application_id=%s action=%s", app.id, transition.action.value)
        return substitute, f"{note}. {remarks}" if remarks else note

    def _effects(self, app, transition: Transition, target: Status, actor: Actor, payload: dict, now: datetime) -> dict:
        action = transition.action
        remarks = (payload.get("remarks") or "").strip() or None
        values: dict = {}

        if action == Action.SUBMIT:
            values["submitted_at"] = now
        elif is_reversal(action):
            values.update(reversal_effects(app, role=actor.role, now=now))
        elif action == Action.RESUBMIT:
            values.update(resubmission_effects(app, now=now))
        elif action == Action.START_SCRUTINY:
            values["da_id"] = actor.id
        elif action == Action.DTDO_ACCEPT:
            values["dtdo_id"] = actor.id
        elif action == Action.SCHEDULE_INSPECTION:
            values["inspection_date"] = _as_date(payload["inspection_date"])
        elif action == Action.SUBMIT_INSPECTION_REPORT:
            values["inspection_report"] = dict(payload["report"])
        elif action == Action.RECORD_PAYMENT_CONFIRMED:
            values["payment_status"] = PaymentStatus.PAID.value
            values["payment_transaction_id"] = payload["transaction_id"]
            values["paid_at"] = now

        if actor.role != Role.PROPERTY_OWNER.value and remarks and target != Status.DRAFT:
            values["reviewer_remarks"] = remarks
        if action == Action.AUTO_REJECT:
            values["reviewer_remarks"] = remarks or "Automatically rejected after a second send-back"
        return values

    async def _approval_effects(self, app, now: datetime) -> dict:
        # Raising here rolls the whole approval back.
        number = await self.certificates.issue(app, issued_at=now)
        values = {
            "approved_at": now,
            "certificate_number": number,
            "certificate_issued_at": now,
            "certificate_expires_at": _add_years(now, settings.certificate_validity_years),
        }
        if is_payment_settled(app.payment_status):
            values["payment_status"] = PaymentStatus.VERIFIED.value
        return values

    async def _record_failure(
        self,
        session: AsyncSession,
        application_id: UUID,
        action_name: str,
        previous_status: str | None,
        actor: Actor,
        exc: WorkflowError,
    ) -> None:
        await session.rollback()
        await append_action(
            session,
            application_id=application_id,
            action=action_name,
            effective_action=None,
            previous_status=previous_status,
            new_status=None,
            actor_id=actor.id,
            actor_role=actor.role,
            remarks=f"{exc.code}: {exc.message}",
            error_code=exc.code,
        )
        await session.commit()
        logger.info(
            "transition rejected application_id=%s action=%s status=%s error=%s reason=%s",
            application_id,
            action_name,
            previous_status,
            exc.code,
            exc.message,
        )

    # -- system operations ------------------------------------------------

    async def supersede(
        self,
        session: AsyncSession,
        application_id: UUID,
        *,
        superseded_by: UUID,
        superseded_by_number: str | None = None,
    ) -> TransitionResult | None:
        """Retire an application replaced by an approved follow-up.

        Not in the transition table: no human drives it. Returns None when the
        application is already superseded or rejected.
        """

        app = await get_application(session, application_id=application_id)
        if app is None:
            raise NotFound("Base application not found")
        if app.status in _NOT_SUPERSEDABLE:
            return None

        previous_status = app.status
        now = self._clock()
        swapped = await compare_and_set_status(
            session,
            application_id=app.id,
            expected_status=previous_status,
            values={
                "status": Status.SUPERSEDED.value,
                "superseded_at": now,
                "superseded_by_id": superseded_by,
            },
        )
        if not swapped:
            await session.rollback()
            raise StaleState("base application changed while superseding")

        record = await append_action(
            session,
            application_id=app.id,
            action=SUPERSEDE_ACTION,
            effective_action=SUPERSEDE_ACTION,
            previous_status=previous_status,
            new_status=Status.SUPERSEDED.value,
            actor_id=None,
            actor_role=Role.SYSTEM.value,
            remarks=f"Superseded by application {superseded_by_number or superseded_by}",
        )
        await session.commit()
        logger.info(
            "application superseded application_id=%s previous=%s superseded_by=%s",
            app.id,
            previous_status,
            superseded_by,
        )
        return TransitionResult(
            application_id=app.id,
            action=SUPERSEDE_ACTION,
            effective_action=SUPERSEDE_ACTION,
            previous_status=previous_status,
            new_status=Status.SUPERSEDED.value,
            audit_id=record.id,
        )


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))
