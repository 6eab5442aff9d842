"""Named guard predicates referenced by the transition table.

Each guard receives a `GuardContext` and raises `GuardFailed(reason)` when
its precondition does not hold. Guards never write anything.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.crud.application import count_open_registrations, get_application
from caseflow.services.collaborators import DocumentStore, requires_photos
from caseflow.workflow.actor import Actor
from caseflow.workflow.corrections import revert_ceiling_reached
from caseflow.workflow.errors import GuardFailed
from caseflow.workflow.payment_policy import PaymentPolicy, PaymentWorkflow, is_fee_exempt, is_payment_settled
from caseflow.workflow.states import (
    FOLLOW_UP_KINDS,
    INSPECTION_EXEMPT_KINDS,
    REGISTRATION_KINDS,
    ApplicationKind,
    Status,
)
from caseflow.workflow.transitions import Transition


@dataclass
class GuardContext:
    session: AsyncSession
    application: Any
    actor: Actor
    transition: Transition
    payload: dict = field(default_factory=dict)
    documents: DocumentStore | None = None
    otp_gate: Any = None
    payment_policy: PaymentPolicy | None = None
    payment_workflow: PaymentWorkflow = PaymentWorkflow.ON_APPROVAL
    min_photos: int = 2


Guard = Callable[[GuardContext], Awaitable[None]]

GUARDS: dict[str, Guard] = {}


def guard(name: str) -> Callable[[Guard], Guard]:
    def register(fn: Guard) -> Guard:
        GUARDS[name] = fn
        return fn

    return register


async def run_guards(names: tuple[str, ...], ctx: GuardContext) -> None:
    for name in names:
        try:
            fn = GUARDS[name]
        except KeyError as e:  # pragma: no cover
            raise LookupError(f"unknown guard {name!r}") from e
        await fn(ctx)


def check_revert_ceiling(app, *, max_reverts: int | None = None) -> None:
    if revert_ceiling_reached(app, max_reverts=max_reverts):
        raise GuardFailed("revert ceiling reached")


def check_officer_district(app, actor: Actor) -> None:
    if not actor.district or not app.district:
        raise GuardFailed("district mismatch")
    if actor.district.strip().lower() != app.district.strip().lower():
        raise GuardFailed("district mismatch")


@guard("applicant_owns")
async def applicant_owns(ctx: GuardContext) -> None:
    if ctx.actor.id is None or ctx.actor.id != ctx.application.owner_id:
        raise GuardFailed("not application owner")


@guard("documents_complete")
async def documents_complete(ctx: GuardContext) -> None:
    app = ctx.application
    if not await ctx.documents.has_required_documents(app, app.category):
        raise GuardFailed("missing documents")
    if requires_photos(app.kind) and await ctx.documents.photo_count(app) < ctx.min_photos:
        raise GuardFailed("insufficient photos")


@guard("parent_approved")
async def parent_approved(ctx: GuardContext) -> None:
    app = ctx.application
    try:
        follow_up = ApplicationKind(app.kind) in FOLLOW_UP_KINDS
    except ValueError:
        follow_up = False
    if not follow_up:
        return

    parent = None
    if app.parent_application_id is not None:
        parent = await get_application(ctx.session, application_id=app.parent_application_id)
    if parent is None or parent.status != Status.APPROVED.value or parent.owner_id != app.owner_id:
        raise GuardFailed("base application not approved")


@guard("no_duplicate_active")
async def no_duplicate_active(ctx: GuardContext) -> None:
    app = ctx.application
    if app.kind not in {k.value for k in REGISTRATION_KINDS}:
        return

    others = await count_open_registrations(
        ctx.session,
        owner_id=app.owner_id,
        property_name=app.property_name,
        kinds=[k.value for k in REGISTRATION_KINDS],
        exclude_id=app.id,
    )
    if others:
        raise GuardFailed("duplicate active application")


@guard("upfront_payment")
async def upfront_payment(ctx: GuardContext) -> None:
    if ctx.payment_policy is None:
        return
    app = ctx.application
    if ctx.payment_policy.requires_payment_before_submit(ctx.payment_workflow, app) and not is_payment_settled(
        app.payment_status
    ):
        raise GuardFailed("payment required")


@guard("officer_district")
async def officer_district(ctx: GuardContext) -> None:
    check_officer_district(ctx.application, ctx.actor)


@guard("remarks_present")
async def remarks_present(ctx: GuardContext) -> None:
    if not (ctx.payload.get("remarks") or "").strip():
        raise GuardFailed("remarks required")


@guard("otp_verified")
async def otp_verified(ctx: GuardContext) -> None:
    if ctx.otp_gate is None or not await ctx.otp_gate.is_verified(ctx.application.id):
        raise GuardFailed("otp not verified")


@guard("inspection_date_present")
async def inspection_date_present(ctx: GuardContext) -> None:
    if not ctx.payload.get("inspection_date"):
        raise GuardFailed("inspection date required")


@guard("inspection_report_attached")
async def inspection_report_attached(ctx: GuardContext) -> None:
    if not ctx.payload.get("report"):
        raise GuardFailed("inspection report missing")


@guard("inspection_report_present")
async def inspection_report_present(ctx: GuardContext) -> None:
    if not ctx.application.inspection_report:
        raise GuardFailed("inspection report missing")


@guard("inspection_not_required")
async def inspection_not_required(ctx: GuardContext) -> None:
    if ctx.application.kind not in {k.value for k in INSPECTION_EXEMPT_KINDS}:
        raise GuardFailed("inspection required")


@guard("payment_successful")
async def payment_successful(ctx: GuardContext) -> None:
    if ctx.payload.get("payment_status") != "success":
        raise GuardFailed("payment not successful")
    if not ctx.payload.get("transaction_id"):
        raise GuardFailed("transaction id required")


@guard("payment_outstanding")
async def payment_outstanding(ctx: GuardContext) -> None:
    if is_payment_settled(ctx.application.payment_status):
        raise GuardFailed("payment already recorded")


@guard("payment_sufficient")
async def payment_sufficient(ctx: GuardContext) -> None:
    app = ctx.application
    if is_fee_exempt(app.kind):
        return
    if not is_payment_settled(app.payment_status):
        raise GuardFailed("payment not received")

