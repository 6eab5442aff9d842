from __future__ import annotations

import hmac
import logging
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.config import settings
from caseflow.crud.application import get_application
from caseflow.services.collaborators import NotificationDispatcher, OfficerDirectory, mask_mobile
from caseflow.services.otp_store import OtpStore
from caseflow.workflow.actor import Actor
from caseflow.workflow.corrections import revert_ceiling_reached
from caseflow.workflow.errors import (
    Forbidden,
    GuardFailed,
    InvalidTransition,
    NotFound,
    OtpExpired,
    OtpMismatch,
    OtpNotFound,
)
from caseflow.workflow.guards import check_officer_district, check_revert_ceiling
from caseflow.workflow.states import Role, Status

logger = logging.getLogger("caseflow.otp")

OTP_PURPOSE_SENDBACK = "sendback"
MIN_REASON_LENGTH = 10


@dataclass(frozen=True)
class OtpIssued:
    application_id: UUID
    expires_in: int
    masked_mobile: str


@dataclass(frozen=True)
class RevertCheck:
    revert_count: int
    will_auto_reject: bool

    @property
    def message(self) -> str:
        if self.will_auto_reject:
            return (
                "This application has already been sent back once. "
                "Another send-back will automatically REJECT the application."
            )
        return "This is the first send-back. OTP verification from the DTDO is required."


def _generate_code() -> str:
    return str(100000 + secrets.randbelow(900000))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OtpGate:
    """Cross-role authorization for a DA send-back.

    The DA asks for a code, the code goes to the district DTDO's mobile, and
    the DA can only revert after entering it. Challenges are keyed by
    application id, live for `ttl_seconds`, allow `max_attempts` wrong codes
    and are consumed by the first successful verification.
    """

    def __init__(
        self,
        *,
        store: OtpStore,
        officers: OfficerDirectory,
        notifier: NotificationDispatcher,
        ttl_seconds: int | None = None,
        verified_ttl_seconds: int | None = None,
        max_attempts: int | None = None,
        clock: Callable[[], datetime] = _utcnow,
        code_factory: Callable[[], str] = _generate_code,
    ) -> None:
        self._store = store
        self._officers = officers
        self._notifier = notifier
        self._ttl = ttl_seconds if ttl_seconds is not None else settings.otp_ttl_seconds
        self._verified_ttl = verified_ttl_seconds if verified_ttl_seconds is not None else settings.otp_verified_ttl_seconds
        self._max_attempts = max_attempts if max_attempts is not None else settings.otp_max_attempts
        self._clock = clock
        self._code_factory = code_factory

    @staticmethod
    def _challenge_key(application_id) -> str:
        return f"challenge:{application_id}"

    @staticmethod
    def _verified_key(application_id) -> str:
        return f"verified:{application_id}"

    def _now(self) -> float:
        return self._clock().timestamp()

    async def request_otp(
        self,
        session: AsyncSession,
        *,
        application_id: UUID,
        actor: Actor,
        reason: str,
    ) -> OtpIssued:
        if actor.role != Role.DEALING_ASSISTANT.value:
            raise Forbidden("only a dealing assistant can request a send-back OTP")

        app = await get_application(session, application_id=application_id)
        if app is None:
            raise NotFound("Application not found")

        check_officer_district(app, actor)
        if app.status != Status.UNDER_SCRUTINY.value:
            raise InvalidTransition(f"send-back is not allowed from {app.status}")
        if len((reason or "").strip()) < MIN_REASON_LENGTH:
            raise GuardFailed("reason too short")
        # A second send-back auto-rejects; there is nothing to authorize.
        check_revert_ceiling(app)

        mobile = await self._officers.dtdo_mobile(session, app.district)
        if not mobile:
            raise GuardFailed(f"no dtdo for district {app.district}")

        code = self._code_factory()
        await self._store.set(
            self._challenge_key(application_id),
            {
                "code": code,
                "mobile": mobile,
                "purpose": OTP_PURPOSE_SENDBACK,
                "expires_at": self._now() + self._ttl,
                "attempts": 0,
                "requested_by": str(actor.id) if actor.id else None,
                "reason": reason.strip(),
            },
            ttl_seconds=self._ttl,
        )

        self._notifier.dispatch(
            "sendback_otp",
            mobile,
            "sms",
            {"otp": code, "application_number": app.application_number, "reason": reason.strip()},
        )
        logger.info(
            "sendback otp issued application_id=%s dtdo_mobile_last4=%s",
            application_id,
            mobile[-4:],
        )
        return OtpIssued(application_id=application_id, expires_in=self._ttl, masked_mobile=mask_mobile(mobile))

    async def verify_otp(
        self,
        session: AsyncSession,
        *,
        application_id: UUID,
        code: str,
        actor: Actor | None = None,
    ) -> None:
        if actor is not None:
            if actor.role != Role.DEALING_ASSISTANT.value:
                raise Forbidden("only a dealing assistant can verify a send-back OTP")
            app = await get_application(session, application_id=application_id)
            if app is None:
                raise NotFound("Application not found")
            # Officers of other districts must not spend the challenge's attempts.
            check_officer_district(app, actor)

        key = self._challenge_key(application_id)
        challenge = await self._store.get(key)
        if challenge is None:
            raise OtpNotFound("No OTP request found. Please request a new OTP.")

        if self._now() > float(challenge["expires_at"]):
            await self._store.delete(key)
            raise OtpExpired("OTP has expired. Please request a new one.")

        if not hmac.compare_digest(str(challenge["code"]), str(code or "")):
            # Counted in the store so parallel guesses cannot share one attempt.
            attempts = await self._store.incr_attempts(key)
            if attempts is None:
                raise OtpNotFound("No OTP request found. Please request a new OTP.")
            remaining = self._max_attempts - attempts
            if remaining <= 0:
                await self._store.delete(key)
                logger.warning("sendback otp invalidated after failed attempts application_id=%s", application_id)
                raise OtpMismatch("Too many invalid attempts. Please request a new OTP.", attempts_remaining=0)

            raise OtpMismatch("Invalid OTP. Please check and try again.", attempts_remaining=remaining)

        # Only one concurrent verifier can remove the key.
        if not await self._store.delete(key):
            raise OtpNotFound("No OTP request found. Please request a new OTP.")

        await self._store.set(
            self._verified_key(application_id),
            {"verified_at": self._now(), "requested_by": challenge.get("requested_by")},
            ttl_seconds=self._verified_ttl,
        )
        logger.info("sendback otp verified application_id=%s", application_id)

    async def is_verified(self, application_id: UUID) -> bool:
        marker = await self._store.get(self._verified_key(application_id))
        if marker is None:
            return False
        return self._now() - float(marker["verified_at"]) <= self._verified_ttl

    async def consume_verification(self, application_id: UUID) -> bool:
        return await self._store.delete(self._verified_key(application_id))

    async def check(self, session: AsyncSession, *, application_id: UUID) -> RevertCheck:
        app = await get_application(session, application_id=application_id)
        if app is None:
            raise NotFound("Application not found")
        return RevertCheck(revert_count=int(app.revert_count or 0), will_auto_reject=revert_ceiling_reached(app))

    async def sweep(self) -> int:
        purged = await self._store.purge_expired()
        if purged:
            logger.info("otp sweep purged=%s", purged)
        return purged
