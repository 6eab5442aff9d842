"""Interfaces the workflow engine consumes, plus the default implementations.

Storage, delivery and rendering live outside the engine; these defaults only
do enough for the service to run end to end.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from caseflow.config import settings
from caseflow.models.user import User
from caseflow.services.numbering import district_code, parse_serial
from caseflow.workflow.states import ApplicationKind, Role

logger = logging.getLogger("caseflow.collaborators")


class DocumentStore(Protocol):
    async def has_required_documents(self, application, category: str) -> bool: ...

    async def photo_count(self, application) -> int: ...


class NotificationDispatcher(Protocol):
    def dispatch(self, event: str, recipient: str, channel: str, context: dict | None = None) -> None: ...


class CertificateIssuer(Protocol):
    async def issue(self, application, *, issued_at: datetime) -> str: ...


class OfficerDirectory(Protocol):
    async def dtdo_mobile(self, session: AsyncSession, district: str) -> str | None: ...


PHOTO_DOCUMENT_TYPE = "property_photo"

_CATEGORY_DOCUMENTS: dict[str, frozenset[str]] = {
    "silver": frozenset({"revenue_papers", "affidavit_section_29", "undertaking_form_c"}),
    "gold": frozenset(
        {
            "revenue_papers",
            "affidavit_section_29",
            "undertaking_form_c",
            "commercial_electricity_bill",
            "commercial_water_bill",
        }
    ),
    "diamond": frozenset(
        {
            "revenue_papers",
            "affidavit_section_29",
            "undertaking_form_c",
            "commercial_electricity_bill",
            "commercial_water_bill",
            "fire_safety_noc",
        }
    ),
}

_KIND_DOCUMENTS: dict[str, frozenset[str]] = {
    ApplicationKind.EXISTING_RC_ONBOARDING.value: frozenset({"legacy_certificate"}),
    ApplicationKind.ADD_ROOMS.value: frozenset(),
    ApplicationKind.DELETE_ROOMS.value: frozenset(),
    ApplicationKind.AMENDMENT.value: frozenset(),
}

# Kinds for which property photographs are part of the submission.
_PHOTO_KINDS = {
    ApplicationKind.NEW_REGISTRATION.value,
    ApplicationKind.EXISTING_RC_ONBOARDING.value,
    ApplicationKind.RENEWAL.value,
    ApplicationKind.ADD_ROOMS.value,
}


def required_document_types(kind: str, category: str) -> frozenset[str]:
    if kind in _KIND_DOCUMENTS:
        return _KIND_DOCUMENTS[kind]
    return _CATEGORY_DOCUMENTS.get(category, _CATEGORY_DOCUMENTS["silver"])


def requires_photos(kind: str) -> bool:
    return kind in _PHOTO_KINDS


class ApplicationDocumentStore:
    """Reads the document references stored on the application row."""

    async def has_required_documents(self, application, category: str) -> bool:
        present = {d.get("type") for d in (application.documents or []) if isinstance(d, dict)}
        return required_document_types(application.kind, category) <= present

    async def photo_count(self, application) -> int:
        return sum(
            1 for d in (application.documents or []) if isinstance(d, dict) and d.get("type") == PHOTO_DOCUMENT_TYPE
        )


class LoggingNotificationDispatcher:
    def dispatch(self, event: str, recipient: str, channel: str, context: dict | None = None) -> None:
        logger.info("notification event=%s channel=%s recipient=%s", event, channel, mask_mobile(recipient))


class CeleryNotificationDispatcher:
    """Hands delivery to the worker.

    Must be non-fatal: failing to enqueue never affects the caller.
    """

    def dispatch(self, event: str, recipient: str, channel: str, context: dict | None = None) -> None:
        from caseflow.tasks.notifications import emit_notification_task

        emit_notification_task(event=event, recipient=recipient, channel=channel, context=context or {})


class NumberedCertificateIssuer:
    """Derives the certificate number from the application number.

    HP-HS-2025-SML-000004 -> HP-HST-2025-SML-000004
    """

    async def issue(self, application, *, issued_at: datetime) -> str:
        serial = parse_serial(application.application_number)
        return f"HP-HST-{issued_at.year}-{district_code(application.district)}-{serial:06d}"


class UserOfficerDirectory:
    """Resolves district officers from the users table, then the manifest."""

    def __init__(self, *, manifest: dict[str, str] | None = None) -> None:
        self._manifest = {k.lower(): v for k, v in (manifest if manifest is not None else settings.dtdo_manifest).items()}

    async def dtdo_mobile(self, session: AsyncSession, district: str) -> str | None:
        # District labels vary ("Shimla" vs "Shimla Division"); compare district codes.
        wanted = district_code(district)
        res = await session.execute(
            select(User.mobile, User.district)
            .where(User.role == Role.DISTRICT_TOURISM_OFFICER.value)
            .where(User.is_active.is_(True))
            .where(User.mobile.is_not(None))
            .where(User.district.is_not(None))
            .order_by(User.updated_at.desc())
        )
        for mobile, officer_district in res.all():
            if district_code(officer_district) == wanted:
                return mobile

        for label, manifest_mobile in self._manifest.items():
            if district_code(label) == wanted:
                logger.info("dtdo not found in users, using manifest district=%s", district)
                return manifest_mobile
        return None


def mask_mobile(recipient: str | None) -> str:
    if not recipient:
        return ""
    return "xxxxxx" + recipient[-4:] if len(recipient) > 4 else recipient

