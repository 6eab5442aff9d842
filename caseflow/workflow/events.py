from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from uuid import UUID

logger = logging.getLogger("caseflow.workflow.events")


@dataclass(frozen=True)
class TransitionEvent:
    application_id: UUID
    action: str
    effective_action: str
    previous_status: str
    new_status: str
    actor_id: UUID | None
    actor_role: str
    remarks: str | None = None
    # Snapshot of the application for subscribers that should not reload it.
    application_number: str | None = None
    kind: str | None = None
    owner_mobile: str | None = None
    parent_application_id: UUID | None = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


EventHandler = Callable[[TransitionEvent], Awaitable[None]]


class EventBus:
    """In-process post-commit fan-out.

    Delivery is fire-and-forget: a failing handler is logged and the
    remaining handlers still run. Nothing here can undo a committed
    transition.
    """

    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> EventHandler:
        self._handlers.append(handler)
        return handler

    @property
    def handlers(self) -> tuple[EventHandler, ...]:
        return tuple(self._handlers)

    async def publish(self, event: TransitionEvent) -> None:
        for handler in self._handlers:
            try:
                await handler(event)
            except Exception:
                logger.exception(
                    "event handler failed handler=%s application_id=%s new_status=%s",
                    getattr(handler, "__qualname__", repr(handler)),
                    event.application_id,
                    event.new_status,
                )
