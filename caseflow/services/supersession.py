from __future__ import annotations

import logging
from collections.abc import Callable

from caseflow.workflow.errors import NotFound, StaleState
from caseflow.workflow.events import TransitionEvent
from caseflow.workflow.states import FOLLOW_UP_KINDS, Status

logger = logging.getLogger("caseflow.workflow.supersession")

_FOLLOW_UP_VALUES = {k.value for k in FOLLOW_UP_KINDS}


class SupersessionResolver:
    """Retires the base application once a follow-up is approved.

    Runs after the follow-up's approval has committed, in its own session.
    Redelivery is harmless: an already superseded parent is left alone.
    """

    def __init__(self, engine, session_factory: Callable) -> None:
        self._engine = engine
        self._session_factory = session_factory

    async def __call__(self, event: TransitionEvent) -> None:
        if event.new_status != Status.APPROVED.value:
            return
        if event.kind not in _FOLLOW_UP_VALUES or event.parent_application_id is None:
            return

        async with self._session_factory() as session:
            try:
                await self._engine.supersede(
                    session,
                    event.parent_application_id,
                    superseded_by=event.application_id,
                    superseded_by_number=event.application_number,
                )
            except StaleState:
                logger.warning(
                    "supersede lost a race, dropping parent_id=%s follow_up_id=%s",
                    event.parent_application_id,
                    event.application_id,
                )
            except NotFound:
                logger.warning(
                    "follow-up approved without a base application parent_id=%s follow_up_id=%s",
                    event.parent_application_id,
                    event.application_id,
                )
