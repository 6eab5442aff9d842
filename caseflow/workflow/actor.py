from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from caseflow.workflow.states import Role


@dataclass(frozen=True)
class Actor:
    id: UUID | None
    role: str
    district: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.role, Role):
            object.__setattr__(self, "role", self.role.value)

    @property
    def is_officer(self) -> bool:
        return self.role in (Role.DEALING_ASSISTANT.value, Role.DISTRICT_TOURISM_OFFICER.value)


SYSTEM_ACTOR = Actor(id=None, role=Role.SYSTEM.value)
