from __future__ import annotations

from collections.abc import Iterable

from caseflow.workflow.states import INITIAL_STATUS


class AuditReplayError(ValueError):
    pass


def replay_status(records: Iterable) -> str:
    """Fold successful audit records into the status they imply.

    Records must be in log order. Each successful record has to start from
    the status the previous one ended in; a gap means the status was written
    outside the engine.
    """

    current = INITIAL_STATUS.value
    for record in records:
        if record.new_status is None:
            continue
        if record.previous_status is not None and record.previous_status != current:
            raise AuditReplayError(
                f"audit record {record.id} starts from {record.previous_status}, expected {current}"
            )
        current = record.new_status
    return current
