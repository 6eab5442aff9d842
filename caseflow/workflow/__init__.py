"""Application lifecycle state machine.

The transition table in `transitions` is the single source of truth for which
actor may move an application from one status to another; `WorkflowEngine`
(caseflow.services.workflow_engine) is the only writer of `Application.status`.
"""
