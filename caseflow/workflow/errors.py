from __future__ import annotations


class WorkflowError(Exception):
    """Base class for typed workflow failures.

    `code` is stable and is what gets written to the audit log and returned
    to API callers; `status_code` is the HTTP mapping used by the API layer.
    """

    code = "workflow_error"
    status_code = 400

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.code.replace("_", " ")
        super().__init__(self.message)


class NotFound(WorkflowError):
    code = "not_found"
    status_code = 404


class Forbidden(WorkflowError):
    code = "forbidden"
    status_code = 403


class InvalidTransition(WorkflowError):
    code = "invalid_transition"
    status_code = 409


class GuardFailed(WorkflowError):
    code = "guard_failed"
    status_code = 422

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class StaleState(WorkflowError):
    """Lost a compare-and-swap race; reload and retry."""

    code = "stale_state"
    status_code = 409
    retryable = True


class OtpError(WorkflowError):
    code = "otp_error"


class OtpNotFound(OtpError):
    code = "otp_not_found"
    status_code = 404


class OtpExpired(OtpError):
    code = "otp_expired"
    status_code = 410


class OtpMismatch(OtpError):
    code = "otp_mismatch"
    status_code = 400

    def __init__(self, message: str | None = None, *, attempts_remaining: int = 0) -> None:
        self.attempts_remaining = attempts_remaining
        super().__init__(message)
