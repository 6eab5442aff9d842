import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from caseflow.workflow.errors import GuardFailed, OtpMismatch, StaleState, WorkflowError

logger = logging.getLogger("caseflow.api")


def _get_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _envelope(request: Request, status_code: int, detail, code: str, **extra) -> JSONResponse:
    request_id = _get_request_id(request)
    payload: dict = {"detail": detail, "code": code, "request_id": request_id, **extra}

    response = JSONResponse(status_code=status_code, content=payload)
    if request_id:
        response.headers["X-Request-ID"] = request_id
    return response


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(WorkflowError)
    async def workflow_exception_handler(request: Request, exc: WorkflowError):
        extra: dict = {}
        if isinstance(exc, GuardFailed):
            extra["reason"] = exc.reason
        if isinstance(exc, OtpMismatch):
            extra["attempts_remaining"] = exc.attempts_remaining
        if isinstance(exc, StaleState):
            extra["retryable"] = True
        return _envelope(request, exc.status_code, exc.message, exc.code, **extra)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _envelope(request, exc.status_code, exc.detail, "http_error")

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _envelope(request, 422, jsonable_encoder(exc.errors()), "validation_error")

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled_exception request_id=%s", _get_request_id(request))
        return _envelope(request, 500, "Internal Server Error", "internal_error")
