import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from caseflow.api.errors import register_exception_handlers
from caseflow.api.v1.router import router as v1_router
from caseflow.config import settings
from caseflow.database import SessionLocal
from caseflow.services.workflow_engine import WorkflowEngine
from caseflow.services.wiring import build_workflow_engine

logger = logging.getLogger("caseflow.api")


def create_app(*, workflow_engine: WorkflowEngine | None = None, session_factory=None) -> FastAPI:
    app = FastAPI(title="Homestay Registration Workflow API")

    app.state.session_factory = session_factory or SessionLocal
    app.state.workflow_engine = workflow_engine or build_workflow_engine(session_factory=app.state.session_factory)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Attach a request id to every response and log a compact access line.

        - If the caller provides X-Request-ID, we reuse it.
        - Otherwise we generate a UUID4.
        """

        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id

        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        response.headers["X-Request-ID"] = request_id
        logger.info(
            "access request_id=%s method=%s path=%s status=%s duration_ms=%.2f",
            request_id,
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response

    register_exception_handlers(app)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    app.include_router(v1_router, prefix="/api/v1")
    return app


app = create_app()
