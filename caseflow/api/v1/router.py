from fastapi import APIRouter

from caseflow.api.v1.endpoints.applications import router as applications_router
from caseflow.api.v1.endpoints.otp import router as otp_router
from caseflow.api.v1.endpoints.owners import router as owners_router
from caseflow.api.v1.endpoints.payments import router as payments_router
from caseflow.api.v1.endpoints.settings import router as settings_router
from caseflow.api.v1.endpoints.workflow import router as workflow_router

router = APIRouter()


@router.get("/ping")
async def ping():
    return {"ping": "pong"}


router.include_router(applications_router)
router.include_router(workflow_router)
router.include_router(otp_router)
router.include_router(owners_router)
router.include_router(payments_router)
router.include_router(settings_router)
