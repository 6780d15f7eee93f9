from fastapi import APIRouter

from jobrelay.api.v1.endpoints.callbacks import router as callbacks_router
from jobrelay.api.v1.endpoints.jobs import router as jobs_router

router = APIRouter()


@router.get("/ping")
async def ping():
    return {"ping": "pong"}


router.include_router(jobs_router)
router.include_router(callbacks_router)
