from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from jobrelay.api.deps import get_job_service
from jobrelay.errors import InvalidCallbackError
from jobrelay.schemas.job import CallbackAckResponse
from jobrelay.services.job_service import JobService


router = APIRouter(prefix="/callbacks", tags=["callbacks"])


@router.post("/automation", response_model=CallbackAckResponse)
async def automation_callback_endpoint(
    request: Request,
    service: JobService = Depends(get_job_service),
) -> CallbackAckResponse:
    """Receive the deferred result of an automation run.

    Answers ``received`` whenever a job id can be recovered, even if no
    processing job matched, so the automation never retries a stale callback.
    """

    try:
        payload = await request.json()
    except ValueError as e:
        raise InvalidCallbackError("Callback body must be JSON") from e

    ack = await service.reconcile(payload)
    return CallbackAckResponse(job_id=ack.job_id)
