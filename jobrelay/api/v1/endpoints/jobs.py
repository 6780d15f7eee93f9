from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from jobrelay.api.deps import get_job_service
from jobrelay.models.job import JobStatus
from jobrelay.schemas.job import JobListResponse, JobView, StartJobRequest, StartJobResponse
from jobrelay.services.job_service import JobService


router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.post("", response_model=StartJobResponse, status_code=status.HTTP_202_ACCEPTED)
async def start_job_endpoint(
    payload: StartJobRequest,
    service: JobService = Depends(get_job_service),
) -> StartJobResponse:
    # Returns as soon as the row is committed; the trigger runs in the background.
    summary = await service.start(payload.target, payload.credential)
    return StartJobResponse(job_id=summary.job_id, status=summary.status)


@router.get("", response_model=JobListResponse, response_model_exclude_none=True)
async def list_jobs_endpoint(
    status_filter: JobStatus = Query(JobStatus.PROCESSING, alias="status", description="Job status"),
    service: JobService = Depends(get_job_service),
) -> JobListResponse:
    items = await service.list_jobs(status_filter)
    return JobListResponse(items=items, total=len(items))


@router.get("/{job_id}", response_model=JobView, response_model_exclude_none=True)
async def get_job_status_endpoint(
    job_id: str,
    service: JobService = Depends(get_job_service),
) -> JobView:
    return await service.status(job_id)
