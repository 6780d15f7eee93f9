from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from jobrelay.models.job import Job, JobStatus


@dataclass(frozen=True)
class JobSummary:
    """What the store hands back after a create or terminal update."""

    job_id: str
    status: JobStatus


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StartJobRequest(_CamelModel):
    target: str = Field(..., min_length=1, description="Profile URL to scrape")
    credential: str | None = Field(None, description="Optional session cookie forwarded to the automation")


class StartJobResponse(_CamelModel):
    job_id: str
    status: JobStatus


class JobView(_CamelModel):
    job_id: str
    status: JobStatus
    target: str
    created_at: datetime
    completed_at: datetime | None = None

    results: list[Any] | None = None
    total_items: int | None = None
    error: str | None = None

    @classmethod
    def from_job(cls, job: Job) -> "JobView":
        view = cls(
            job_id=job.id,
            status=JobStatus(job.status),
            target=job.target,
            created_at=job.created_at,
            completed_at=job.completed_at,
        )

        if view.status is JobStatus.COMPLETED:
            payload = job.results or {}
            items = list(payload.get("items") or [])
            view.results = items
            view.total_items = payload.get("item_count", len(items))
        elif view.status is JobStatus.FAILED:
            view.error = job.error_message

        return view


class JobListResponse(_CamelModel):
    items: list[JobView]
    total: int


class CallbackAckResponse(_CamelModel):
    status: str = "received"
    job_id: str
