"""Job store: the only code that reads or writes the ``jobs`` table.

Every mutating call commits before returning so a poll issued immediately
afterwards sees the new state. Storage-engine errors are rolled back and
re-raised as ``StorageFailure``; no call leaves a partially written row.
"""
from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from jobrelay.errors import DuplicateKeyError, StorageFailure
from jobrelay.models.base import utcnow
from jobrelay.models.job import TERMINAL_STATUSES, Job, JobStatus
from jobrelay.schemas.job import JobSummary

logger = logging.getLogger("jobrelay.store")


@asynccontextmanager
async def _storage_op(session: AsyncSession, op: str, job_id: str | None = None) -> AsyncIterator[None]:
    try:
        yield
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("storage_failure op=%s job_id=%s error=%s", op, job_id, e)
        raise StorageFailure(f"{op} failed: {e}") from e


async def create_job(
    session: AsyncSession,
    *,
    job_id: str,
    target: str,
    credential: str | None = None,
) -> JobSummary:
    async with _storage_op(session, "create", job_id):
        existing = await session.execute(select(Job.id).where(Job.id == job_id))
        if existing.scalar_one_or_none() is not None:
            raise DuplicateKeyError(job_id)

        session.add(
            Job(
                id=job_id,
                target=target,
                credential=credential,
                status=JobStatus.PROCESSING.value,
                created_at=utcnow(),
            )
        )
        try:
            await session.commit()
        except IntegrityError:
            # A concurrent insert won the race between the check and the commit.
            await session.rollback()
            raced = await session.execute(select(Job.id).where(Job.id == job_id))
            if raced.scalar_one_or_none() is not None:
                raise DuplicateKeyError(job_id) from None
            raise

    logger.info("job_created job_id=%s", job_id)
    return JobSummary(job_id=job_id, status=JobStatus.PROCESSING)


async def get_job(session: AsyncSession, job_id: str) -> Job | None:
    async with _storage_op(session, "get", job_id):
        res = await session.execute(select(Job).where(Job.id == job_id))
        return res.scalar_one_or_none()


async def list_jobs_by_status(session: AsyncSession, status: JobStatus) -> list[Job]:
    async with _storage_op(session, "list_by_status"):
        res = await session.execute(
            select(Job)
            .where(Job.status == JobStatus(status).value)
            .order_by(Job.created_at.desc(), Job.id.desc())
        )
        return list(res.scalars().all())


async def complete_job(
    session: AsyncSession,
    job_id: str,
    *,
    status: JobStatus,
    results: dict[str, Any] | None = None,
    error_message: str | None = None,
) -> JobSummary | None:
    """Apply the one terminal transition a job ever gets.

    Returns ``None`` when no *processing* row matched: the id is unknown or the
    job is already terminal. That is a no-op, not an error.
    """

    status = JobStatus(status)
    if status not in TERMINAL_STATUSES:
        raise ValueError(f"not a terminal status: {status.value}")

    values: dict[str, Any] = {
        "status": status.value,
        "completed_at": utcnow(),
        "results": results if status is JobStatus.COMPLETED else None,
        "error_message": error_message if status is JobStatus.FAILED else None,
    }

    async with _storage_op(session, "complete", job_id):
        res = await session.execute(
            update(Job)
            .where(Job.id == job_id, Job.status == JobStatus.PROCESSING.value)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        await session.commit()

    if res.rowcount == 0:
        logger.warning("job_terminal_noop job_id=%s status=%s", job_id, status.value)
        return None

    logger.info("job_terminal job_id=%s status=%s", job_id, status.value)
    return JobSummary(job_id=job_id, status=status)


async def purge_jobs_older_than(session: AsyncSession, days: int) -> int:
    """Delete every job created more than ``days`` days ago, whatever its status."""

    if days < 0:
        raise ValueError("days must be >= 0")

    cutoff = utcnow() - timedelta(days=days)
    async with _storage_op(session, "purge"):
        res = await session.execute(
            delete(Job).where(Job.created_at < cutoff).execution_options(synchronize_session=False)
        )
        await session.commit()

    removed = int(res.rowcount or 0)
    logger.info("jobs_purged count=%s older_than_days=%s", removed, days)
    return removed
