from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any
from urllib.parse import urlsplit

from jobrelay.config import Settings
from jobrelay.crud.job import (
    complete_job,
    create_job,
    get_job,
    list_jobs_by_status,
    purge_jobs_older_than,
)
from jobrelay.database import Database
from jobrelay.errors import (
    DispatchFailure,
    InvalidInputError,
    JobNotFoundError,
    StorageFailure,
)
from jobrelay.models.job import JobStatus
from jobrelay.schemas.callback import CallbackAck, CallbackRecord
from jobrelay.schemas.job import JobSummary, JobView
from jobrelay.services.callback_normalizer import normalize_callback
from jobrelay.services.dispatcher import Dispatcher

logger = logging.getLogger("jobrelay.jobs")

DEFAULT_FAILURE_MESSAGE = "Automation reported failure"


class JobService:
    """Owns the job lifecycle: processing -> completed | failed.

    The service holds the database handle and the dispatcher and is closed
    with ``aclose()``. Outbound triggers run as tracked background tasks whose
    only side effect is a terminal update through ``complete_job``.
    """

    def __init__(self, *, settings: Settings, database: Database, dispatcher: Dispatcher) -> None:
        self._settings = settings
        self._db = database
        self._dispatcher = dispatcher
        self._dispatches: set[asyncio.Task] = set()

    @classmethod
    def from_settings(cls, settings: Settings, *, dispatcher: Dispatcher | None = None) -> "JobService":
        return cls(
            settings=settings,
            database=Database(settings.database_url),
            dispatcher=dispatcher or Dispatcher(settings),
        )

    @property
    def database(self) -> Database:
        return self._db

    async def startup(self) -> None:
        await self._db.create_all()

    # ------------------------------------------------------------------
    # start
    # ------------------------------------------------------------------

    def validate_target(self, target: str) -> str:
        target = (target or "").strip()
        if not target:
            raise InvalidInputError("target is required")

        parts = urlsplit(target)
        if parts.scheme not in ("http", "https"):
            raise InvalidInputError("target must be an http(s) URL")

        host = (parts.hostname or "").lower()
        allowed = self._settings.target_hosts
        if not any(host == h or host.endswith("." + h) for h in allowed):
            raise InvalidInputError(f"target must be a URL on {', '.join(allowed)}")

        return target

    async def start(self, target: str, credential: str | None = None) -> JobSummary:
        target = self.validate_target(target)
        job_id = str(uuid.uuid4())

        async with self._db.session() as session:
            summary = await create_job(session, job_id=job_id, target=target, credential=credential)

        self._schedule_dispatch(job_id=job_id, target=target, credential=credential)
        return summary

    def _schedule_dispatch(self, *, job_id: str, target: str, credential: str | None) -> None:
        task = asyncio.create_task(
            self._run_dispatch(job_id=job_id, target=target, credential=credential),
            name=f"dispatch-{job_id}",
        )
        self._dispatches.add(task)
        task.add_done_callback(self._dispatches.discard)

    async def _run_dispatch(self, *, job_id: str, target: str, credential: str | None) -> None:
        try:
            await self._dispatcher.send_trigger(job_id=job_id, target=target, credential=credential)
            return
        except DispatchFailure as e:
            error_message = str(e)
        except Exception as e:
            logger.exception("dispatch_unexpected_error job_id=%s", job_id)
            error_message = f"Dispatch error: {e}"

        try:
            async with self._db.session() as session:
                await complete_job(session, job_id, status=JobStatus.FAILED, error_message=error_message)
        except StorageFailure:
            logger.error(
                "dispatch_failure_unrecorded job_id=%s error=%s",
                job_id,
                error_message,
                exc_info=True,
            )

    async def wait_for_dispatches(self) -> None:
        while pending := [t for t in self._dispatches if not t.done()]:
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    async def status(self, job_id: str) -> JobView:
        async with self._db.session() as session:
            job = await get_job(session, job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return JobView.from_job(job)

    async def list_jobs(self, status: JobStatus) -> list[JobView]:
        async with self._db.session() as session:
            jobs = await list_jobs_by_status(session, status)
        return [JobView.from_job(j) for j in jobs]

    # ------------------------------------------------------------------
    # callbacks
    # ------------------------------------------------------------------

    async def reconcile(self, raw_callback: Any) -> CallbackAck:
        record = normalize_callback(raw_callback, marker=self._settings.callback_marker)
        summary = await self._apply_callback(record)

        if summary is None:
            # Acknowledged anyway so the automation does not keep retrying.
            logger.warning(
                "callback_unmatched job_id=%s success=%s",
                record.job_id,
                record.success,
            )
            return CallbackAck(job_id=record.job_id, matched=False)

        return CallbackAck(job_id=record.job_id, matched=True)

    async def _apply_callback(self, record: CallbackRecord) -> JobSummary | None:
        async with self._db.session() as session:
            if record.success:
                return await complete_job(
                    session,
                    record.job_id,
                    status=JobStatus.COMPLETED,
                    results={"items": list(record.items), "item_count": record.item_count},
                )
            return await complete_job(
                session,
                record.job_id,
                status=JobStatus.FAILED,
                error_message=record.error_detail or DEFAULT_FAILURE_MESSAGE,
            )

    # ------------------------------------------------------------------
    # maintenance
    # ------------------------------------------------------------------

    async def purge(self, days: int | None = None) -> int:
        if days is None:
            days = self._settings.job_retention_days
        async with self._db.session() as session:
            return await purge_jobs_older_than(session, days)

    async def aclose(self) -> None:
        await self.wait_for_dispatches()
        await self._dispatcher.aclose()
        await self._db.dispose()
