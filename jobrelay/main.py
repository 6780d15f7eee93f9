import asyncio
import contextlib
import logging
import time
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request

from jobrelay.api.errors import register_exception_handlers
from jobrelay.api.v1.router import router as v1_router
from jobrelay.config import Settings, settings as default_settings
from jobrelay.services.dispatcher import Dispatcher
from jobrelay.services.job_service import JobService
from jobrelay.tasks.purge import run_purge_loop

logger = logging.getLogger("jobrelay.api")


def create_app(settings: Settings | None = None, *, dispatcher: Dispatcher | None = None) -> FastAPI:
    settings = settings or default_settings
    logging.getLogger("jobrelay").setLevel(settings.log_level.upper())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        service = JobService.from_settings(settings, dispatcher=dispatcher)
        await service.startup()
        app.state.job_service = service

        purge_task = None
        if settings.purge_interval_seconds > 0:
            purge_task = asyncio.create_task(
                run_purge_loop(
                    service,
                    interval_seconds=settings.purge_interval_seconds,
                    retention_days=settings.job_retention_days,
                ),
                name="purge-loop",
            )

        try:
            yield
        finally:
            try:
                if purge_task is not None:
                    purge_task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await purge_task
            except Exception:
                logger.exception("purge_loop_crashed")
            finally:
                await service.aclose()

    app = FastAPI(title="Job Relay API", lifespan=lifespan)
    app.state.settings = settings

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Attach a request id to every response and log a compact access line.

        The caller's X-Request-ID is reused when present, otherwise a UUID4
        is generated.
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
        return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}

    app.include_router(v1_router, prefix="/api/v1")
    return app


app = create_app()
