from collections.abc import Callable

import httpx
import pytest
from sqlalchemy import update

from jobrelay.config import Settings
from jobrelay.database import Database
from jobrelay.models.job import Job
from jobrelay.services.dispatcher import Dispatcher
from jobrelay.services.job_service import JobService

WEBHOOK_URL = "https://automation.test/webhook/profile-scraper"
PROFILE_URL = "https://www.instagram.com/some.profile/"


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'jobs.db'}",
        automation_webhook_url=WEBHOOK_URL,
        automation_api_key="test-key",
        automation_agent_id="agent-1",
        public_base_url="https://relay.test",
        dispatch_timeout_seconds=2.0,
        purge_interval_seconds=0,
    )


def make_dispatcher(settings: Settings, handler: Callable[[httpx.Request], httpx.Response]) -> Dispatcher:
    return Dispatcher(settings, transport=httpx.MockTransport(handler))


def accept_all(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"message": "Workflow was started"})


def read_timeout(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("timed out", request=request)


def connection_refused(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("connection refused", request=request)


@pytest.fixture
async def database(settings: Settings):
    db = Database(settings.database_url)
    await db.create_all()
    try:
        yield db
    finally:
        await db.dispose()


@pytest.fixture
async def service_factory(settings: Settings):
    """Build a started JobService around a given webhook handler."""

    created: list[JobService] = []

    async def _make(handler: Callable[[httpx.Request], httpx.Response] = read_timeout) -> JobService:
        service = JobService.from_settings(settings, dispatcher=make_dispatcher(settings, handler))
        await service.startup()
        created.append(service)
        return service

    try:
        yield _make
    finally:
        for service in created:
            await service.aclose()


async def backdate_job(db: Database, job_id: str, created_at) -> None:
    async with db.session() as session:
        await session.execute(update(Job).where(Job.id == job_id).values(created_at=created_at))
        await session.commit()
