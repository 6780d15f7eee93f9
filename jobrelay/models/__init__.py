# Import models here so Alembic can discover them via metadata
from .base import Base  # noqa: F401
from .job import Job, JobStatus, TERMINAL_STATUSES  # noqa: F401
