"""Domain error taxonomy.

The HTTP layer maps these onto status codes in ``jobrelay.api.errors``; the
services never raise ``HTTPException`` themselves.
"""
from __future__ import annotations


class JobRelayError(Exception):
    """Base class for all domain errors."""


class InvalidInputError(JobRelayError):
    """A start-job request failed validation."""


class JobNotFoundError(JobRelayError):
    def __init__(self, job_id: str) -> None:
        super().__init__(f"Job not found: {job_id}")
        self.job_id = job_id


class InvalidCallbackError(JobRelayError):
    """An inbound callback could not be attributed to a job."""


class MissingJobIdError(InvalidCallbackError):
    def __init__(self, message: str = "Callback payload has no usable jobId") -> None:
        super().__init__(message)


class DispatchFailure(JobRelayError):
    """The outbound trigger failed for a reason other than a read timeout.

    Recorded as a failed job; never surfaced to the caller who started it.
    """


class StorageFailure(JobRelayError):
    """The storage engine rejected or failed an operation. Nothing was applied."""


class DuplicateKeyError(StorageFailure):
    def __init__(self, job_id: str) -> None:
        super().__init__(f"Job already exists: {job_id}")
        self.job_id = job_id
