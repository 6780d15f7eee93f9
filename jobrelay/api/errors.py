import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from jobrelay.errors import (
    InvalidCallbackError,
    InvalidInputError,
    JobNotFoundError,
    StorageFailure,
)

logger = logging.getLogger("jobrelay.api")


def _get_request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


def _error_response(request: Request, status_code: int, payload: dict) -> JSONResponse:
    request_id = _get_request_id(request)
    if request_id:
        payload["request_id"] = request_id

    response = JSONResponse(status_code=status_code, content=payload)
    if request_id:
        response.headers["X-Request-ID"] = request_id
    return response


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return _error_response(request, exc.status_code, {"error": exc.detail})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return _error_response(
            request,
            422,
            {"error": "Invalid request", "detail": jsonable_errors(exc)},
        )

    @app.exception_handler(InvalidInputError)
    async def invalid_input_handler(request: Request, exc: InvalidInputError):
        return _error_response(request, 400, {"error": str(exc)})

    @app.exception_handler(JobNotFoundError)
    async def job_not_found_handler(request: Request, exc: JobNotFoundError):
        return _error_response(request, 404, {"error": "Job not found", "jobId": exc.job_id})

    @app.exception_handler(InvalidCallbackError)
    async def invalid_callback_handler(request: Request, exc: InvalidCallbackError):
        logger.warning("callback_rejected request_id=%s reason=%s", _get_request_id(request), exc)
        return _error_response(request, 400, {"error": str(exc)})

    @app.exception_handler(StorageFailure)
    async def storage_failure_handler(request: Request, exc: StorageFailure):
        logger.error("storage_failure request_id=%s", _get_request_id(request), exc_info=exc)
        return _error_response(request, 500, {"error": "Internal Server Error"})

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled_exception request_id=%s", _get_request_id(request), exc_info=exc)
        return _error_response(request, 500, {"error": "Internal Server Error"})


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    # ctx may carry the raw exception object, which is not JSON serialisable.
    return [{k: v for k, v in err.items() if k != "ctx"} for err in exc.errors()]
