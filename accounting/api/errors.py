"""
Maps accounting error kinds to HTTP responses

Every kind gets its own status and application code; the body is always
{"code": int, "messages": [str]}.
"""

from enum import Enum

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ..exceptions import (
    AlreadyCompletedError, InsecureHolderError, NotFoundError,
    UnprocessableTransactionError, ValidationError
)
from ..logging_config import get_logger
from .schemas import ErrorDetails

logger = get_logger("accounting.api")


class AppError(Enum):
    """Application error codes reported to clients"""
    ENTITY_NOT_FOUND = 1
    INSECURE_ACCOUNT = 2
    UNPROCESSABLE_TRANSACTION = 3
    COMPLETED_TRANSACTION = 4
    CONSTRAINT_VIOLATION = 5


def _error_response(status_code: int, code: int, messages) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorDetails(code=code, messages=list(messages)).model_dump()
    )


def _field_message(error: dict) -> str:
    location = [str(part) for part in error.get("loc", ()) if part not in ("body", "path", "query")]
    return f"{'.'.join(location)} {error.get('msg', '')}".strip()


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the error kind to status mapping to an application"""

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return _error_response(
            status.HTTP_400_BAD_REQUEST,
            status.HTTP_400_BAD_REQUEST,
            [_field_message(error) for error in exc.errors()]
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(status.HTTP_404_NOT_FOUND, AppError.ENTITY_NOT_FOUND.value, [str(exc)])

    @app.exception_handler(InsecureHolderError)
    async def handle_insecure_holder(request: Request, exc: InsecureHolderError):
        return _error_response(
            status.HTTP_403_FORBIDDEN, AppError.INSECURE_ACCOUNT.value, [exc.account_holder_name]
        )

    @app.exception_handler(UnprocessableTransactionError)
    async def handle_unprocessable(request: Request, exc: UnprocessableTransactionError):
        return _error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY, AppError.UNPROCESSABLE_TRANSACTION.value, [str(exc)]
        )

    @app.exception_handler(AlreadyCompletedError)
    async def handle_already_completed(request: Request, exc: AlreadyCompletedError):
        return _error_response(
            status.HTTP_422_UNPROCESSABLE_ENTITY, AppError.COMPLETED_TRANSACTION.value, [str(exc)]
        )

    @app.exception_handler(ValidationError)
    async def handle_validation(request: Request, exc: ValidationError):
        logger.debug("Rejected request to %s: %s", request.url.path, exc.messages)
        return _error_response(
            status.HTTP_400_BAD_REQUEST, AppError.CONSTRAINT_VIOLATION.value, exc.messages
        )
