"""
Domain errors and their HTTP mapping.

Services raise these; the handlers registered in main.py turn them into the
standard error envelope: {"success": false, "error": {"code", "message"}}.
Codes follow the platform-wide scheme (E1xxx auth, E2xxx validation,
E3xxx lookup, E4xxx workflow, E5xxx server/upstream).
"""

from __future__ import annotations

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.logging import get_logger

logger = get_logger(__name__)


class ErrorCode:
    INVALID_TOKEN = "E1004"
    FORBIDDEN = "E1005"
    VALIDATION_ERROR = "E2001"
    INVALID_INPUT = "E2002"
    NOT_FOUND = "E3001"
    OPERATION_NOT_ALLOWED = "E4004"
    INTERNAL_ERROR = "E5001"
    EXTERNAL_API_ERROR = "E5004"


class NewsBroadcastError(Exception):
    """Base class for every error the NB pipeline reports to clients."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = ErrorCode.INTERNAL_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(NewsBroadcastError):
    status_code = status.HTTP_404_NOT_FOUND
    code = ErrorCode.NOT_FOUND

    def __init__(self, entity: str) -> None:
        super().__init__(f"{entity} not found")


class ValidationFailedError(NewsBroadcastError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = ErrorCode.VALIDATION_ERROR


class InvalidTransitionError(NewsBroadcastError):
    status_code = status.HTTP_409_CONFLICT
    code = ErrorCode.OPERATION_NOT_ALLOWED


class ForbiddenError(NewsBroadcastError):
    status_code = status.HTTP_403_FORBIDDEN
    code = ErrorCode.FORBIDDEN


class UpstreamAIError(NewsBroadcastError):
    """The LLM provider or the notification gateway failed or returned garbage."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = ErrorCode.EXTERNAL_API_ERROR


def error_body(code: str, message: str) -> dict:
    return {"success": False, "error": {"code": code, "message": message}}


async def nb_error_handler(request: Request, exc: NewsBroadcastError) -> JSONResponse:
    logger.warning(
        "request_rejected",
        path=request.url.path,
        code=exc.code,
        status=exc.status_code,
        reason=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.code, exc.message))


_HTTP_STATUS_CODES = {
    status.HTTP_401_UNAUTHORIZED: ErrorCode.INVALID_TOKEN,
    status.HTTP_403_FORBIDDEN: ErrorCode.FORBIDDEN,
    status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
}


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _HTTP_STATUS_CODES.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = f"{location}: {first.get('msg', 'invalid request')}" if location else "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_body(ErrorCode.INVALID_INPUT, message),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(ErrorCode.INTERNAL_ERROR, "Internal server error"),
    )
