"""
Central error handling for the Leave Ledger backend

Services raise the HTTPException subclasses below; each one carries a
``kind`` that is echoed back to the caller next to the HTTP status.
"""
import logging
import traceback
from typing import Optional

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(HTTPException):
    """Base class for domain errors with a stable error kind"""
    kind: str = "ServerError"
    status_code_default: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str, headers: Optional[dict] = None):
        super().__init__(status_code=self.status_code_default, detail=detail, headers=headers)


class UnauthenticatedError(AppError):
    kind = "Unauthenticated"
    status_code_default = status.HTTP_401_UNAUTHORIZED

    def __init__(self, detail: str = "Not authenticated"):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(AppError):
    kind = "Forbidden"
    status_code_default = status.HTTP_403_FORBIDDEN


class SelfApprovalForbiddenError(AppError):
    kind = "SelfApprovalForbidden"
    status_code_default = status.HTTP_403_FORBIDDEN


class NoAllotmentError(AppError):
    kind = "NoAllotment"
    status_code_default = status.HTTP_400_BAD_REQUEST


class InsufficientBalanceError(AppError):
    kind = "InsufficientBalance"
    status_code_default = status.HTTP_400_BAD_REQUEST


class InvalidInputError(AppError):
    kind = "InvalidInput"
    status_code_default = status.HTTP_400_BAD_REQUEST


class DuplicateAllotmentError(AppError):
    kind = "DuplicateAllotment"
    status_code_default = status.HTTP_400_BAD_REQUEST


class NotFoundError(AppError):
    kind = "NotFound"
    status_code_default = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    kind = "Conflict"
    status_code_default = status.HTTP_409_CONFLICT


_KIND_BY_STATUS = {
    status.HTTP_400_BAD_REQUEST: "InvalidInput",
    status.HTTP_401_UNAUTHORIZED: "Unauthenticated",
    status.HTTP_403_FORBIDDEN: "Forbidden",
    status.HTTP_404_NOT_FOUND: "NotFound",
    status.HTTP_409_CONFLICT: "Conflict",
}


def error_kind(exc: HTTPException) -> str:
    """Error kind for any HTTPException (plain ones are mapped by status code)"""
    kind = getattr(exc, "kind", None)
    if kind:
        return kind
    return _KIND_BY_STATUS.get(exc.status_code, "ServerError")


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle HTTPException with consistent JSON response format

    Args:
        request: FastAPI request object
        exc: HTTPException instance

    Returns:
        JSONResponse with error details
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": True,
            "status_code": exc.status_code,
            "kind": error_kind(exc),
            "detail": exc.detail,
            "path": str(request.url.path)
        },
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle RequestValidationError with consistent JSON response format

    Does not leak internal validation details in production.
    """
    from app.core.config import settings

    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "status_code": 422,
                "kind": "InvalidInput",
                "detail": "Validation error: Invalid request data",
                "path": str(request.url.path)
            }
        )

    # Sanitize for JSON: e.g. ctx.error ValueError -> str
    errors = []
    for e in exc.errors():
        err = dict(e)
        if "ctx" in err and isinstance(err["ctx"], dict):
            err["ctx"] = {
                k: (str(v) if not isinstance(v, (str, int, float, bool, type(None))) else v)
                for k, v in err["ctx"].items()
            }
        errors.append(err)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": True,
            "status_code": 422,
            "kind": "InvalidInput",
            "detail": "Validation error",
            "errors": errors,
            "path": str(request.url.path)
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions with consistent JSON response format

    Does not leak internal error details in production.
    """
    from app.core.config import settings

    logger.error("Unhandled exception: %s", exc, exc_info=True)

    content = {
        "error": True,
        "status_code": 500,
        "kind": "ServerError",
        "detail": "Internal server error",
        "path": str(request.url.path)
    }
    if settings.APP_ENV != "prod":
        content["detail"] = str(exc)
    if settings.APP_ENV == "local":
        content["traceback"] = traceback.format_exc()

    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)
