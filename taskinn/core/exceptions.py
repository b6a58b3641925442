"""
Error taxonomy for the settlement API.

Every error carries an HTTP status and a stable machine-readable code that
clients branch on. Handlers registered in ``taskinn.main`` render them as
``{"success": false, "error": ..., "code": ...}``.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class TaskInnError(Exception):
    """Base class for errors that map onto an HTTP response"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body = {"success": False, "error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(TaskInnError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"


class InsufficientBalanceError(ValidationError):
    code = "INSUFFICIENT_BALANCE"

    def __init__(self, message: str = "Insufficient balance", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)


class AuthenticationError(TaskInnError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "AUTHENTICATION_REQUIRED"


class AuthorizationError(TaskInnError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"


class NotFoundError(TaskInnError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class ConflictError(TaskInnError):
    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class DuplicateTransactionError(ConflictError):
    code = "DUPLICATE_TRANSACTION"


class UpstreamProcessorError(TaskInnError):
    """A payment processor call failed or returned a non-success status"""
    code = "PROCESSOR_ERROR"

    def __init__(self, message: str, processor: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)
        self.processor = processor


class InternalError(TaskInnError):
    code = "INTERNAL_ERROR"


async def taskinn_error_handler(request: Request, exc: TaskInnError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.code} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "header"))
    message = f"Invalid value for '{field}': {first.get('msg')}" if field else "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": message, "code": "INVALID_REQUEST"},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "Internal server error", "code": "INTERNAL_ERROR"},
    )
