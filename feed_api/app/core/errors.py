"""
Error taxonomy and the boundary responder.

Every failure a request can end in is one of a small, closed set of
exception classes.  Each carries a ``kind`` tag, the HTTP status it maps
to and its own structured payload.  Services and repositories raise
these; endpoints never build error responses by hand.  The handlers
installed by ``register_exception_handlers`` are the only place where an
error becomes an HTTP response.

Unexpected exceptions are rendered as ``StorageFailure`` and their detail
is logged, never returned to the client.
"""

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Violation:
    """A single field-level validation problem."""

    field: str
    message: str


class ApiError(Exception):
    """Base class of the tagged error variants."""

    kind: str = "ApiError"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Request failed"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def payload(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message}

    def headers(self) -> Optional[Dict[str, str]]:
        return None


class Unauthenticated(ApiError):
    kind = "Unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"

    def headers(self) -> Optional[Dict[str, str]]:
        return {"WWW-Authenticate": "Bearer"}


class Forbidden(ApiError):
    kind = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized"


class NotFound(ApiError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ValidationFailed(ApiError):
    kind = "ValidationFailed"
    status_code = 422
    default_message = "Validation failed, entered data is incorrect"

    def __init__(self, violations: List[Violation], message: Optional[str] = None) -> None:
        super().__init__(message)
        self.violations = list(violations)

    @classmethod
    def from_pydantic(cls, exc: ValidationError) -> "ValidationFailed":
        return cls(violations_from_errors(exc.errors()))

    def payload(self) -> Dict[str, Any]:
        data = super().payload()
        data["violations"] = [asdict(v) for v in self.violations]
        return data


class StorageFailure(ApiError):
    """The external store failed.  The underlying detail is never exposed."""

    kind = "StorageFailure"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "An internal error occurred"


class NotificationDeliveryFailure(Exception):
    """Delivery of a mutation event to one connection failed.

    Only ever logged by the notification hub; it never reaches a caller.
    """

    def __init__(self, connection_id: str, reason: str) -> None:
        self.connection_id = connection_id
        self.reason = reason
        super().__init__(f"delivery to {connection_id} failed: {reason}")


def violations_from_errors(errors: List[Dict[str, Any]]) -> List[Violation]:
    """Flatten pydantic error dicts into ``Violation`` records.

    The leading ``body``/``query`` location segment added by FastAPI is
    dropped so that field names match what the client sent.
    """
    violations = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in {"body", "query", "path", "form"}:
            loc = loc[1:]
        violations.append(Violation(field=".".join(loc) or "body", message=error.get("msg", "invalid")))
    return violations


def _render(exc: ApiError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.payload(), headers=exc.headers())


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    if isinstance(exc, StorageFailure):
        logger.error(
            "Storage failure on %s %s: %s",
            request.method,
            request.url.path,
            exc.__cause__ or exc.message,
        )
    return _render(exc)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _render(ValidationFailed(violations_from_errors(list(exc.errors()))))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    kinds = {
        status.HTTP_401_UNAUTHORIZED: Unauthenticated.kind,
        status.HTTP_403_FORBIDDEN: Forbidden.kind,
        status.HTTP_404_NOT_FOUND: NotFound.kind,
    }
    return JSONResponse(
        status_code=exc.status_code,
        content={"kind": kinds.get(exc.status_code, "HTTPError"), "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _render(StorageFailure())


def register_exception_handlers(app: FastAPI) -> None:
    """Install the boundary responder on ``app``."""
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
