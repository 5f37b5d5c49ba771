"""Domain errors and their HTTP mapping.

Services raise these; routers let them propagate and the handlers registered
by :func:`register_exception_handlers` turn them into JSON responses. A
conditional update that matches zero rows is *not* an error: it comes back as
a :class:`aqva.services.order_store.TransitionResult` with ``applied=False``.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AqvaError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AqvaError):
    """Bad input to an operation; not retryable."""

    code = "validation_error"


class AuthorizationError(AqvaError):
    """Caller does not own the resource or lacks the role."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class NotFoundError(AqvaError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ConflictError(AqvaError):
    """Request is valid but the current state of the record forbids it."""

    status_code = status.HTTP_409_CONFLICT
    code = "conflict"

    def __init__(self, message: str = "", current_status: str | None = None) -> None:
        super().__init__(message)
        self.current_status = current_status


class ConfigurationError(AqvaError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "configuration_error"


class UpstreamProviderError(AqvaError):
    """Payment provider call failed. The provider's own message is logged, never returned."""

    status_code = status.HTTP_502_BAD_GATEWAY
    code = "upstream_provider_error"


class SignatureError(AqvaError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "invalid_signature"


class MalformedSignatureError(SignatureError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "malformed_signature"


class InvalidSignatureError(SignatureError):
    pass


def register_exception_handlers(app: FastAPI) -> None:
    """Register JSON handlers for every :class:`AqvaError` subclass."""

    @app.exception_handler(AqvaError)
    async def _aqva_error(request: Request, exc: AqvaError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
        content = {"detail": exc.message, "code": exc.code}
        if isinstance(exc, ConflictError) and exc.current_status is not None:
            content["status"] = exc.current_status
        return JSONResponse(status_code=exc.status_code, content=content)
