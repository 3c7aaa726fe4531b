from enum import StrEnum
from typing import Any, Optional


class ErrorKind(StrEnum):
    """Stable machine-readable error kinds returned to clients"""

    INVALID_ARGUMENT = 'invalid_argument'
    UNAUTHORIZED = 'unauthorized'
    FORBIDDEN = 'forbidden'
    NOT_FOUND = 'not_found'
    GONE = 'gone'
    CONFLICT = 'conflict'
    TRANSIENT = 'transient_failure'
    INTERNAL = 'internal'


class CustomBaseError(Exception):
    """Base class for all custom exceptions - controls logging behavior in @Logger.io"""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        kind: ErrorKind = ErrorKind.INTERNAL,
        context: Optional[dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.kind = kind
        self.context = context or {}
        super().__init__(message)


class InvalidArgumentError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 400, ErrorKind.INVALID_ARGUMENT)


class AuthenticationError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 401, ErrorKind.UNAUTHORIZED)


class ForbiddenError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 403, ErrorKind.FORBIDDEN)


class NotFoundError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 404, ErrorKind.NOT_FOUND)


class ConflictError(CustomBaseError):
    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message, 409, ErrorKind.CONFLICT, context)


class GoneError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 410, ErrorKind.GONE)


class TransientError(CustomBaseError):
    """Store timeout or unreachable dependency - safe to retry with backoff"""

    def __init__(self, message: str) -> None:
        super().__init__(message, 503, ErrorKind.TRANSIENT)
