"""
Domain error hierarchy.

Every failure a service reports to a caller is one of the classes below. The kind of
error (its class) decides the HTTP status; the `code` is the stable machine-readable
string sent to clients, e.g. `SET_NOT_FOUND` or `DAILY_LIMIT_REACHED`.
"""

import fastapi


class DomainError(Exception):
    status_code: int = fastapi.status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, code: str, message: str | None = None):
        self.code = code
        self.message = message or code
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


class ValidationFailed(DomainError):
    status_code = fastapi.status.HTTP_400_BAD_REQUEST


class NotAuthenticated(DomainError):
    status_code = fastapi.status.HTTP_401_UNAUTHORIZED


class EntityNotFound(DomainError):
    status_code = fastapi.status.HTTP_404_NOT_FOUND


class ConflictError(DomainError):
    status_code = fastapi.status.HTTP_409_CONFLICT


class BusinessRuleViolation(DomainError):
    status_code = 422


class DailyLimitReached(BusinessRuleViolation):
    status_code = fastapi.status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "Daily generation limit reached"):
        super().__init__(code="DAILY_LIMIT_REACHED", message=message)


class UpstreamError(DomainError):
    """Failure reported by the sentence provider. `code` carries the provider error code."""

    status_code = fastapi.status.HTTP_502_BAD_GATEWAY

    def __init__(self, code: str, message: str | None = None, upstream_status: int | None = None):
        super().__init__(code=code, message=message)
        self.upstream_status = upstream_status


def map_error_to_status(error: BaseException) -> int:
    if isinstance(error, UpstreamError) and error.code == "OPENROUTER_RATE_LIMIT":
        return fastapi.status.HTTP_429_TOO_MANY_REQUESTS
    if isinstance(error, DomainError):
        return error.status_code
    return fastapi.status.HTTP_500_INTERNAL_SERVER_ERROR
