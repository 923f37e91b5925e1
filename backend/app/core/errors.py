"""Error types shared by the auth core and the exception handlers in ``app.main``."""

from __future__ import annotations

from enum import Enum

from fastapi import status


class ApiError(Exception):
    """An error that is rendered as ``{success: false, error, message}``."""

    def __init__(
        self,
        status_code: int,
        error: str,
        message: str,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error = error
        self.message = message
        self.headers = headers

    def to_dict(self) -> dict[str, object]:
        return {"success": False, "error": self.error, "message": self.message}


class RateLimitError(ApiError):
    def __init__(self, message: str, retry_after: int) -> None:
        super().__init__(
            status.HTTP_429_TOO_MANY_REQUESTS,
            "Rate limit exceeded",
            message,
            headers={"Retry-After": str(retry_after)},
        )
        self.retry_after = retry_after

    def to_dict(self) -> dict[str, object]:
        return {**super().to_dict(), "retryAfter": self.retry_after}


def unauthorized(message: str) -> ApiError:
    return ApiError(status.HTTP_401_UNAUTHORIZED, "Unauthorized", message)


def forbidden(message: str) -> ApiError:
    return ApiError(status.HTTP_403_FORBIDDEN, "Forbidden", message)


def bad_request(message: str) -> ApiError:
    return ApiError(status.HTTP_400_BAD_REQUEST, "Bad Request", message)


def not_found(message: str) -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, "Not Found", message)


def server_error(message: str) -> ApiError:
    return ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error", message)


class TokenErrorKind(str, Enum):
    EXPIRED = "expired"
    MALFORMED = "malformed"
    NOT_YET_VALID = "not_yet_valid"
    INVALID = "invalid"


class TokenError(Exception):
    def __init__(self, kind: TokenErrorKind, detail: str = "") -> None:
        super().__init__(detail or kind.value)
        self.kind = kind
        self.detail = detail


class IdentityProviderError(Exception):
    """Non-2xx answer (or unusable payload) from the identity provider."""

    def __init__(self, operation: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(f"{operation} failed: {status_code} {body[:200]}".strip())
        self.operation = operation
        self.status_code = status_code
        self.body = body


class LoginConfigurationError(Exception):
    pass
