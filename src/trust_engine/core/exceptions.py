# core/exceptions.py

from typing import Any

from fastapi import status
from fastapi.responses import JSONResponse


class TrustEngineException(Exception):
    def __init__(
        self, message: str, error_code: str | None = None, details: dict[str, Any] | None = None
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(TrustEngineException):
    def __init__(self, message: str = "Validation error", fields: list[str] | None = None):
        super().__init__(message, error_code="VALIDATION_ERROR", details={"fields": fields or []})


class InvalidRedirectUriError(ValidationError):
    def __init__(self, message: str = "Invalid redirect URI"):
        super().__init__(message, fields=["redirect_uri"])
        self.error_code = "INVALID_REDIRECT_URI"


class InvalidScopeError(ValidationError):
    def __init__(self, invalid_scopes: list[str]):
        super().__init__(f"Invalid scopes: {', '.join(invalid_scopes)}", fields=["scope"])
        self.error_code = "INVALID_SCOPE"
        self.details["invalid_scopes"] = invalid_scopes


class NotFoundError(TrustEngineException):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, error_code="NOT_FOUND")


class InvalidCredentialError(TrustEngineException):
    """Bad secret, bad code, or an expired/used/revoked token.

    The message is deliberately the same for every cause so callers cannot
    tell "unknown" from "expired" from "revoked".
    """

    def __init__(self, message: str = "Invalid credentials", error_code: str = "INVALID_CREDENTIALS"):
        super().__init__(message, error_code=error_code)


class InvalidClientError(InvalidCredentialError):
    def __init__(self, message: str = "Invalid client"):
        super().__init__(message, error_code="INVALID_CLIENT")


class InvalidGrantError(InvalidCredentialError):
    def __init__(self, message: str = "Invalid or expired grant"):
        super().__init__(message, error_code="INVALID_GRANT")


class InvalidTokenError(InvalidCredentialError):
    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message, error_code="INVALID_TOKEN")


class RateLimitExceededError(TrustEngineException):
    def __init__(
        self,
        message: str = "Too many requests. Please try again later.",
        retry_after: int | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(
            message, error_code="RATE_LIMIT_EXCEEDED", details={"retry_after": retry_after}
        )
        self.headers = headers


class ServerError(TrustEngineException):
    def __init__(self, message: str = "Internal server error"):
        super().__init__(message, error_code="SERVER_ERROR")


class OAuthProtocolError(TrustEngineException):
    """An error surfaced on the /oauth endpoints in RFC 6749 shape."""

    def __init__(
        self,
        oauth_error: str,
        description: str,
        status_code: int = status.HTTP_400_BAD_REQUEST,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(description, error_code=oauth_error)
        self.oauth_error = oauth_error
        self.status_code = status_code
        self.headers = headers


STATUS_MAP = {
    "VALIDATION_ERROR": status.HTTP_400_BAD_REQUEST,
    "INVALID_REDIRECT_URI": status.HTTP_400_BAD_REQUEST,
    "INVALID_SCOPE": status.HTTP_400_BAD_REQUEST,
    "NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVALID_CREDENTIALS": status.HTTP_401_UNAUTHORIZED,
    "INVALID_CLIENT": status.HTTP_401_UNAUTHORIZED,
    "INVALID_GRANT": status.HTTP_400_BAD_REQUEST,
    "INVALID_TOKEN": status.HTTP_401_UNAUTHORIZED,
    "RATE_LIMIT_EXCEEDED": status.HTTP_429_TOO_MANY_REQUESTS,
    "SERVER_ERROR": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def to_http_status(exc: TrustEngineException) -> int:
    return STATUS_MAP.get(exc.error_code or "", status.HTTP_500_INTERNAL_SERVER_ERROR)


# HTTP response converters
def convert_to_developer_response(exc: TrustEngineException) -> JSONResponse:
    """Render the {success, error, message} envelope used by /developer routes."""
    body: dict[str, Any] = {"success": False, "error": exc.error_code, "message": exc.message}
    if exc.details:
        body["details"] = exc.details
    return JSONResponse(
        status_code=to_http_status(exc), content=body, headers=getattr(exc, "headers", None)
    )


def convert_to_oauth_response(exc: OAuthProtocolError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.oauth_error, "error_description": exc.message},
        headers=exc.headers,
    )
