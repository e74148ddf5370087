"""Error taxonomy shared by the provider client, auth and import services.

Every failure the service surfaces maps to exactly one :class:`ErrorKind`.
Callers can branch on ``exc.kind`` exhaustively; the HTTP layer renders any
:class:`GridRepError` through a single exception handler.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    NOT_VERIFIED = "not_verified"
    AUTH_REQUIRED = "auth_required"
    SCOPE_REQUIRED = "scope_required"
    TOKEN_ERROR = "token_error"
    HTTP_ERROR = "http_error"
    NON_JSON = "non_json"
    FETCH_FAILED = "fetch_failed"
    IMPORT_FAILED = "import_failed"
    IDENTITY_FAILED = "identity_failed"
    BAD_REQUEST = "bad_request"
    INTERNAL = "internal"


STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.NOT_VERIFIED: 401,
    ErrorKind.AUTH_REQUIRED: 401,
    ErrorKind.SCOPE_REQUIRED: 403,
    ErrorKind.TOKEN_ERROR: 502,
    ErrorKind.HTTP_ERROR: 502,
    ErrorKind.NON_JSON: 502,
    ErrorKind.FETCH_FAILED: 502,
    ErrorKind.IMPORT_FAILED: 500,
    ErrorKind.IDENTITY_FAILED: 500,
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.INTERNAL: 500,
}


class GridRepError(Exception):
    """Base error carrying a closed :class:`ErrorKind`."""

    kind: ErrorKind = ErrorKind.HTTP_ERROR

    def __init__(
        self,
        message: str,
        *,
        kind: Optional[ErrorKind] = None,
        detail: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind
        self.message = message
        self.detail = detail or {}

    @property
    def status(self) -> int:
        return STATUS_BY_KIND[self.kind]

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": False, "error": self.kind.value, "message": self.message}


class NotVerified(GridRepError):
    kind = ErrorKind.NOT_VERIFIED

    def __init__(self, message: str = "Verify required") -> None:
        super().__init__(message)


class AuthRequired(GridRepError):
    kind = ErrorKind.AUTH_REQUIRED

    def __init__(self, message: str = "Re-verification required") -> None:
        super().__init__(message)


class FetchFailed(GridRepError):
    kind = ErrorKind.FETCH_FAILED


class ImportFailed(GridRepError):
    kind = ErrorKind.IMPORT_FAILED


# Provider errors -----------------------------------------------------------


class ProviderError(GridRepError):
    """Failure talking to the identity provider or its data API."""

    def __init__(self, message: str, *, status: int = 0, body: str = "") -> None:
        super().__init__(message)
        self.http_status = status
        self.body = body


class HttpError(ProviderError):
    kind = ErrorKind.HTTP_ERROR


class NonJsonError(ProviderError):
    kind = ErrorKind.NON_JSON


class ScopeRequired(ProviderError):
    kind = ErrorKind.SCOPE_REQUIRED


class TokenError(ProviderError):
    """Structured rejection from the token endpoint."""

    kind = ErrorKind.TOKEN_ERROR

    def __init__(
        self,
        *,
        status: int,
        error: str,
        error_description: Optional[str] = None,
        body: str = "",
    ) -> None:
        super().__init__(
            f"Token error {status}: {error}", status=status, body=body
        )
        self.error = error
        self.error_description = error_description

    @property
    def is_stale_grant(self) -> bool:
        """True when the authorization code expired or was already used."""

        if self.error != "invalid_grant":
            return False
        description = (self.error_description or "").lower()
        return any(word in description for word in ("expired", "used", "invalid"))


__all__ = [
    "AuthRequired",
    "ErrorKind",
    "FetchFailed",
    "GridRepError",
    "HttpError",
    "ImportFailed",
    "NonJsonError",
    "NotVerified",
    "ProviderError",
    "STATUS_BY_KIND",
    "ScopeRequired",
    "TokenError",
]
