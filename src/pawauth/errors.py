# Errors - classified failures raised by the OAuth2 client.
# Created: 2026-10-19

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    CLIENT = "client"
    HTTP = "http"
    API = "api"


class OAuth2ClientError(Exception):
    """Base class for every error raised by pawauth.

    Attributes:
        kind: Which layer classified the failure.
        message: Human readable description.
        code: Machine code reported by the server, if any.
        status: HTTP status of the failed response, if any.
    """

    kind: ErrorKind

    def __init__(self, message: str, code: str | int | None = None, status: int | None = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status = status

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(message={self.message!r}, "
            f"code={self.code!r}, status={self.status!r})"
        )


class ClientError(OAuth2ClientError):
    """Local failure: bad configuration, missing grant arguments, unparsable body."""

    kind = ErrorKind.CLIENT


class HttpError(OAuth2ClientError):
    """4xx/5xx response without a structured error body, or a transport failure."""

    kind = ErrorKind.HTTP


class ApiError(OAuth2ClientError):
    """Response body carried an ``error.message`` envelope."""

    kind = ErrorKind.API
