"""pawauth - asyncio OAuth2 API client with automatic token refresh."""

from pawauth.client import OAuth2Client
from pawauth.config import ClientConfig, ClientSettings, get_settings
from pawauth.errors import ApiError, ClientError, ErrorKind, HttpError, OAuth2ClientError
from pawauth.request import NormalizedResponse
from pawauth.token_store import TokenSnapshot

__version__ = "0.1.0"

__all__ = [
    "ApiError",
    "ClientConfig",
    "ClientError",
    "ClientSettings",
    "ErrorKind",
    "HttpError",
    "NormalizedResponse",
    "OAuth2Client",
    "OAuth2ClientError",
    "TokenSnapshot",
    "get_settings",
]
