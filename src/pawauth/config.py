"""Client configuration.

``ClientConfig`` validates the mapping handed to ``OAuth2Client``. Process-wide
defaults (timeout, user agent) come from ``ClientSettings``, which reads
``PAWAUTH_*`` environment variables.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pawauth.errors import ClientError

DEFAULT_TIMEOUT = 10.0
DEFAULT_USER_AGENT = "pawauth-oauth2-client"


class ClientSettings(BaseSettings):
    """Defaults applied when a ``ClientConfig`` leaves a field unset."""

    model_config = SettingsConfigDict(env_prefix="PAWAUTH_")

    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT


@lru_cache(maxsize=1)
def get_settings() -> ClientSettings:
    return ClientSettings()


def reset_settings() -> None:
    """Drop the cached settings so the environment is read again."""
    get_settings.cache_clear()


class EndpointOverrides(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    api: str | None = None
    token: str | None = None
    authorize: str | None = None


class ClientConfig(BaseModel):
    """Everything an ``OAuth2Client`` needs besides the base URL."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
        coerce_numbers_to_str=True,
    )

    client_id: str | None = None
    client_secret: str | None = None

    # Optional pre-seeded token state
    access_token: str | None = None
    refresh_token: str | None = None
    expires_in: float | None = None

    authorization_code: str | None = None
    redirect_uri: str | None = None
    username: str | None = None
    password: str | None = None
    scope: str | None = None

    urls: EndpointOverrides | None = None
    timeout: float = Field(default_factory=lambda: get_settings().timeout, gt=0)
    user_agent: str = Field(default_factory=lambda: get_settings().user_agent)

    should_refresh_token: Callable[[Exception], bool] | None = None
    refresh_callback: Callable[[dict[str, Any]], Any] | None = None

    @field_validator("scope", mode="before")
    @classmethod
    def _join_scope(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            value = " ".join(str(s) for s in value if s)
        return value or None


def as_client_config(value: ClientConfig | Mapping[str, Any] | None) -> ClientConfig:
    """Validate *value* into a ``ClientConfig``.

    Raises ``ClientError`` when the mapping has unknown keys or bad types.
    """
    if isinstance(value, ClientConfig):
        return value
    try:
        return ClientConfig.model_validate(dict(value or {}))
    except ValidationError as exc:
        raise ClientError(f"Invalid client configuration: {exc}") from exc


@dataclass(frozen=True)
class Credentials:
    """Grant inputs fixed at construction time."""

    client_id: str | None = None
    client_secret: str | None = None
    username: str | None = None
    password: str | None = None
    authorization_code: str | None = None
    redirect_uri: str | None = None
    scope: str | None = None

    @classmethod
    def from_config(cls, config: ClientConfig) -> Credentials:
        return cls(
            client_id=config.client_id,
            client_secret=config.client_secret,
            username=config.username,
            password=config.password,
            authorization_code=config.authorization_code,
            redirect_uri=config.redirect_uri,
            scope=config.scope,
        )

    @property
    def has_user_credentials(self) -> bool:
        return bool(self.username and self.password)


@dataclass(frozen=True)
class EndpointConfig:
    api: str
    token: str | None = None
    authorize: str | None = None


def resolve_endpoints(base_url: str | None, overrides: EndpointOverrides | None) -> EndpointConfig:
    """Derive the API, token and authorize URLs.

    Defaults are ``<base>/``, ``<base>/token`` and ``<base>/authorize``; each
    key set in *overrides* replaces its default.
    """
    if not base_url and overrides is None:
        raise ClientError("Missing Api URL")

    urls: dict[str, str] = {}
    if base_url:
        base = base_url.rstrip("/")
        urls = {"api": f"{base}/", "token": f"{base}/token", "authorize": f"{base}/authorize"}
    if overrides is not None:
        urls.update({k: v for k, v in overrides.model_dump().items() if v})

    if not urls.get("api"):
        raise ClientError("Missing Api URL")
    return EndpointConfig(api=urls["api"], token=urls.get("token"), authorize=urls.get("authorize"))
