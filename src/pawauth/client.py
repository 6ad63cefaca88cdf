# OAuth2 Client - public surface and the authenticated dispatch pipeline.
# Created: 2026-10-19

from __future__ import annotations

import logging
import time
import urllib.parse
from collections.abc import Callable, Mapping
from typing import Any

import httpx

from pawauth.auth import Authenticator
from pawauth.config import ClientConfig, Credentials, as_client_config, resolve_endpoints
from pawauth.errors import ApiError, ClientError, HttpError, OAuth2ClientError
from pawauth.request import NormalizedResponse, RequestExecutor, RequestSpec
from pawauth.token_store import TokenSnapshot, TokenStore

logger = logging.getLogger(__name__)


def _never_refresh(error: OAuth2ClientError) -> bool:
    return False


class OAuth2Client:
    """HTTP client that attaches bearer tokens and re-authenticates on 401.

    Usage::

        async with OAuth2Client("https://api.example.com", {
            "client_id": "id",
            "client_secret": "secret",
            "username": "me@example.com",
            "password": "hunter2",
        }) as client:
            resp = await client.get("users/me")

    ``base_url`` may be omitted when ``config["urls"]`` supplies the API URL;
    the config can then be passed as the first argument.
    """

    def __init__(
        self,
        base_url: str | ClientConfig | Mapping[str, Any] | None = None,
        config: ClientConfig | Mapping[str, Any] | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.time,
    ):
        if isinstance(base_url, (ClientConfig, Mapping)):
            base_url, config = None, base_url

        self.config = as_client_config(config)
        self.urls = resolve_endpoints(base_url, self.config.urls)
        self.credentials = Credentials.from_config(self.config)
        self.should_refresh_token = self.config.should_refresh_token or _never_refresh

        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=self.config.timeout)

        self._store = TokenStore(clock=clock)
        self._store.set_tokens(
            {
                "access_token": self.config.access_token,
                "refresh_token": self.config.refresh_token,
                "expires_in": self.config.expires_in,
            }
        )
        self._executor = RequestExecutor(
            self._http,
            self._store,
            user_agent=self.config.user_agent,
            timeout=self.config.timeout,
        )
        self._auth = Authenticator(
            self.credentials,
            self.urls,
            self._store,
            self._executor,
            refresh_callback=self.config.refresh_callback,
        )

    @property
    def token_store(self) -> TokenStore:
        return self._store

    @property
    def authenticator(self) -> Authenticator:
        return self._auth

    # -- lifecycle --

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_http:
            await self._http.aclose()

    async def __aenter__(self) -> OAuth2Client:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # -- tokens --

    async def get_access_token(self) -> TokenSnapshot:
        """Return the current token, acquiring or refreshing one if needed."""
        return await self._auth.ensure_token()

    def set_tokens(self, payload: Mapping[str, Any]) -> None:
        self._store.set_tokens(payload)

    def set_access_token(self, access_token: str | None) -> None:
        self._store.set_access_token(access_token)

    def get_tokens(self) -> TokenSnapshot:
        return self._store.snapshot()

    def get_authorize_url(
        self,
        state: str | None = None,
        *,
        response_type: str = "code",
        extra_params: Mapping[str, str] | None = None,
    ) -> str:
        """Build the URL a user visits to obtain an authorization code."""
        if not self.urls.authorize:
            raise ClientError("Missing authorize URL")

        params: dict[str, str] = {"response_type": response_type}
        if self.credentials.client_id:
            params["client_id"] = self.credentials.client_id
        if self.credentials.redirect_uri:
            params["redirect_uri"] = self.credentials.redirect_uri
        if self.credentials.scope:
            params["scope"] = self.credentials.scope
        if state:
            params["state"] = state
        params.update(extra_params or {})

        separator = "&" if "?" in self.urls.authorize else "?"
        return f"{self.urls.authorize}{separator}{urllib.parse.urlencode(params)}"

    # -- requests --

    async def make_request(
        self,
        url: str,
        params: Mapping[str, Any] | None = None,
        *,
        method: str = "get",
        content_type: str | None = None,
        authorization: bool = False,
    ) -> NormalizedResponse:
        """Send a single request to an absolute URL. No token handling, no retry."""
        spec = RequestSpec(
            url=url,
            method=method,
            params=params,
            content_type=content_type,
            attach_token=authorization,
        )
        return await self._executor.execute(spec)

    async def call(
        self,
        endpoint: str,
        params: Mapping[str, Any] | None = None,
        *,
        method: str = "get",
        content_type: str | None = None,
    ) -> NormalizedResponse:
        """Call ``endpoint`` (relative to the API URL) with a bearer token.

        A 401, or any error with a status that ``should_refresh_token``
        accepts, triggers one refresh_token grant followed by exactly one
        retry. A predicate that raises counts as a refusal. If the refresh
        fails, its error is raised instead of the original one.
        """
        await self._auth.ensure_token()

        spec = RequestSpec(
            url=self.urls.api + endpoint,
            method=method,
            params=params,
            content_type=content_type,
            attach_token=True,
        )
        used_token = self._store.access_token
        try:
            return await self._executor.execute(spec)
        except (HttpError, ApiError) as exc:
            if not self._should_retry(exc):
                raise
            logger.debug("Request to %s rejected (%r), refreshing token", endpoint, exc)

        await self._auth.refresh(stale_access_token=used_token)
        return await self._executor.execute(spec)

    async def get(
        self, endpoint: str, params: Mapping[str, Any] | None = None
    ) -> NormalizedResponse:
        return await self.call(endpoint, params, method="get")

    async def post(
        self,
        endpoint: str,
        params: Mapping[str, Any] | None = None,
        content_type: str | None = None,
    ) -> NormalizedResponse:
        return await self.call(endpoint, params, method="post", content_type=content_type)

    def _should_retry(self, error: OAuth2ClientError) -> bool:
        # Transport failures carry no status and never trigger a refresh
        if error.status is None:
            return False
        if error.status == 401:
            return True
        try:
            return bool(self.should_refresh_token(error))
        except Exception as e:
            logger.warning("should_refresh_token failed, not retrying: %s", e)
            return False
