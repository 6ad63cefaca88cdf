# Authenticator - picks a grant and keeps the token store populated.
# Created: 2026-10-19
#
# Grant selection is an ordered list of checks, evaluated top to bottom:
#   valid token -> authorization code -> refresh token -> password -> fail
# The refresh token always wins over username/password when both are set.

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any

from pawauth.config import Credentials, EndpointConfig
from pawauth.errors import ClientError
from pawauth.request import FORM_CONTENT_TYPE, RequestExecutor, RequestSpec
from pawauth.token_store import TokenSnapshot, TokenStore

logger = logging.getLogger(__name__)

RefreshCallback = Callable[[dict[str, Any]], Any]


class Authenticator:
    """Acquires and refreshes bearer tokens against the token endpoint.

    Acquisition is single-flight: one ``asyncio.Lock`` serializes every grant,
    and callers that waited on the lock re-check the store before spending a
    grant of their own.
    """

    def __init__(
        self,
        credentials: Credentials,
        endpoints: EndpointConfig,
        store: TokenStore,
        executor: RequestExecutor,
        *,
        refresh_callback: RefreshCallback | None = None,
    ):
        self.credentials = credentials
        self.endpoints = endpoints
        self.store = store
        self._executor = executor
        self._refresh_callback = refresh_callback
        self._authorization_code = credentials.authorization_code
        self._lock = asyncio.Lock()

    @property
    def authorization_code(self) -> str | None:
        """The pending authorization code; None once it has been exchanged."""
        return self._authorization_code

    async def ensure_token(self) -> TokenSnapshot:
        """Return a usable token, running the first applicable grant if needed."""
        if self.store.is_valid():
            return self.store.snapshot()

        async with self._lock:
            if self.store.is_valid():
                return self.store.snapshot()
            if self._authorization_code and self.credentials.redirect_uri:
                return await self._exchange_authorization_code()
            if self.store.refresh_token:
                return await self._refresh()
            if self.credentials.has_user_credentials:
                return await self._password_grant()

        raise ClientError("Unable to retrieve access token")

    async def exchange_authorization_code(self) -> TokenSnapshot:
        async with self._lock:
            return await self._exchange_authorization_code()

    async def refresh(self, stale_access_token: str | None = None) -> TokenSnapshot:
        """Run the refresh_token grant.

        Args:
            stale_access_token: The token a request was just rejected with.
                If the store already holds a different, valid token, another
                caller refreshed first and no request is made.
        """
        async with self._lock:
            if (
                stale_access_token is not None
                and self.store.access_token != stale_access_token
                and self.store.is_valid()
            ):
                logger.debug("Access token was refreshed concurrently, reusing it")
                return self.store.snapshot()
            return await self._refresh()

    async def password_grant(self) -> TokenSnapshot:
        async with self._lock:
            return await self._password_grant()

    # -- grants (caller holds the lock) --

    async def _exchange_authorization_code(self) -> TokenSnapshot:
        code = self._authorization_code
        if not code or not self.credentials.redirect_uri or not self.endpoints.token:
            raise ClientError("Missing args")

        await self._request_token(
            "authorization_code",
            {"code": code, "redirect_uri": self.credentials.redirect_uri},
        )
        # Codes are single use; a failed exchange keeps it for another attempt
        self._authorization_code = None
        return self.store.snapshot()

    async def _refresh(self) -> TokenSnapshot:
        refresh_token = self.store.refresh_token
        if not refresh_token or not self.endpoints.token:
            raise ClientError("Missing args for refreshing tokens")

        payload = await self._request_token("refresh_token", {"refresh_token": refresh_token})
        await self._notify(payload)
        return self.store.snapshot()

    async def _password_grant(self) -> TokenSnapshot:
        if not self.credentials.has_user_credentials or not self.endpoints.token:
            raise ClientError("Missing args to perform user credentials authentication")

        payload = await self._request_token(
            "password",
            {"username": self.credentials.username, "password": self.credentials.password},
        )
        await self._notify(payload)
        return self.store.snapshot()

    async def _request_token(self, grant_type: str, fields: dict[str, Any]) -> dict[str, Any]:
        params: dict[str, Any] = {
            "grant_type": grant_type,
            "client_id": self.credentials.client_id,
            "client_secret": self.credentials.client_secret,
            **fields,
        }
        if self.credentials.scope:
            params["scope"] = self.credentials.scope

        spec = RequestSpec(
            url=self.endpoints.token,
            method="post",
            params={k: v for k, v in params.items() if v is not None},
            content_type=FORM_CONTENT_TYPE,
        )
        response = await self._executor.execute(spec)

        payload = response.body
        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise ClientError("Invalid token response")

        self.store.set_tokens(payload)
        logger.info("Obtained access token via %s grant", grant_type)
        return payload

    async def _notify(self, payload: dict[str, Any]) -> None:
        """Hand the raw token payload to the refresh callback. Failures are logged only."""
        if self._refresh_callback is None:
            return
        try:
            result = self._refresh_callback(dict(payload))
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.warning("Refresh callback failed: %s", e)
