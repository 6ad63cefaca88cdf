# Request Executor - one HTTP call, body normalization, error classification.
# Created: 2026-10-19

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from pawauth.errors import ApiError, ClientError, HttpError, OAuth2ClientError
from pawauth.token_store import TokenStore

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# Media types whose bodies are decoded as JSON (plus any "+json" suffix)
_JSON_MEDIA_TYPES = frozenset({JSON_CONTENT_TYPE, "text/javascript", "application/javascript"})


@dataclass(frozen=True)
class RequestSpec:
    """A single outgoing call.

    The bearer token is not part of the spec: it is read from the token
    store when the request is sent, so a retried spec carries a fresh token.
    """

    url: str
    method: str = "get"
    params: Mapping[str, Any] | None = None
    content_type: str | None = None
    attach_token: bool = False


@dataclass
class NormalizedResponse:
    status_code: int
    headers: httpx.Headers
    body: Any
    url: str


def _media_type(content_type: str | None) -> str:
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


def _is_json_media(media: str) -> bool:
    return media in _JSON_MEDIA_TYPES or media.endswith("+json")


def normalize_body(resp: httpx.Response) -> Any:
    """Decode *resp* according to its declared content type.

    JSON types are parsed, text types decoded, anything else is returned as
    raw bytes. An undeclared body is parsed as JSON when it is valid JSON and
    returned as text otherwise. Raises ``ClientError`` only when a body
    declared as JSON does not parse.
    """
    content = resp.content
    if not content:
        return None

    media = _media_type(resp.headers.get("content-type"))
    if _is_json_media(media):
        try:
            return json.loads(content)
        except ValueError as exc:
            raise ClientError("Unable to parse response") from exc

    if not media:
        if content.lstrip()[:1] in (b"{", b"["):
            try:
                return json.loads(content)
            except ValueError:
                # Undeclared and not JSON after all
                pass
        return resp.text

    if media == "application/text" or media.startswith("text/"):
        return resp.text
    return content


def parse_error(response: NormalizedResponse) -> OAuth2ClientError | None:
    """Classify a response. Returns None on success.

    A structured ``error.message`` body wins over the status code.
    """
    body = response.body
    status = response.status_code
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return ApiError(error["message"], code=error.get("code"), status=status)

    if 400 <= status < 500:
        return HttpError("Invalid request", status=status)
    if 500 <= status < 600:
        return HttpError("Internal error", status=status)
    return None


class RequestExecutor:
    """Sends exactly one HTTP request per ``execute`` call. Never retries."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        store: TokenStore,
        *,
        user_agent: str,
        timeout: float,
    ):
        self._http = http
        self._store = store
        self.user_agent = user_agent
        self.timeout = timeout

    def _build_headers(self, spec: RequestSpec) -> dict[str, str]:
        headers: dict[str, str] = {}
        if spec.content_type:
            headers["Content-Type"] = spec.content_type
        if spec.attach_token:
            headers["Authorization"] = f"Bearer {self._store.access_token}"
        headers["User-Agent"] = self.user_agent
        return headers

    async def execute(self, spec: RequestSpec) -> NormalizedResponse:
        method = spec.method.lower()
        params = dict(spec.params or {})
        kwargs: dict[str, Any] = {"headers": self._build_headers(spec), "timeout": self.timeout}

        if method == "get":
            kwargs["params"] = params
        elif method == "post":
            if _is_json_media(_media_type(spec.content_type or JSON_CONTENT_TYPE)):
                kwargs["json"] = params
            else:
                kwargs["data"] = params
        else:
            raise ClientError(f"Unsupported method: {spec.method}")

        logger.debug("%s %s", method.upper(), spec.url)
        try:
            resp = await self._http.request(method.upper(), spec.url, **kwargs)
        except httpx.HTTPError as exc:
            detail = str(exc) or type(exc).__name__
            raise HttpError(f"Request failed: {detail}") from exc

        response = NormalizedResponse(
            status_code=resp.status_code,
            headers=resp.headers,
            body=normalize_body(resp),
            url=str(resp.url),
        )
        error = parse_error(response)
        if error is not None:
            logger.debug("%s %s failed with %r", method.upper(), spec.url, error)
            raise error
        return response
