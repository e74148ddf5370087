"""
iRacing API Client
OAuth token protocol and data API access for iRacing.
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
import secrets
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Optional
from urllib.parse import urlencode

import httpx

from ..core.config import (
    IRACING_AUTHORIZE_URL,
    IRACING_CLIENT_ID,
    IRACING_CLIENT_SECRET,
    IRACING_DATA_BASE,
    IRACING_REDIRECT_URI,
    IRACING_SCOPE,
    IRACING_TOKEN_URL,
)
from ..errors import HttpError, NonJsonError, ScopeRequired, TokenError

logger = logging.getLogger(__name__)

TOKEN_TIMEOUT = 20
DATA_TIMEOUT = 30


def mask_client_secret(client_id: str, client_secret: str) -> str:
    """Return the masked secret the iRacing token endpoint expects.

    ``base64(sha256(client_secret + client_id.strip().lower()))`` using the
    standard base64 alphabet, not the URL-safe one.
    """

    normalized_id = client_id.strip().lower()
    digest = hashlib.sha256(f"{client_secret}{normalized_id}".encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


@dataclass(frozen=True)
class PkcePair:
    verifier: str
    challenge: str


def create_pkce_pair() -> PkcePair:
    """Generate a PKCE verifier and its S256 challenge."""

    verifier = _b64url(secrets.token_bytes(32))
    challenge = _b64url(hashlib.sha256(verifier.encode("ascii")).digest())
    return PkcePair(verifier=verifier, challenge=challenge)


def build_authorize_url(
    state: str,
    code_challenge: str,
    scope: str = IRACING_SCOPE,
    *,
    client_id: str = IRACING_CLIENT_ID,
    redirect_uri: str = IRACING_REDIRECT_URI,
) -> str:
    """Generate the iRacing OAuth authorization URL."""

    params = {
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "state": state,
        "code_challenge": code_challenge,
        "code_challenge_method": "S256",
        "scope": scope,
    }
    return f"{IRACING_AUTHORIZE_URL}?{urlencode(params)}"


@dataclass
class TokenResponse:
    access_token: str
    token_type: str = "Bearer"
    expires_in: Optional[int] = None
    refresh_token: Optional[str] = None
    scope: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any, *, status: int = 200) -> "TokenResponse":
        if not isinstance(payload, dict) or not payload.get("access_token"):
            raise NonJsonError(
                "Token response missing access_token", status=status, body=""
            )
        expires_in = payload.get("expires_in")
        try:
            expires_in = int(expires_in) if expires_in is not None else None
        except (TypeError, ValueError):
            expires_in = None
        scope = payload.get("scope")
        if isinstance(scope, list):
            scope = " ".join(str(item) for item in scope)
        return cls(
            access_token=str(payload["access_token"]),
            token_type=str(payload.get("token_type") or "Bearer"),
            expires_in=expires_in,
            refresh_token=payload.get("refresh_token") or None,
            scope=scope or None,
        )


def _parse_json(response: httpx.Response) -> Any:
    try:
        return json.loads(response.text)
    except ValueError as exc:
        raise NonJsonError(
            f"Non-JSON response ({response.status_code})",
            status=response.status_code,
            body=response.text,
        ) from exc


class IRacingClient:
    """Outbound calls to the iRacing token endpoint and data API.

    Pass ``http`` to reuse an existing ``httpx.AsyncClient``; otherwise a
    short-lived client is opened per call.
    """

    def __init__(
        self,
        client_id: str = IRACING_CLIENT_ID,
        client_secret: str = IRACING_CLIENT_SECRET,
        redirect_uri: str = IRACING_REDIRECT_URI,
        *,
        scope: str = IRACING_SCOPE,
        http: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.client_id = client_id
        self._client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.scope = scope
        self._http = http

    @asynccontextmanager
    async def _client(self, timeout: float) -> AsyncIterator[httpx.AsyncClient]:
        if self._http is not None:
            yield self._http
            return
        async with httpx.AsyncClient(timeout=timeout) as client:
            yield client

    # Token endpoint --------------------------------------------------------

    async def _post_token(self, form: Dict[str, str]) -> TokenResponse:
        payload = {
            **form,
            "client_id": self.client_id,
            "client_secret": mask_client_secret(self.client_id, self._client_secret),
        }
        try:
            async with self._client(TOKEN_TIMEOUT) as client:
                response = await client.post(
                    IRACING_TOKEN_URL,
                    data=payload,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
        except httpx.HTTPError as exc:
            raise HttpError(f"Token request failed: {type(exc).__name__}") from exc

        if not response.is_success:
            try:
                body = json.loads(response.text)
            except ValueError:
                body = None
            if isinstance(body, dict) and (body.get("error") or body.get("error_description")):
                logger.info(
                    "Token endpoint rejected grant",
                    extra={"status": response.status_code, "error": body.get("error")},
                )
                raise TokenError(
                    status=response.status_code,
                    error=str(body.get("error") or ""),
                    error_description=body.get("error_description"),
                    body=response.text,
                )
            raise HttpError(
                f"Token error {response.status_code}",
                status=response.status_code,
                body=response.text,
            )

        return TokenResponse.from_payload(
            _parse_json(response), status=response.status_code
        )

    async def exchange_code_for_tokens(self, code: str, verifier: str) -> TokenResponse:
        """Exchange an authorization code for tokens."""

        return await self._post_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.redirect_uri,
                "code_verifier": verifier,
            }
        )

    async def refresh_tokens(self, refresh_token: str) -> TokenResponse:
        """Refresh an expired access token."""

        return await self._post_token(
            {"grant_type": "refresh_token", "refresh_token": refresh_token}
        )

    # Data API --------------------------------------------------------------

    async def fetch_data(self, path: str, access_token: str) -> Any:
        """GET a data endpoint, following the signed ``link`` indirection."""

        url = f"{IRACING_DATA_BASE}{path}"
        try:
            async with self._client(DATA_TIMEOUT) as client:
                response = await client.get(
                    url, headers={"Authorization": f"Bearer {access_token}"}
                )
                if response.status_code == 401 and self.scope in response.text:
                    raise ScopeRequired(
                        "Token lacks required scope",
                        status=response.status_code,
                        body=response.text,
                    )
                if not response.is_success:
                    raise HttpError(
                        f"Data error {response.status_code}",
                        status=response.status_code,
                        body=response.text,
                    )
                meta = _parse_json(response)

                link = meta.get("link") if isinstance(meta, dict) else None
                if link is None:
                    return meta
                if not isinstance(link, str) or not link.strip():
                    raise NonJsonError(
                        "Data link is not a URL",
                        status=response.status_code,
                        body=response.text,
                    )

                linked = await client.get(link)
                if not linked.is_success:
                    raise HttpError(
                        f"Data link error {linked.status_code}",
                        status=linked.status_code,
                        body=linked.text,
                    )
                return _parse_json(linked)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise HttpError(f"Data request failed: {type(exc).__name__}") from exc


def get_iracing_client() -> IRacingClient:
    """FastAPI dependency returning a configured client."""

    return IRacingClient()


__all__ = [
    "IRacingClient",
    "PkcePair",
    "TokenResponse",
    "build_authorize_url",
    "create_pkce_pair",
    "get_iracing_client",
    "mask_client_secret",
]
