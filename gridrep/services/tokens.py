"""Access-token lifecycle: reuse, refresh and persist provider tokens."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlmodel import Session

from ..core.time import as_utc, utcnow
from ..errors import AuthRequired, GridRepError
from ..models import OAuthToken
from .iracing import IRacingClient, TokenResponse

logger = logging.getLogger(__name__)

REFRESH_BUFFER = timedelta(seconds=30)
DEFAULT_EXPIRES_IN = 600


def store_token_response(
    session: Session,
    user_id: uuid.UUID,
    token: TokenResponse,
    *,
    now: Optional[datetime] = None,
    commit: bool = True,
) -> OAuthToken:
    """Insert or overwrite the token row for ``user_id``.

    A missing refresh token or scope in ``token`` keeps the stored value.
    """

    now = now or utcnow()
    expires_at = now + timedelta(seconds=token.expires_in or DEFAULT_EXPIRES_IN)

    record = session.get(OAuthToken, user_id)
    if record is None:
        record = OAuthToken(
            user_id=user_id,
            access_token=token.access_token,
            refresh_token=token.refresh_token,
            access_expires_at=expires_at,
            scope=token.scope,
            updated_at=now,
        )
    else:
        record.access_token = token.access_token
        if token.refresh_token:
            record.refresh_token = token.refresh_token
        if token.scope:
            record.scope = token.scope
        record.access_expires_at = expires_at
        record.updated_at = now

    session.add(record)
    if commit:
        session.commit()
        session.refresh(record)
    return record


async def get_valid_access_token(
    session: Session,
    user_id: uuid.UUID,
    client: IRacingClient,
    *,
    now: Optional[datetime] = None,
) -> str:
    """Return an access token valid for at least the refresh buffer.

    Refreshes through ``client`` when the stored token is within 30 seconds of
    expiry. Two requests for the same user may both refresh; the later write
    wins.
    """

    record = session.get(OAuthToken, user_id)
    if record is None or not record.access_token:
        raise AuthRequired("No tokens for user")

    now = now or utcnow()
    expires_at = as_utc(record.access_expires_at)
    if expires_at is not None and expires_at - now > REFRESH_BUFFER:
        return record.access_token

    if not record.refresh_token:
        raise AuthRequired("Access expired and no refresh token")

    try:
        refreshed = await client.refresh_tokens(record.refresh_token)
    except GridRepError as exc:
        logger.warning(
            "Token refresh failed", extra={"user_id": str(user_id), "kind": exc.kind.value}
        )
        raise AuthRequired("Token refresh failed") from exc

    record = store_token_response(session, user_id, refreshed, now=now)
    logger.info("Refreshed access token", extra={"user_id": str(user_id)})
    return record.access_token


__all__ = [
    "DEFAULT_EXPIRES_IN",
    "REFRESH_BUFFER",
    "get_valid_access_token",
    "store_token_response",
]
