"""PKCE authorization flow: start, callback exchange and identity resolution."""

from __future__ import annotations

import json
import logging
import re
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional
from urllib.parse import quote, unquote, urlsplit

from sqlmodel import Session, select

from ..core import SESSION_MAX_AGE, utcnow
from ..errors import ErrorKind, GridRepError, ScopeRequired
from ..models import AuthSession, User
from .iracing import IRacingClient, build_authorize_url, create_pkce_pair
from .results import Attempt, dig, first_value, pick_int, pick_string
from .tokens import store_token_response

logger = logging.getLogger(__name__)

RECENT_RACES_PATH = "/data/stats/member_recent_races"
ENRICHMENT_PATHS = ("/data/member/info", "/data/member/get?cust_ids={member_id}")

_UNSAFE_SCHEMES = ("javascript:", "data:", "vbscript:")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


def safe_return_to(value: Any) -> str:
    """Return ``value`` if it is a same-origin relative path, else ``/``."""

    if not isinstance(value, str) or not value:
        return "/"
    if not value.startswith("/") or value.startswith("//") or "\\" in value:
        return "/"
    if _CONTROL_CHARS.search(value):
        return "/"
    lowered = unquote(value).lower().replace(" ", "")
    if any(scheme in lowered for scheme in _UNSAFE_SCHEMES):
        return "/"
    parts = urlsplit(value)
    if parts.scheme or parts.netloc:
        return "/"
    return value


@dataclass(frozen=True)
class FlowState:
    state: str
    verifier: str
    return_to: str = "/"

    def to_cookie(self) -> str:
        payload = {"state": self.state, "verifier": self.verifier, "returnTo": self.return_to}
        return quote(json.dumps(payload, separators=(",", ":")), safe="")


def parse_flow_cookie(raw: Optional[str]) -> Optional[FlowState]:
    if not raw:
        return None
    try:
        payload = json.loads(unquote(raw))
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    state = payload.get("state")
    verifier = payload.get("verifier")
    if not isinstance(state, str) or not isinstance(verifier, str):
        return None
    return FlowState(state=state, verifier=verifier, return_to=safe_return_to(payload.get("returnTo")))


@dataclass(frozen=True)
class FlowStart:
    redirect_url: str
    cookie_value: str
    state: str


def start_flow(return_to: Any, client: IRacingClient) -> FlowStart:
    """Begin an authorization flow and return the redirect and flow cookie."""

    pkce = create_pkce_pair()
    flow = FlowState(
        state=secrets.token_urlsafe(32),
        verifier=pkce.verifier,
        return_to=safe_return_to(return_to),
    )
    url = build_authorize_url(
        flow.state,
        pkce.challenge,
        client.scope,
        client_id=client.client_id,
        redirect_uri=client.redirect_uri,
    )
    return FlowStart(redirect_url=url, cookie_value=flow.to_cookie(), state=flow.state)


def has_required_scope(granted: Optional[str], required: str) -> bool:
    """Check a space or comma separated scope list for ``required``.

    An absent scope means the provider granted what was requested.
    """

    if granted is None:
        return True
    return required in re.split(r"[\s,]+", granted.strip())


# Identity ------------------------------------------------------------------


@dataclass(frozen=True)
class Identity:
    member_id: str
    name: Optional[str] = None


IDENTITY_ROOTS = (
    ("top_level", ()),
    ("list", (0,)),
    ("member", ("member",)),
    ("races", ("races", 0)),
    ("results", ("results", 0)),
    ("recent_races", ("recent_races", 0)),
    ("data", ("data", 0)),
)
IDENTITY_ID = (
    Attempt("cust_id", ("cust_id",), pick_int),
    Attempt("member_id", ("member_id",), pick_int),
    Attempt("driver_id", ("driver_id",), pick_int),
    Attempt("driver.cust_id", ("driver", "cust_id"), pick_int),
)
IDENTITY_NAME = (
    Attempt("display_name", ("display_name",)),
    Attempt("driver_name", ("driver_name",)),
    Attempt("name", ("name",)),
    Attempt("driver.display_name", ("driver", "display_name")),
)
ENRICHED_NAME = (
    Attempt("display_name", ("display_name",)),
    Attempt("members", ("members", 0, "display_name")),
    Attempt("member", ("member", "display_name")),
)


def extract_identity(payload: Any) -> Optional[Identity]:
    """Find the signed-in member in a recent-activity payload."""

    for label, root in IDENTITY_ROOTS:
        node = dig(payload, root)
        member_id = first_value(node, IDENTITY_ID)
        if member_id:
            logger.debug("Identity resolved", extra={"source": label})
            return Identity(member_id=str(member_id), name=first_value(node, IDENTITY_NAME))
    return None


async def enrich_display_name(
    client: IRacingClient, access_token: str, member_id: str
) -> Optional[str]:
    """Best-effort lookup of a nicer display name. Never raises provider errors."""

    for template in ENRICHMENT_PATHS:
        path = template.format(member_id=quote(member_id, safe=""))
        try:
            payload = await client.fetch_data(path, access_token)
        except GridRepError as exc:
            logger.debug("Display name lookup failed", extra={"path": path, "kind": exc.kind.value})
            continue
        name = pick_string(first_value(payload, ENRICHED_NAME))
        if name:
            return name
    return None


# Callback ------------------------------------------------------------------


@dataclass(frozen=True)
class CallbackResult:
    session_id: str
    user_id: uuid.UUID
    return_to: str
    expires_at: datetime


def _upsert_user(session: Session, identity: Identity, name: Optional[str], now: datetime) -> User:
    user = session.exec(
        select(User).where(User.iracing_member_id == identity.member_id)
    ).first()
    if user is None:
        user = User(
            iracing_member_id=identity.member_id,
            display_name=name or f"Driver {identity.member_id}",
            created_at=now,
        )
    elif name and user.display_name != name:
        user.display_name = name
    session.add(user)
    session.flush()
    return user


async def complete_callback(
    session: Session,
    client: IRacingClient,
    *,
    code: Optional[str],
    state: Optional[str],
    flow: Optional[FlowState],
    now: Optional[datetime] = None,
) -> CallbackResult:
    """Exchange the code, resolve the member and open a local session.

    :class:`TokenError` from the exchange propagates so the caller can restart
    the flow on a stale grant.
    """

    if not code or not state:
        raise GridRepError("Missing code/state", kind=ErrorKind.BAD_REQUEST)
    if flow is None:
        raise GridRepError("Missing OAuth cookie", kind=ErrorKind.BAD_REQUEST)
    if not secrets.compare_digest(flow.state.encode("utf-8"), state.encode("utf-8")):
        raise GridRepError("State mismatch", kind=ErrorKind.BAD_REQUEST)

    token = await client.exchange_code_for_tokens(code, flow.verifier)

    if not has_required_scope(token.scope, client.scope):
        logger.warning("Granted scope missing required scope")
        raise ScopeRequired(f"Missing required scope: {client.scope}", status=403)

    recent = await client.fetch_data(RECENT_RACES_PATH, token.access_token)
    identity = extract_identity(recent)
    if identity is None:
        raise GridRepError(
            "Could not determine iRacing identity", kind=ErrorKind.IDENTITY_FAILED
        )

    name = await enrich_display_name(client, token.access_token, identity.member_id)
    name = name or identity.name

    now = now or utcnow()
    user = _upsert_user(session, identity, name, now)
    store_token_response(session, user.id, token, now=now, commit=False)

    expires_at = now + timedelta(seconds=SESSION_MAX_AGE)
    auth_session = AuthSession(
        user_id=user.id, created_at=now, expires_at=expires_at, last_seen_at=now
    )
    session.add(auth_session)
    session.commit()

    logger.info("Member verified", extra={"member_id": identity.member_id})
    return CallbackResult(
        session_id=auth_session.id,
        user_id=user.id,
        return_to=flow.return_to,
        expires_at=expires_at,
    )


__all__ = [
    "CallbackResult",
    "FlowStart",
    "FlowState",
    "Identity",
    "complete_callback",
    "enrich_display_name",
    "extract_identity",
    "has_required_scope",
    "parse_flow_cookie",
    "safe_return_to",
    "start_flow",
]
