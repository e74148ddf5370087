"""Factories and canned provider payloads for tests."""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Union
from urllib.parse import parse_qsl

import httpx
from sqlmodel import Session

from gridrep.core.config import IRACING_DATA_BASE, IRACING_TOKEN_URL
from gridrep.models import AuthSession, OAuthToken, User

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)

Handler = Union[httpx.Response, Callable[[httpx.Request], httpx.Response]]


class FakeProvider:
    """Routes httpx requests to canned responses and records them."""

    def __init__(self) -> None:
        self.routes: Dict[str, Handler] = {}
        self.token_responses: List[Handler] = []
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url == IRACING_TOKEN_URL:
            if not self.token_responses:
                return httpx.Response(500, text="no token response queued")
            return self._respond(self.token_responses.pop(0), request)
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404, text=f"no route for {url}")
        return self._respond(route, request)

    @staticmethod
    def _respond(handler: Handler, request: httpx.Request) -> httpx.Response:
        if callable(handler):
            return handler(request)
        return handler

    def token(self, payload: Dict[str, Any], status: int = 200) -> None:
        self.token_responses.append(httpx.Response(status, json=payload))

    def data(self, path: str, payload: Any, status: int = 200) -> None:
        self.routes[f"{IRACING_DATA_BASE}{path}"] = httpx.Response(status, json=payload)

    def linked_data(self, path: str, payload: Any) -> str:
        link = f"https://links.example{path.split('?')[0]}/signed"
        self.routes[f"{IRACING_DATA_BASE}{path}"] = httpx.Response(200, json={"link": link})
        self.routes[link] = httpx.Response(200, json=payload)
        return link

    def fail(self, path: str, status: int = 500, text: str = "boom") -> None:
        self.routes[f"{IRACING_DATA_BASE}{path}"] = httpx.Response(status, text=text)

    @property
    def token_calls(self) -> List[httpx.Request]:
        return [r for r in self.requests if str(r.url) == IRACING_TOKEN_URL]

    @property
    def data_calls(self) -> List[httpx.Request]:
        return [r for r in self.requests if str(r.url) != IRACING_TOKEN_URL]


def token_form(request: httpx.Request) -> Dict[str, str]:
    return dict(parse_qsl(request.content.decode()))


def make_user(session: Session, member_id: str = "1001", name: str = "Max Driver") -> User:
    user = User(iracing_member_id=member_id, display_name=name, created_at=NOW)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def make_token(
    session: Session,
    user: User,
    *,
    expires_at: datetime,
    access_token: str = "access-1",
    refresh_token: Optional[str] = "refresh-1",
    scope: Optional[str] = "iracing.auth",
) -> OAuthToken:
    token = OAuthToken(
        user_id=user.id,
        access_token=access_token,
        refresh_token=refresh_token,
        access_expires_at=expires_at,
        scope=scope,
        updated_at=NOW,
    )
    session.add(token)
    session.commit()
    return token


def make_auth_session(
    session: Session, user: User, *, expires_at: Optional[datetime] = None
) -> AuthSession:
    auth_session = AuthSession(
        user_id=user.id,
        created_at=NOW,
        expires_at=expires_at or datetime.now(timezone.utc) + timedelta(days=30),
        last_seen_at=NOW,
    )
    session.add(auth_session)
    session.commit()
    session.refresh(auth_session)
    return auth_session


def race_payload(session_id: int = 555) -> Dict[str, Any]:
    """Multi-phase result payload with the race block last."""

    return {
        "subsession_id": session_id,
        "start_time": "2026-10-01T18:00:00Z",
        "series_name": "Formula Vee",
        "track": {"track_name": "Lime Rock Park"},
        "event_strength_of_field": 1850,
        "session_results": [
            {
                "simsession_type": 3,
                "simsession_type_name": "PRACTICE",
                "simsession_name": "PRACTICE",
                "results": [
                    {"cust_id": 9001, "display_name": "Practice Only", "finish_position": 0}
                ],
            },
            {
                "simsession_type": 4,
                "simsession_type_name": "QUALIFY",
                "simsession_name": "QUALIFY",
                "results": [
                    {"cust_id": 1002, "display_name": "Ana Racer", "finish_position": 0},
                    {"cust_id": 1001, "display_name": "Max Driver", "finish_position": 1},
                ],
            },
            {
                "simsession_type": 6,
                "simsession_type_name": "RACE",
                "simsession_name": "RACE",
                "results": [
                    {
                        "cust_id": 1001,
                        "display_name": "Max Driver",
                        "finish_position": 0,
                        "car_name": "Ray FF1600",
                    },
                    {
                        "cust_id": 1002,
                        "display_name": "Ana Racer",
                        "finish_position": 1,
                        "car_name": "Ray FF1600",
                    },
                    {"cust_id": 1003, "finish_position": 2},
                ],
            },
        ],
    }


def results_path(session_id: Union[int, str]) -> str:
    return f"/data/results/get?subsession_id={session_id}&include_licenses=false"
