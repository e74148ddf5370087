"""Database model exports."""

from .auth_session import AuthSession
from .driver import Driver
from .oauth import OAuthToken
from .race_session import RaceSession, SessionParticipant
from .user import User

__all__ = [
    "AuthSession",
    "Driver",
    "OAuthToken",
    "RaceSession",
    "SessionParticipant",
    "User",
]
