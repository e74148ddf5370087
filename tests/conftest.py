"""Shared fixtures: in-memory database and a fake iRacing provider."""

import os

os.environ.setdefault("IRACING_CLIENT_ID", "gridrep-test")
os.environ.setdefault("IRACING_CLIENT_SECRET", "s3cret")
os.environ.setdefault("IRACING_REDIRECT_URI", "https://testserver/api/auth/callback")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import httpx  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from gridrep import models  # noqa: E402,F401
from gridrep.services.iracing import IRacingClient  # noqa: E402
from helpers import FakeProvider  # noqa: E402


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def client(provider: FakeProvider) -> IRacingClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(provider.handler))
    return IRacingClient(
        "gridrep-test",
        "s3cret",
        "https://testserver/api/auth/callback",
        scope="iracing.auth",
        http=http,
    )
