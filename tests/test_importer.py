"""Tests for the single-session import pipeline."""

from datetime import timedelta
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, select

from gridrep.errors import (
    AuthRequired,
    ErrorKind,
    FetchFailed,
    GridRepError,
    ImportFailed,
    NotVerified,
    ScopeRequired,
)
from gridrep.models import Driver, RaceSession, SessionParticipant
from gridrep.services.iracing import IRacingClient
from gridrep.services.importer import import_session, is_session_cached
from gridrep.services.viewer import resolve_viewer
from helpers import (
    NOW,
    FakeProvider,
    make_auth_session,
    make_token,
    make_user,
    race_payload,
    results_path,
)


@pytest.fixture
def cookie(session: Session) -> str:
    user = make_user(session)
    make_token(session, user, expires_at=NOW + timedelta(days=365))
    return make_auth_session(session, user).id


def _snapshot(session: Session):
    race = session.get(RaceSession, "555")
    rows = session.exec(
        select(SessionParticipant).order_by(SessionParticipant.iracing_member_id)
    ).all()
    return (
        (race.series_name, race.track_name, race.sof),
        [(r.iracing_member_id, r.finish_pos, r.car_name) for r in rows],
    )


async def test_import_stores_header_grid_and_drivers(
    session: Session, client: IRacingClient, provider: FakeProvider, cookie: str
) -> None:
    provider.linked_data(results_path(555), race_payload())

    result = await import_session(session, "555", client=client, cookie=cookie, now=NOW)

    assert result.to_dict() == {
        "ok": True,
        "subsessionId": "555",
        "participantsImported": 3,
        "skipped": False,
    }
    race = session.get(RaceSession, "555")
    assert race.series_name == "Formula Vee"
    assert race.track_name == "Lime Rock Park"
    assert race.sof == 1850
    positions = {
        row.iracing_member_id: row.finish_pos
        for row in session.exec(select(SessionParticipant)).all()
    }
    assert positions == {"1001": 1, "1002": 2, "1003": 3}
    assert session.get(Driver, "1003").display_name == "Driver 1003"
    assert session.get(Driver, "9001") is None


async def test_second_import_is_skipped_without_network(
    session: Session, client: IRacingClient, provider: FakeProvider, cookie: str
) -> None:
    provider.data(results_path(555), race_payload())

    await import_session(session, "555", client=client, cookie=cookie, now=NOW)
    before = _snapshot(session)
    calls = len(provider.requests)

    second = await import_session(session, "555", client=client, cookie=cookie, now=NOW)

    assert second.skipped is True
    assert second.participants_imported == 0
    assert len(provider.requests) == calls
    assert _snapshot(session) == before


async def test_cached_session_skips_even_for_anonymous(
    session: Session, client: IRacingClient, provider: FakeProvider, cookie: str
) -> None:
    provider.data(results_path(555), race_payload())
    await import_session(session, "555", client=client, cookie=cookie)

    result = await import_session(session, "555", client=client, cookie=None)

    assert result.skipped is True


async def test_header_merge_keeps_known_values(
    session: Session, client: IRacingClient, provider: FakeProvider, cookie: str
) -> None:
    session.add(RaceSession(iracing_session_id="555", series_name="Old Series", split=2))
    session.commit()
    payload = race_payload()
    del payload["series_name"]
    provider.data(results_path(555), payload)

    await import_session(session, "555", client=client, cookie=cookie)

    race = session.get(RaceSession, "555")
    assert race.series_name == "Old Series"
    assert race.split == 2
    assert race.track_name == "Lime Rock Park"


async def test_existing_driver_name_is_refreshed(
    session: Session, client: IRacingClient, provider: FakeProvider, cookie: str
) -> None:
    session.add(Driver(iracing_member_id="1002", display_name="A. Racer", last_seen_at=NOW))
    session.commit()
    provider.data(results_path(555), race_payload())

    await import_session(session, "555", client=client, cookie=cookie, now=NOW + timedelta(hours=1))

    assert session.get(Driver, "1002").display_name == "Ana Racer"


async def test_write_failure_rolls_back_everything(
    session: Session, client: IRacingClient, provider: FakeProvider, cookie: str
) -> None:
    provider.data(results_path(555), race_payload())
    failing_commit = OperationalError("INSERT", {}, Exception("disk full"))

    with patch.object(session, "commit", side_effect=failing_commit):
        with pytest.raises(ImportFailed) as excinfo:
            await import_session(session, "555", client=client, cookie=cookie)

    assert excinfo.value.status == 500
    assert session.get(RaceSession, "555") is None
    assert session.exec(select(SessionParticipant)).all() == []
    assert session.exec(select(Driver)).all() == []
    assert is_session_cached(session, "555") is False


async def test_payload_without_rows_imports_nothing(
    session: Session, client: IRacingClient, provider: FakeProvider, cookie: str
) -> None:
    provider.data(results_path(777), {"series_name": "Empty Heat"})

    result = await import_session(session, "777", client=client, cookie=cookie)

    assert result.participants_imported == 0
    assert is_session_cached(session, "777") is False
    assert session.get(RaceSession, "777").series_name == "Empty Heat"


async def test_anonymous_viewer_is_rejected(
    session: Session, client: IRacingClient, provider: FakeProvider
) -> None:
    with pytest.raises(NotVerified) as excinfo:
        await import_session(session, "555", client=client, cookie=None)

    assert excinfo.value.status == 401
    assert provider.requests == []


async def test_missing_token_requires_auth(
    session: Session, client: IRacingClient, provider: FakeProvider
) -> None:
    user = make_user(session)
    auth_session = make_auth_session(session, user)

    with pytest.raises(AuthRequired):
        await import_session(session, "555", client=client, cookie=auth_session.id)


@pytest.mark.parametrize("bad_id", ["", "abc", "12a", "-5", "1 2"])
async def test_non_numeric_id_is_bad_request(
    session: Session, client: IRacingClient, bad_id: str
) -> None:
    with pytest.raises(GridRepError) as excinfo:
        await import_session(session, bad_id, client=client)

    assert excinfo.value.kind is ErrorKind.BAD_REQUEST


async def test_scope_failure_passes_through(
    session: Session, client: IRacingClient, provider: FakeProvider, cookie: str
) -> None:
    provider.fail(results_path(555), status=401, text="missing scope iracing.auth")

    with pytest.raises(ScopeRequired):
        await import_session(session, "555", client=client, cookie=cookie)


async def test_other_provider_failure_is_fetch_failed(
    session: Session, client: IRacingClient, provider: FakeProvider, cookie: str
) -> None:
    provider.fail(results_path(555), status=500)

    with pytest.raises(FetchFailed) as excinfo:
        await import_session(session, "555", client=client, cookie=cookie)

    assert excinfo.value.kind is ErrorKind.FETCH_FAILED
    assert excinfo.value.status == 502


async def test_malformed_result_link_is_fetch_failed(
    session: Session, client: IRacingClient, provider: FakeProvider, cookie: str
) -> None:
    provider.data(results_path(555), {"link": ["x"]})

    with pytest.raises(FetchFailed):
        await import_session(session, "555", client=client, cookie=cookie)

    assert session.get(RaceSession, "555") is None


async def test_supplied_viewer_and_token_skip_lookups(
    session: Session, client: IRacingClient, provider: FakeProvider, cookie: str
) -> None:
    viewer = resolve_viewer(session, cookie)
    provider.data(results_path(555), race_payload())

    await import_session(
        session, "555", client=client, viewer=viewer, access_token="bulk-token"
    )

    assert provider.token_calls == []
    assert provider.data_calls[0].headers["authorization"] == "Bearer bulk-token"
