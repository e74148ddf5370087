"""Tests for engine construction options."""

import pytest

from gridrep.core.database import engine_options


@pytest.mark.parametrize("url", ["sqlite://", "sqlite:///data/app.db", "sqlite+pysqlite:///x.db"])
def test_sqlite_urls_disable_thread_check(url: str) -> None:
    assert engine_options(url) == {"connect_args": {"check_same_thread": False}}


@pytest.mark.parametrize(
    "url", ["postgresql://gridrep@localhost/gridrep", "mysql+pymysql://u:p@db/gridrep"]
)
def test_server_databases_get_no_sqlite_arguments(url: str) -> None:
    assert engine_options(url) == {}
