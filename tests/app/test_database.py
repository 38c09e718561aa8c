from sqlalchemy.pool import StaticPool
from sqlmodel import Session, select

from aeroledger.app import database
from aeroledger.app.database import build_engine, get_session, init_db
from aeroledger.app.models import Stakeholder


def test_build_engine_in_memory_uses_static_pool():
    """Test that in-memory SQLite engines share a single connection."""
    assert isinstance(build_engine("sqlite://").pool, StaticPool)
    assert isinstance(build_engine("sqlite:///:memory:").pool, StaticPool)


def test_build_engine_file_database(tmp_path):
    """Test that file-backed SQLite engines keep the default pool."""
    file_engine = build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    assert not isinstance(file_engine.pool, StaticPool)
    file_engine.dispose()


def test_get_session_yields_session(mocker):
    """Test that get_session yields a session bound to the module engine."""
    test_engine = build_engine("sqlite://")
    init_db(test_engine)
    mocker.patch.object(database, "engine", test_engine)

    sessions = get_session()
    session = next(sessions)
    assert isinstance(session, Session)
    assert session.get_bind() is test_engine
    assert session.exec(select(Stakeholder)).all() == []
    sessions.close()
