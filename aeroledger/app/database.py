import os
from dotenv import load_dotenv
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

load_dotenv()
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./provenance.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")

IN_MEMORY_URLS = ("sqlite://", "sqlite:///:memory:")


def build_engine(database_url: str = DATABASE_URL, echo: bool = SQL_ECHO):
    """Create an engine for `database_url`.

    In-memory SQLite gets a StaticPool so every session sees the same database.
    """
    connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
    if database_url in IN_MEMORY_URLS:
        return create_engine(database_url, echo=echo, connect_args=connect_args, poolclass=StaticPool)
    return create_engine(database_url, echo=echo, connect_args=connect_args)


engine = build_engine()


def get_session():
    with Session(engine) as session:
        yield session


def init_db(target_engine=None):
    from aeroledger.app import models  # noqa: F401  (registers the tables)
    SQLModel.metadata.create_all(target_engine if target_engine is not None else engine)
