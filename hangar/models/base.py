"""
Database engine and sessions for the fleet read model.

Hangar only reads the fleet tables; the fleet-management service owns
them. init_db()/drop_db() exist for local and test databases, and
get_session() is the write path used to seed them.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session
from sqlalchemy.pool import StaticPool

from hangar.config import DatabaseConfig, config


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def _sqlite_pragmas(in_memory: bool):
    pragmas = ['PRAGMA foreign_keys=ON']
    if not in_memory:
        # Status board reads while the fleet service writes
        pragmas[:0] = ['PRAGMA journal_mode=WAL', 'PRAGMA synchronous=NORMAL']

    def apply(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        for pragma in pragmas:
            cursor.execute(pragma)
        cursor.close()

    return apply


def build_engine(database: DatabaseConfig, echo: bool = False) -> Engine:
    """
    Create an engine for the configured database.

    SQLite connections are shared by the poller, push listener and request
    threads. An in-memory database is held on a single connection, since
    every new connection would otherwise open its own empty database.
    """
    kwargs = {'echo': echo}
    if database.is_sqlite:
        kwargs['connect_args'] = {'check_same_thread': False}
    if database.is_memory:
        kwargs['poolclass'] = StaticPool

    built = create_engine(database.url, **kwargs)
    if database.is_sqlite:
        event.listen(built, 'connect', _sqlite_pragmas(database.is_memory))
    return built


engine = build_engine(config.database, echo=config.debug)

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,  # Rows are read after the session closes
)


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Session that commits on success and rolls back on error."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db() -> None:
    """Create any missing fleet tables."""
    Base.metadata.create_all(bind=engine)


def drop_db() -> None:
    Base.metadata.drop_all(bind=engine)
