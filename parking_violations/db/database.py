from typing import NamedTuple

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, scoped_session, sessionmaker
from sqlalchemy.orm.query import Query
from sqlalchemy.orm.scoping import ScopedSession
from sqlalchemy.pool import StaticPool

from parking_violations import settings

_DB_CONN_CACHE = None


class DatabaseConnection(NamedTuple):
    engine: Engine
    session: ScopedSession


def _create_engine(uri: str) -> Engine:
    """Creates an engine wrapping the configured db.

    An in-memory SQLite db is shared across threads through a single
    connection so that every scoped session sees the same tables.
    :return: an engine around the db.
    """
    if uri.startswith('sqlite'):
        return create_engine(
            uri,
            connect_args={'check_same_thread': False},
            poolclass=StaticPool)

    return create_engine(uri, pool_pre_ping=True)


def _create_scoped_session(engine: Engine) -> ScopedSession:
    """Returns a scoped_session to the db connected to the given engine.
    :param engine: an engine connected to the target db.
    :return: a scoped_session to the db connected to the engine.
    """
    return scoped_session(
        sessionmaker(
            autocommit=False,
            autoflush=False,
            bind=engine,
            expire_on_commit=False))


def init_database() -> DatabaseConnection:
    global _DB_CONN_CACHE  # pylint: disable=global-statement
    if not _DB_CONN_CACHE:
        engine = _create_engine(settings.DATABASE_URI)
        session = _create_scoped_session(engine=engine)
        db = DatabaseConnection(engine=engine, session=session)
        _DB_CONN_CACHE = db

    return _DB_CONN_CACHE


def create_tables() -> None:
    """Creates any missing tables. Used for local runs and tests; the
    production schema is managed outside of this project."""
    # registers every model with the metadata
    from parking_violations.models import \
        company_vehicle, violation, violations_request  # pylint: disable=import-outside-toplevel,unused-import

    DeclarativeBase.metadata.create_all(bind=init_database().engine)


def drop_tables() -> None:
    DeclarativeBase.metadata.drop_all(bind=init_database().engine)


DeclarativeBase = declarative_base()
DeclarativeBase.query: Query = init_database().session.query_property()
