"""Database engine and session wiring.

Postgres in deployment (pre-ping pooled connections), SQLite for local runs
and tests. An in-memory SQLite database lives on a single shared connection,
otherwise every new connection would see an empty schema.
"""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool

from .settings import settings


class Base(DeclarativeBase):
    pass


_engine = None
_SessionLocal = None


def engine_options(database_url: str) -> dict:
    """create_engine keyword arguments for the url's backend."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return {"pool_pre_ping": True}

    # Sessions are used from FastAPI's threadpool
    options = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    return options


def init_engine(database_url: str | None = None):
    global _engine, _SessionLocal
    url = database_url or settings.database_url
    _engine = create_engine(url, **engine_options(url))
    _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)
    return _engine


def get_engine():
    if _engine is None:
        init_engine()
    return _engine


def SessionLocal():
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal


def get_db():
    db = SessionLocal()()
    try:
        yield db
    finally:
        db.close()
