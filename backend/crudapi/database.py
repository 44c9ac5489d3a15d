"""Database engine and helpers.

This module configures the SQLModel/SQLAlchemy engine from the
application settings and provides small helpers used by the application
and tests. By default the database is a local SQLite file at the
`backend/` root named `crudapi.db`; any SQLAlchemy URL works.
"""

import logging
from typing import Optional

from sqlalchemy import inspect
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

from . import models  # noqa: F401  (registers tables on SQLModel.metadata)
from .config import settings
from .errors import SchemaValidationError

logger = logging.getLogger("crudapi.database")


def build_url(url: str, username: Optional[str] = None, password: Optional[str] = None) -> URL:
    """Return `url` with separately configured credentials merged in."""
    u = make_url(url)
    if username:
        u = u.set(username=username)
    if password:
        u = u.set(password=password)
    return u


def make_engine(url: str, username: Optional[str] = None, password: Optional[str] = None) -> Engine:
    """Create an engine for `url`.

    SQLite connections are shared across FastAPI's worker threads, and an
    in-memory SQLite database must stay on one connection or every
    session would see an empty database.
    """
    u = build_url(url, username, password)
    kwargs = {}
    if u.get_backend_name() == "sqlite":
        kwargs["connect_args"] = {"check_same_thread": False}
        if u.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(u, echo=False, **kwargs)


engine = make_engine(settings.DATABASE_URL, settings.DATABASE_USERNAME, settings.DATABASE_PASSWORD)


def init_schema(mode: str = settings.SCHEMA_MODE, bind: Engine = engine):
    """Reconcile mapped tables with the database according to `mode`.

    - `create` / `create-drop`: drop every mapped table, then create them.
    - `update`: create missing tables only; existing ones are untouched.
    - `validate`: raise `SchemaValidationError` if a mapped table is missing.
    - `none`: do nothing.

    Column-level changes are not migrated; use a proper migration tool
    (alembic) for that.
    """
    logger.info("initialising schema mode=%s url=%s", mode, bind.url.render_as_string(hide_password=True))
    if mode in ("create", "create-drop"):
        SQLModel.metadata.drop_all(bind)
        SQLModel.metadata.create_all(bind)
    elif mode == "update":
        SQLModel.metadata.create_all(bind)
    elif mode == "validate":
        inspector = inspect(bind)
        missing = sorted(t for t in SQLModel.metadata.tables if not inspector.has_table(t))
        if missing:
            raise SchemaValidationError(missing)
    elif mode != "none":
        raise ValueError(f"unknown schema mode: {mode}")


def shutdown_schema(mode: str = settings.SCHEMA_MODE, bind: Engine = engine):
    """Drop all tables when running in `create-drop` mode."""
    if mode == "create-drop":
        logger.info("dropping schema (create-drop)")
        SQLModel.metadata.drop_all(bind)


def get_session():
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session and ensures it is closed when the
    request scope finishes.
    """
    with Session(engine) as session:
        yield session
