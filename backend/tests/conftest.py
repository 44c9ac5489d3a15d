import os
import tempfile
from pathlib import Path

import pytest

# Must be set before `crudapi` is imported: settings and the engine are built at import time.
_DB_PATH = Path(tempfile.gettempdir()) / f"crudapi_test_{os.getpid()}.db"
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_PATH}"
os.environ["SCHEMA_MODE"] = "create"
os.environ["JWT_SECRET"] = "test-secret-key-that-is-long-enough-for-hs256"
os.environ.pop("APP_PROPERTIES", None)

from fastapi.testclient import TestClient  # noqa: E402
from sqlmodel import Session  # noqa: E402

from crudapi.database import engine, init_schema  # noqa: E402
from crudapi.main import app  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def remove_db_file():
    """Delete the temporary SQLite file after the run."""
    yield
    engine.dispose()
    if _DB_PATH.exists():
        try:
            _DB_PATH.unlink()
        except OSError:
            pass


@pytest.fixture
def client():
    """Client whose startup recreates every table (schema mode `create`)."""
    with TestClient(app) as c:
        yield c


@pytest.fixture
def session():
    """A session on freshly recreated tables, for repository/service tests."""
    init_schema("create")
    with Session(engine) as s:
        yield s
