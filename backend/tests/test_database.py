import pytest
from sqlalchemy import inspect
from sqlmodel import Session, SQLModel

from crudapi import models, repositories
from crudapi.database import build_url, init_schema, make_engine, shutdown_schema
from crudapi.errors import SchemaValidationError


@pytest.fixture
def mem_engine():
    eng = make_engine('sqlite://')
    yield eng
    eng.dispose()


def _tables(eng):
    return set(inspect(eng).get_table_names())


def test_build_url_merges_credentials():
    u = build_url('postgresql://db:5432/shop', 'shop', 's3cret')
    assert u.username == 'shop'
    assert u.password == 's3cret'
    assert build_url('sqlite:///x.db').username is None


def test_validate_fails_on_empty_database(mem_engine):
    with pytest.raises(SchemaValidationError) as exc:
        init_schema('validate', bind=mem_engine)
    assert 'product' in exc.value.missing_tables


def test_update_keeps_existing_rows(mem_engine):
    init_schema('update', bind=mem_engine)
    with Session(mem_engine) as s:
        repositories.ProductRepository(s).create(models.Product(name='kept', price=1))
    init_schema('update', bind=mem_engine)
    init_schema('validate', bind=mem_engine)
    with Session(mem_engine) as s:
        assert repositories.ProductRepository(s).count() == 1


def test_create_drops_existing_rows(mem_engine):
    init_schema('create', bind=mem_engine)
    with Session(mem_engine) as s:
        repositories.ProductRepository(s).create(models.Product(name='gone', price=1))
    init_schema('create', bind=mem_engine)
    with Session(mem_engine) as s:
        assert repositories.ProductRepository(s).count() == 0


def test_create_drop_and_none(mem_engine):
    init_schema('none', bind=mem_engine)
    assert _tables(mem_engine) == set()
    init_schema('create-drop', bind=mem_engine)
    assert set(SQLModel.metadata.tables) <= _tables(mem_engine)
    shutdown_schema('update', bind=mem_engine)
    assert _tables(mem_engine)
    shutdown_schema('create-drop', bind=mem_engine)
    assert _tables(mem_engine) == set()


def test_unknown_mode(mem_engine):
    with pytest.raises(ValueError):
        init_schema('sometimes', bind=mem_engine)
