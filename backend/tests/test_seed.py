import importlib.util
import json
from pathlib import Path

import pytest

from crudapi import repositories
from crudapi.seed import load_seed


def test_load_seed_creates_and_skips(session):
    data = {
        'products': [{'name': 'Pen', 'price': 1.5}, {'name': 'Ink', 'price': -2}],
        'students': [{'name': 'Ada', 'course': 'Maths'}],
        'users': [
            {'username': 'admin', 'email': 'admin@example.com', 'password': 'adminpass'},
            {'username': 'admin', 'email': 'other@example.com', 'password': 'adminpass'},
        ],
    }
    result = load_seed(session, data)
    assert result['created'] == {'products': 1, 'students': 1, 'users': 1}
    assert result['skipped'] == 1
    assert len(result['errors']) == 1
    assert result['errors'][0]['section'] == 'products'
    assert result['errors'][0]['index'] == 1

    admin = repositories.UserRepository(session).get_by_username('admin')
    assert admin.password_hash != 'adminpass'


def test_load_seed_rejects_unknown_sections(session):
    with pytest.raises(ValueError):
        load_seed(session, {'orders': []})


def test_load_seed_rejects_non_object_data(session):
    with pytest.raises(ValueError, match="object of sections"):
        load_seed(session, [{'name': 'Pen', 'price': 1}])


def _seed_script():
    path = Path(__file__).resolve().parents[1] / 'scripts' / 'seed_data.py'
    found = importlib.util.spec_from_file_location('seed_data', path)
    module = importlib.util.module_from_spec(found)
    found.loader.exec_module(module)
    return module


def test_seed_script_accepts_every_schema_mode():
    parser = _seed_script().build_parser()
    for mode in ('create', 'create-drop', 'update', 'validate', 'none'):
        args = parser.parse_args(['--file', 'seed.json', '--schema-mode', mode])
        assert args.schema_mode == mode


def test_seed_script_reports_malformed_file(tmp_path, capsys):
    seed_file = tmp_path / 'seed.json'
    seed_file.write_text(json.dumps([{'name': 'Pen'}]), encoding='utf-8')
    assert _seed_script().main(seed_file, 'create') == 1
    assert 'Invalid seed file' in capsys.readouterr().out
