"""CLI script to load initial data from a JSON file into the backend DB.
Usage: python scripts/seed_data.py --file seed.json [--schema-mode update]
"""
import sys
import argparse
import json
import pathlib
# Ensure `backend/` is on sys.path so `crudapi` imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from crudapi.config import SCHEMA_MODES, settings
from crudapi.database import engine, init_schema
from crudapi.seed import load_seed


def main(path: pathlib.Path, schema_mode: str) -> int:
    """Read `path`, prepare the schema and create every seed record.

    Results are printed to stdout for a quick CLI feedback loop. Returns
    a process exit code: 1 when the file is unreadable or any item failed.
    """
    try:
        data = json.loads(path.read_text(encoding='utf-8'))
    except (OSError, json.JSONDecodeError) as e:
        print(f'Cannot read seed file {path}: {e}')
        return 1
    init_schema(schema_mode)
    with Session(engine) as session:
        try:
            result = load_seed(session, data)
        except ValueError as e:
            print(f'Invalid seed file {path}: {e}')
            return 1
    for section, count in result['created'].items():
        print(f'{section}: created {count}')
    print(f'skipped {result["skipped"]}, errors {len(result["errors"])}')
    for err in result['errors']:
        print(f'  {err["section"]}[{err["index"]}]: {err["error"]}')
    return 1 if result['errors'] else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser()
    parser.add_argument('--file', type=pathlib.Path, required=True, help='JSON file with products/students/users lists')
    parser.add_argument('--schema-mode', default=settings.SCHEMA_MODE,
                        choices=SCHEMA_MODES,
                        help='How to prepare tables before loading (default: SCHEMA_MODE setting); '
                             'create-drop behaves like create because the script never shuts the app down')
    return parser


if __name__ == '__main__':
    args = build_parser().parse_args()
    sys.exit(main(args.file, args.schema_mode))
