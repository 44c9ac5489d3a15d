"""Initial data loading.

Seed records go through the services, so user passwords are hashed and
the same validation as the HTTP API applies.
"""

import logging
from typing import Dict, List

from pydantic import ValidationError
from sqlmodel import Session

from . import schemas, services
from .errors import CrudError

logger = logging.getLogger("crudapi.seed")

# section name -> (request schema, service factory)
SECTIONS = {
    "products": (schemas.ProductCreate, services.ProductService),
    "students": (schemas.StudentCreate, services.StudentService),
    "users": (schemas.UserCreate, services.UserService),
}


def load_seed(session: Session, data: Dict[str, List[dict]]) -> dict:
    """Create every record in `data` and return a summary.

    `data` maps a section (`products`, `students`, `users`) to a list of
    objects shaped like the matching create request. Duplicate users are
    skipped; invalid items are reported under `errors` with their
    section and index. A non-object `data` or unknown sections raise
    ValueError.
    """
    if not isinstance(data, dict):
        raise ValueError(f"seed data must be an object of sections, not {type(data).__name__}")
    unknown = set(data) - set(SECTIONS)
    if unknown:
        raise ValueError(f"unknown seed sections: {', '.join(sorted(unknown))}")
    created = {name: 0 for name in SECTIONS}
    skipped = 0
    errors = []
    for name, items in data.items():
        schema, factory = SECTIONS[name]
        svc = factory(session)
        for idx, item in enumerate(items):
            try:
                payload = schema.model_validate(item)
                svc.create(payload.model_dump())
            except ValidationError as e:
                errors.append({'section': name, 'index': idx, 'error': str(e)})
                continue
            except CrudError as e:
                logger.info("seed skipped %s[%d]: %s", name, idx, e)
                skipped += 1
                continue
            created[name] += 1
    logger.info("seed finished created=%s skipped=%d errors=%d", created, skipped, len(errors))
    return {'created': created, 'skipped': skipped, 'errors': errors}
