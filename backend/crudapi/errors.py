"""Error types and the centralized exception handlers.

Services raise the domain errors below; `setup_exception_handlers`
registers handlers that turn them into JSON HTTP responses so
controllers never translate them by hand.
"""

import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("crudapi.errors")


class CrudError(Exception):
    """Base class for errors raised by the service layer."""
    status_code = 400

    @property
    def detail(self) -> str:
        return str(self)


class EntityNotFoundError(CrudError):
    """Lookup by identifier found nothing."""
    status_code = 404

    def __init__(self, entity: str, entity_id):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class DuplicateEntityError(CrudError):
    """A unique field already holds the submitted value."""
    status_code = 409

    def __init__(self, entity: str, field: str, value):
        self.entity = entity
        self.field = field
        self.value = value
        super().__init__(f"{entity} with {field}={value!r} already exists")


class InvalidOperationError(CrudError):
    """The request conflicts with the current state of an association."""
    status_code = 409


class SchemaValidationError(RuntimeError):
    """Mapped tables are missing from the database (schema mode `validate`)."""

    def __init__(self, missing_tables):
        self.missing_tables = list(missing_tables)
        super().__init__(f"missing tables: {', '.join(self.missing_tables)}")


async def crud_error_handler(request: Request, exc: CrudError) -> JSONResponse:
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log any unhandled exception and return a 500 with a reference id."""
    error_id = uuid.uuid4().hex
    logger.error(
        "Unhandled exception [%s] in %s %s: %s",
        error_id,
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
        extra={
            "error_id": error_id,
            "method": request.method,
            "path": request.url.path,
            "client": request.client.host if request.client else "unknown",
            "error_type": type(exc).__name__,
        },
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Internal server error",
            "error_id": error_id,
            "error_type": type(exc).__name__,
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register the exception handlers with the FastAPI application."""
    app.add_exception_handler(CrudError, crud_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)
