"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the CRUD backend. Controllers
are intentionally thin: they accept requests, delegate to services, and
return the resulting objects through response schemas. Errors raised by
services are translated by the handlers in `errors`.

Endpoints implemented:
- GET /health
- POST /api/auth/login
- GET, POST /api/products; GET, PUT, DELETE /api/products/{id}
- GET, POST /api/students; GET, PUT, DELETE /api/students/{id}
- GET, POST /api/users; GET /api/users/me; GET, PUT, DELETE /api/users/{id}
- GET, POST /api/doctors, /api/canteens, /api/labs, /api/beds, /api/patients
  and GET, PUT, DELETE on /{id} of each
- GET /api/doctors/{id}/patients
- GET /api/patients/{id}/detail
- PUT, DELETE /api/patients/{id}/doctor[/{doctor_id}]
- PUT, DELETE /api/patients/{id}/bed[/{bed_id}]
- PUT, DELETE /api/patients/{id}/labs/{lab_id}
"""

from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, Depends, HTTPException, Query, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from sqlmodel import Session
import json
import logging
import time
import uuid
from .database import get_session, init_schema, shutdown_schema
from . import services, models, schemas
from .auth import get_current_user
from .config import settings
from .errors import setup_exception_handlers

logger = logging.getLogger("crudapi.api")
if not logging.getLogger().handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Apply the configured schema mode on startup and shutdown."""
    init_schema(settings.SCHEMA_MODE)
    logger.info("crudapi started (schema mode %s)", settings.SCHEMA_MODE)
    yield
    shutdown_schema(settings.SCHEMA_MODE)
    logger.info("crudapi stopped")


app = FastAPI(title="Layered CRUD API", lifespan=lifespan)
setup_exception_handlers(app)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    context = {
        "request_id": req_id,
        "path": request.url.path,
        "method": request.method,
        "client": request.client.host if request.client else "unknown",
    }
    try:
        response = await call_next(request)
    except Exception:
        context["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception("request_failed %s", json.dumps(context, ensure_ascii=True))
        raise
    response.headers["X-Request-ID"] = req_id
    if request.url.path.startswith("/api"):
        context["status_code"] = response.status_code
        context["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
        logger.info("request_done %s", json.dumps(context, ensure_ascii=True))
    return response


def _changes(payload: BaseModel) -> dict:
    """Fields the client actually sent, minus explicit nulls."""
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise HTTPException(status_code=400, detail='no fields to update')
    return changes


class Page:
    """Common `offset`/`limit` query parameters for collection routes."""
    def __init__(self, offset: int = Query(0, ge=0, le=models.SQL_INT_MAX), limit: int = Query(100, ge=1, le=500)):
        self.offset = offset
        self.limit = limit


@app.get("/health")
def health():
    """Liveness check."""
    return {"status": "ok"}


# auth

@app.post('/api/auth/login', response_model=schemas.TokenOut)
def login(payload: schemas.LoginIn, db: Session = Depends(get_session)):
    """Authenticate a user and return a short-lived JWT token.

    The returned token contains `user_id` and `username` and is signed
    using the configured JWT secret.
    """
    token = services.AuthService(db).authenticate(payload.username, payload.password)
    if not token:
        raise HTTPException(status_code=401, detail='invalid credentials')
    return {'access_token': token, 'token_type': 'bearer'}


# products

@app.get('/api/products', response_model=List[schemas.ProductOut])
def list_products(name: Optional[str] = None, page: Page = Depends(), db: Session = Depends(get_session)):
    """List products, optionally filtered by a case-insensitive name fragment."""
    svc = services.ProductService(db)
    if name:
        return svc.search(name, offset=page.offset, limit=page.limit)
    return svc.list(offset=page.offset, limit=page.limit)


@app.post('/api/products', response_model=schemas.ProductOut, status_code=201)
def create_product(payload: schemas.ProductCreate, db: Session = Depends(get_session)):
    return services.ProductService(db).create(payload.model_dump())


@app.get('/api/products/{product_id}', response_model=schemas.ProductOut)
def get_product(product_id: int, db: Session = Depends(get_session)):
    return services.ProductService(db).get(product_id)


@app.put('/api/products/{product_id}', response_model=schemas.ProductOut)
def update_product(product_id: int, payload: schemas.ProductUpdate, db: Session = Depends(get_session)):
    """Update the fields present in the body; omitted fields are unchanged."""
    return services.ProductService(db).update(product_id, _changes(payload))


@app.delete('/api/products/{product_id}', status_code=204)
def delete_product(product_id: int, db: Session = Depends(get_session)):
    services.ProductService(db).delete(product_id)
    return Response(status_code=204)


# students

@app.get('/api/students', response_model=List[schemas.StudentOut])
def list_students(course: Optional[str] = None, page: Page = Depends(), db: Session = Depends(get_session)):
    """List students, optionally only those on `course`."""
    svc = services.StudentService(db)
    if course:
        return svc.list_by_course(course, offset=page.offset, limit=page.limit)
    return svc.list(offset=page.offset, limit=page.limit)


@app.post('/api/students', response_model=schemas.StudentOut, status_code=201)
def create_student(payload: schemas.StudentCreate, db: Session = Depends(get_session)):
    return services.StudentService(db).create(payload.model_dump())


@app.get('/api/students/{student_id}', response_model=schemas.StudentOut)
def get_student(student_id: int, db: Session = Depends(get_session)):
    return services.StudentService(db).get(student_id)


@app.put('/api/students/{student_id}', response_model=schemas.StudentOut)
def update_student(student_id: int, payload: schemas.StudentUpdate, db: Session = Depends(get_session)):
    return services.StudentService(db).update(student_id, _changes(payload))


@app.delete('/api/students/{student_id}', status_code=204)
def delete_student(student_id: int, db: Session = Depends(get_session)):
    services.StudentService(db).delete(student_id)
    return Response(status_code=204)


# users

@app.get('/api/users', response_model=List[schemas.UserOut])
def list_users(page: Page = Depends(), db: Session = Depends(get_session)):
    return services.UserService(db).list(offset=page.offset, limit=page.limit)


@app.post('/api/users', response_model=schemas.UserOut, status_code=201)
def register_user(payload: schemas.UserCreate, db: Session = Depends(get_session)):
    """Register a new user; 409 if the username or email is taken."""
    return services.UserService(db).create(payload.model_dump())


@app.get('/api/users/me', response_model=schemas.UserOut)
def current_user(user: models.User = Depends(get_current_user)):
    """Return the user identified by the bearer token."""
    return user


@app.get('/api/users/{user_id}', response_model=schemas.UserOut)
def get_user(user_id: int, db: Session = Depends(get_session)):
    return services.UserService(db).get(user_id)


@app.put('/api/users/{user_id}', response_model=schemas.UserOut)
def update_user(user_id: int, payload: schemas.UserUpdate, db: Session = Depends(get_session)):
    return services.UserService(db).update(user_id, _changes(payload))


@app.delete('/api/users/{user_id}', status_code=204)
def delete_user(user_id: int, db: Session = Depends(get_session)):
    services.UserService(db).delete(user_id)
    return Response(status_code=204)


# hospital: plain CRUD for every collection

def _register_crud(path: str, service_cls, create_schema, update_schema, out_schema, tag: str):
    """Mount list/create/get/update/delete routes for one hospital collection."""

    def list_items(page: Page = Depends(), db: Session = Depends(get_session)):
        return service_cls(db).list(offset=page.offset, limit=page.limit)

    def create_item(payload: create_schema, db: Session = Depends(get_session)):
        return service_cls(db).create(payload.model_dump())

    def get_item(item_id: int, db: Session = Depends(get_session)):
        return service_cls(db).get(item_id)

    def update_item(item_id: int, payload: update_schema, db: Session = Depends(get_session)):
        return service_cls(db).update(item_id, _changes(payload))

    def delete_item(item_id: int, db: Session = Depends(get_session)):
        service_cls(db).delete(item_id)
        return Response(status_code=204)

    app.add_api_route(path, list_items, methods=["GET"], response_model=List[out_schema],
                      name=f"list_{tag}", tags=[tag])
    app.add_api_route(path, create_item, methods=["POST"], response_model=out_schema, status_code=201,
                      name=f"create_{tag}", tags=[tag])
    app.add_api_route(f"{path}/{{item_id}}", get_item, methods=["GET"], response_model=out_schema,
                      name=f"get_{tag}", tags=[tag])
    app.add_api_route(f"{path}/{{item_id}}", update_item, methods=["PUT"], response_model=out_schema,
                      name=f"update_{tag}", tags=[tag])
    app.add_api_route(f"{path}/{{item_id}}", delete_item, methods=["DELETE"], status_code=204,
                      name=f"delete_{tag}", tags=[tag])


# hospital: associations

@app.get('/api/doctors/{doctor_id}/patients', response_model=List[schemas.PatientOut], tags=["doctors"])
def doctor_patients(doctor_id: int, db: Session = Depends(get_session)):
    return services.DoctorService(db).list_patients(doctor_id)


@app.get('/api/patients/{patient_id}/detail', response_model=schemas.PatientDetail, tags=["patients"])
def patient_detail(patient_id: int, db: Session = Depends(get_session)):
    """A patient with their doctor, canteen, bed and labs."""
    return services.PatientService(db).detail(patient_id)


@app.put('/api/patients/{patient_id}/doctor/{doctor_id}', response_model=schemas.PatientOut, tags=["patients"])
def assign_doctor(patient_id: int, doctor_id: int, db: Session = Depends(get_session)):
    return services.PatientService(db).assign_doctor(patient_id, doctor_id)


@app.delete('/api/patients/{patient_id}/doctor', response_model=schemas.PatientOut, tags=["patients"])
def unassign_doctor(patient_id: int, db: Session = Depends(get_session)):
    return services.PatientService(db).assign_doctor(patient_id, None)


@app.put('/api/patients/{patient_id}/bed/{bed_id}', response_model=schemas.BedOut, tags=["patients"])
def assign_bed(patient_id: int, bed_id: int, db: Session = Depends(get_session)):
    """Move the patient into `bed_id`; 409 if someone else occupies it."""
    return services.PatientService(db).assign_bed(patient_id, bed_id)


@app.delete('/api/patients/{patient_id}/bed', status_code=204, tags=["patients"])
def release_bed(patient_id: int, db: Session = Depends(get_session)):
    services.PatientService(db).release_bed(patient_id)
    return Response(status_code=204)


@app.put('/api/patients/{patient_id}/labs/{lab_id}', response_model=List[schemas.LabOut], tags=["patients"])
def enroll_lab(patient_id: int, lab_id: int, db: Session = Depends(get_session)):
    return services.PatientService(db).enroll_lab(patient_id, lab_id)


@app.delete('/api/patients/{patient_id}/labs/{lab_id}', response_model=List[schemas.LabOut], tags=["patients"])
def withdraw_lab(patient_id: int, lab_id: int, db: Session = Depends(get_session)):
    return services.PatientService(db).withdraw_lab(patient_id, lab_id)


_register_crud('/api/doctors', services.DoctorService,
               schemas.DoctorCreate, schemas.DoctorUpdate, schemas.DoctorOut, "doctors")
_register_crud('/api/canteens', services.CanteenService,
               schemas.CanteenCreate, schemas.CanteenUpdate, schemas.CanteenOut, "canteens")
_register_crud('/api/labs', services.LabService,
               schemas.LabCreate, schemas.LabUpdate, schemas.LabOut, "labs")
_register_crud('/api/beds', services.BedService,
               schemas.BedCreate, schemas.BedUpdate, schemas.BedOut, "beds")
_register_crud('/api/patients', services.PatientService,
               schemas.PatientCreate, schemas.PatientUpdate, schemas.PatientOut, "patients")
