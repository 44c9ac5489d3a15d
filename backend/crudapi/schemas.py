"""Pydantic request/response schemas used by the API.

Schemas keep API input/output shapes stable and provide validation for
controller handlers and tests. `*Create` bodies carry every required
field, `*Update` bodies make every field optional so a PUT may send a
subset, and `*Out` bodies are read from ORM objects.
"""

from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from .models import SQL_INT_MAX

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class OrmOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# products

class ProductCreate(BaseModel):
    """Payload for creating a product."""
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    price: float = Field(ge=0)
    quantity: int = Field(default=0, ge=0, le=SQL_INT_MAX)


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    quantity: Optional[int] = Field(default=None, ge=0, le=SQL_INT_MAX)


class ProductOut(OrmOut):
    id: int
    name: str
    description: Optional[str] = None
    price: float
    quantity: int


# students

class StudentCreate(BaseModel):
    """Payload for creating a student."""
    name: str = Field(min_length=1, max_length=200)
    course: str = Field(min_length=1, max_length=200)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)


class StudentUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    course: Optional[str] = Field(default=None, min_length=1, max_length=200)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)


class StudentOut(OrmOut):
    id: int
    name: str
    course: str
    email: Optional[str] = None


# users and auth

class UserCreate(BaseModel):
    """Payload for user registration."""
    username: str = Field(min_length=3, max_length=50)
    email: str = Field(pattern=EMAIL_PATTERN)
    password: str = Field(min_length=6)
    full_name: Optional[str] = None


class UserUpdate(BaseModel):
    """Editable user fields; a new `password` is re-hashed."""
    username: Optional[str] = Field(default=None, min_length=3, max_length=50)
    email: Optional[str] = Field(default=None, pattern=EMAIL_PATTERN)
    password: Optional[str] = Field(default=None, min_length=6)
    full_name: Optional[str] = None


class UserOut(OrmOut):
    """Public view of a user; the password hash is never serialized."""
    id: int
    username: str
    email: str
    full_name: Optional[str] = None
    created_at: datetime


class LoginIn(BaseModel):
    username: str
    password: str


class TokenOut(BaseModel):
    """Authentication response containing an access token."""
    access_token: str
    token_type: str = "bearer"


# hospital

class DoctorCreate(BaseModel):
    name: str = Field(min_length=1)
    specialization: Optional[str] = None


class DoctorUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    specialization: Optional[str] = None


class DoctorOut(OrmOut):
    id: int
    name: str
    specialization: Optional[str] = None


class CanteenCreate(BaseModel):
    name: str = Field(min_length=1)


class CanteenUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)


class CanteenOut(OrmOut):
    id: int
    name: str


class LabCreate(BaseModel):
    name: str = Field(min_length=1)
    test_type: Optional[str] = None


class LabUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    test_type: Optional[str] = None


class LabOut(OrmOut):
    id: int
    name: str
    test_type: Optional[str] = None


class BedCreate(BaseModel):
    ward: str = Field(min_length=1)
    number: int = Field(ge=1, le=SQL_INT_MAX)


class BedUpdate(BaseModel):
    ward: Optional[str] = Field(default=None, min_length=1)
    number: Optional[int] = Field(default=None, ge=1, le=SQL_INT_MAX)


class BedOut(OrmOut):
    id: int
    ward: str
    number: int
    patient_id: Optional[int] = None


class PatientCreate(BaseModel):
    """Payload for admitting a patient; doctor and canteen are optional."""
    name: str = Field(min_length=1)
    age: int = Field(ge=0, le=150)
    disease: Optional[str] = None
    doctor_id: Optional[int] = Field(default=None, ge=1, le=SQL_INT_MAX)
    canteen_id: Optional[int] = Field(default=None, ge=1, le=SQL_INT_MAX)


class PatientUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    age: Optional[int] = Field(default=None, ge=0, le=150)
    disease: Optional[str] = None
    doctor_id: Optional[int] = Field(default=None, ge=1, le=SQL_INT_MAX)
    canteen_id: Optional[int] = Field(default=None, ge=1, le=SQL_INT_MAX)


class PatientOut(OrmOut):
    id: int
    name: str
    age: int
    disease: Optional[str] = None
    doctor_id: Optional[int] = None
    canteen_id: Optional[int] = None


class PatientDetail(PatientOut):
    """A patient together with every associated record."""
    doctor: Optional[DoctorOut] = None
    canteen: Optional[CanteenOut] = None
    bed: Optional[BedOut] = None
    labs: List[LabOut] = []
