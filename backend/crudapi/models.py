"""SQLModel data models.

This module defines the application's database tables using SQLModel.
`Product`, `Student` and `User` are the plain CRUD subjects; the hospital
tables (`Doctor`, `Patient`, `Bed`, `Canteen`, `MedicalLab`) show each
kind of association: many-to-one, one-to-many, one-to-one and
many-to-many.
"""

from typing import Optional
from sqlmodel import SQLModel, Field, Relationship
from datetime import datetime, timezone
from typing import List

# largest value a 64-bit signed INTEGER column holds
SQL_INT_MAX = 2**63 - 1


class Product(SQLModel, table=True):
    """An item for sale."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str = Field(index=True)
    description: Optional[str] = None
    price: float = 0.0
    quantity: int = 0


class Student(SQLModel, table=True):
    """A student enrolled on a course."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    course: str = Field(index=True)
    email: Optional[str] = None


class User(SQLModel, table=True):
    """A registered user.

    Fields:
    - `username`: unique login name
    - `email`: unique contact address
    - `password_hash`: hashed password string (never store plaintext)
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    username: str = Field(index=True, nullable=False, unique=True)
    email: str = Field(index=True, nullable=False, unique=True)
    full_name: Optional[str] = None
    password_hash: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PatientLabLink(SQLModel, table=True):
    """Join table for the many-to-many `Patient` <-> `MedicalLab` association."""
    patient_id: Optional[int] = Field(default=None, foreign_key='patient.id', primary_key=True)
    lab_id: Optional[int] = Field(default=None, foreign_key='medicallab.id', primary_key=True)


class Doctor(SQLModel, table=True):
    """A doctor; one doctor treats many patients."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    specialization: Optional[str] = None
    patients: List['Patient'] = Relationship(back_populates='doctor')


class Canteen(SQLModel, table=True):
    """A canteen serving many patients."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    patients: List['Patient'] = Relationship(back_populates='canteen')


class MedicalLab(SQLModel, table=True):
    """A lab; many patients visit many labs."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    test_type: Optional[str] = None
    patients: List['Patient'] = Relationship(back_populates='labs', link_model=PatientLabLink)


class Patient(SQLModel, table=True):
    """A patient.

    `doctor_id` and `canteen_id` are the many-to-one sides; the bed is
    one-to-one and owned by `Bed.patient_id`.
    """
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    age: int = 0
    disease: Optional[str] = None
    doctor_id: Optional[int] = Field(default=None, foreign_key='doctor.id', index=True)
    canteen_id: Optional[int] = Field(default=None, foreign_key='canteen.id', index=True)
    doctor: Optional[Doctor] = Relationship(back_populates='patients')
    canteen: Optional[Canteen] = Relationship(back_populates='patients')
    bed: Optional['Bed'] = Relationship(back_populates='patient', sa_relationship_kwargs={'uselist': False})
    labs: List[MedicalLab] = Relationship(back_populates='patients', link_model=PatientLabLink)


class Bed(SQLModel, table=True):
    """A hospital bed holding at most one patient."""
    id: Optional[int] = Field(default=None, primary_key=True)
    ward: str
    number: int
    patient_id: Optional[int] = Field(default=None, foreign_key='patient.id', unique=True)
    patient: Optional[Patient] = Relationship(back_populates='bed')
