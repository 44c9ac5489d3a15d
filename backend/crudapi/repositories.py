"""Repository classes encapsulating database operations.

`Repository` is the narrow capability every persistence backend offers:
create, get, list, update and delete by identifier. `SQLRepository`
implements it over a SQLModel session and `InMemoryRepository` over a
plain dict, so services can run against either. The per-entity
repositories below add the finder queries each aggregate needs.
Repositories return SQLModel objects and perform commits/refreshes
where appropriate.
"""

import threading
from typing import Any, Dict, Generic, List, Optional, Protocol, Type, TypeVar

from sqlalchemy import func
from sqlmodel import SQLModel, Session, select
from . import models

ModelT = TypeVar("ModelT", bound=SQLModel)


class Repository(Protocol[ModelT]):
    """Create/read/update/delete by identifier.

    Lookups of an unknown id return `None` (or `False` for `delete`);
    raising not-found errors is the service layer's job.
    """
    model: Type[ModelT]

    def create(self, entity: ModelT) -> ModelT:
        """Persist `entity`, assign its identifier and return it."""
        ...

    def get(self, entity_id: int) -> Optional[ModelT]:
        ...

    def list(self, offset: int = 0, limit: int = 100) -> List[ModelT]:
        """Return a page of entities ordered by identifier."""
        ...

    def update(self, entity_id: int, changes: Dict[str, Any]) -> Optional[ModelT]:
        """Apply `changes` to the stored entity in place and return it."""
        ...

    def delete(self, entity_id: int) -> bool:
        """Remove the entity; return False if it did not exist."""
        ...

    def count(self) -> int:
        ...


def _storable_id(entity_id: int) -> bool:
    return -models.SQL_INT_MAX <= entity_id <= models.SQL_INT_MAX


def _apply_changes(entity: SQLModel, changes: Dict[str, Any]) -> None:
    fields = type(entity).model_fields
    for key, value in changes.items():
        if key == "id" or key not in fields:
            raise ValueError(f"cannot update field {key!r} on {type(entity).__name__}")
        setattr(entity, key, value)


class SQLRepository(Generic[ModelT]):
    """`Repository` backed by a SQLModel `Session`."""
    model: Type[ModelT]

    def __init__(self, session: Session, model: Optional[Type[ModelT]] = None):
        self.session = session
        if model is not None:
            self.model = model

    def create(self, entity: ModelT) -> ModelT:
        self.session.add(entity)
        self.session.commit()
        self.session.refresh(entity)
        return entity

    def get(self, entity_id: int) -> Optional[ModelT]:
        if not _storable_id(entity_id):
            return None
        return self.session.get(self.model, entity_id)

    def list(self, offset: int = 0, limit: int = 100) -> List[ModelT]:
        stmt = select(self.model).order_by(self.model.id).offset(offset).limit(limit)
        return self.session.exec(stmt).all()

    def update(self, entity_id: int, changes: Dict[str, Any]) -> Optional[ModelT]:
        entity = self.get(entity_id)
        if entity is None:
            return None
        _apply_changes(entity, changes)
        self.session.add(entity)
        self.session.commit()
        self.session.refresh(entity)
        return entity

    def delete(self, entity_id: int) -> bool:
        entity = self.get(entity_id)
        if entity is None:
            return False
        self.session.delete(entity)
        self.session.commit()
        return True

    def count(self) -> int:
        return self.session.exec(select(func.count()).select_from(self.model)).one()


class InMemoryRepository(Generic[ModelT]):
    """`Repository` backed by a dict; identifiers are never reused."""

    def __init__(self, model: Type[ModelT]):
        self.model = model
        self._rows: Dict[int, ModelT] = {}
        self._next_id = 1
        self._lock = threading.Lock()

    def create(self, entity: ModelT) -> ModelT:
        with self._lock:
            entity.id = self._next_id
            self._next_id += 1
            self._rows[entity.id] = entity
        return entity

    def get(self, entity_id: int) -> Optional[ModelT]:
        return self._rows.get(entity_id)

    def list(self, offset: int = 0, limit: int = 100) -> List[ModelT]:
        return [self._rows[k] for k in sorted(self._rows)][offset:offset + limit]

    def update(self, entity_id: int, changes: Dict[str, Any]) -> Optional[ModelT]:
        with self._lock:
            entity = self._rows.get(entity_id)
            if entity is None:
                return None
            _apply_changes(entity, changes)
        return entity

    def delete(self, entity_id: int) -> bool:
        with self._lock:
            return self._rows.pop(entity_id, None) is not None

    def count(self) -> int:
        return len(self._rows)


class ProductRepository(SQLRepository[models.Product]):
    """CRUD operations for `Product` objects."""
    model = models.Product

    def search_by_name(self, fragment: str, offset: int = 0, limit: int = 100) -> List[models.Product]:
        """Return products whose name contains `fragment`, ignoring case."""
        stmt = (
            select(models.Product)
            .where(func.lower(models.Product.name).contains(fragment.lower()))
            .order_by(models.Product.id)
            .offset(offset)
            .limit(limit)
        )
        return self.session.exec(stmt).all()


class StudentRepository(SQLRepository[models.Student]):
    """CRUD operations for `Student` objects."""
    model = models.Student

    def list_by_course(self, course: str, offset: int = 0, limit: int = 100) -> List[models.Student]:
        """Return all students on `course`."""
        stmt = (
            select(models.Student)
            .where(models.Student.course == course)
            .order_by(models.Student.id)
            .offset(offset)
            .limit(limit)
        )
        return self.session.exec(stmt).all()


class UserRepository(SQLRepository[models.User]):
    """CRUD operations for `User` objects."""
    model = models.User

    def get_by_username(self, username: str) -> Optional[models.User]:
        """Return a `User` by username or `None` if not found."""
        stmt = select(models.User).where(models.User.username == username)
        return self.session.exec(stmt).first()

    def get_by_email(self, email: str) -> Optional[models.User]:
        stmt = select(models.User).where(models.User.email == email)
        return self.session.exec(stmt).first()


class DoctorRepository(SQLRepository[models.Doctor]):
    model = models.Doctor


class CanteenRepository(SQLRepository[models.Canteen]):
    model = models.Canteen


class PatientRepository(SQLRepository[models.Patient]):
    """CRUD plus association queries for `Patient`."""
    model = models.Patient

    def list_by_doctor(self, doctor_id: int) -> List[models.Patient]:
        stmt = select(models.Patient).where(models.Patient.doctor_id == doctor_id).order_by(models.Patient.id)
        return self.session.exec(stmt).all()

    def list_by_canteen(self, canteen_id: int) -> List[models.Patient]:
        stmt = select(models.Patient).where(models.Patient.canteen_id == canteen_id).order_by(models.Patient.id)
        return self.session.exec(stmt).all()

    def detach_doctor(self, doctor_id: int) -> int:
        """Clear `doctor_id` on every patient of `doctor_id`; return how many."""
        patients = self.list_by_doctor(doctor_id)
        for p in patients:
            p.doctor_id = None
            self.session.add(p)
        self.session.commit()
        return len(patients)

    def detach_canteen(self, canteen_id: int) -> int:
        patients = self.list_by_canteen(canteen_id)
        for p in patients:
            p.canteen_id = None
            self.session.add(p)
        self.session.commit()
        return len(patients)


class BedRepository(SQLRepository[models.Bed]):
    """CRUD for `Bed`; a bed's `patient_id` is the one-to-one link."""
    model = models.Bed

    def get_by_patient(self, patient_id: int) -> Optional[models.Bed]:
        stmt = select(models.Bed).where(models.Bed.patient_id == patient_id)
        return self.session.exec(stmt).first()

    def set_patient(self, bed: models.Bed, patient_id: Optional[int]) -> models.Bed:
        bed.patient_id = patient_id
        self.session.add(bed)
        self.session.commit()
        self.session.refresh(bed)
        return bed


class LabRepository(SQLRepository[models.MedicalLab]):
    """CRUD for `MedicalLab` plus helpers for the patient link table."""
    model = models.MedicalLab

    def _link(self, lab_id: int, patient_id: int) -> Optional[models.PatientLabLink]:
        if not (_storable_id(lab_id) and _storable_id(patient_id)):
            return None
        return self.session.get(models.PatientLabLink, (patient_id, lab_id))

    def add_patient(self, lab_id: int, patient_id: int) -> bool:
        """Link a patient to a lab; return False if already linked."""
        if self._link(lab_id, patient_id) is not None:
            return False
        self.session.add(models.PatientLabLink(patient_id=patient_id, lab_id=lab_id))
        self.session.commit()
        return True

    def remove_patient(self, lab_id: int, patient_id: int) -> bool:
        link = self._link(lab_id, patient_id)
        if link is None:
            return False
        self.session.delete(link)
        self.session.commit()
        return True

    def list_for_patient(self, patient_id: int) -> List[models.MedicalLab]:
        stmt = (
            select(models.MedicalLab)
            .join(models.PatientLabLink, models.PatientLabLink.lab_id == models.MedicalLab.id)
            .where(models.PatientLabLink.patient_id == patient_id)
            .order_by(models.MedicalLab.id)
        )
        return self.session.exec(stmt).all()

    def remove_links_for_patient(self, patient_id: int) -> None:
        stmt = select(models.PatientLabLink).where(models.PatientLabLink.patient_id == patient_id)
        for link in self.session.exec(stmt).all():
            self.session.delete(link)
        self.session.commit()

    def remove_links_for_lab(self, lab_id: int) -> None:
        stmt = select(models.PatientLabLink).where(models.PatientLabLink.lab_id == lab_id)
        for link in self.session.exec(stmt).all():
            self.session.delete(link)
        self.session.commit()
