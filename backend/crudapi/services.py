"""Business logic services used by HTTP controllers.

This module holds small service classes that sit between the
controllers and the repositories. Services are intentionally thin: they
turn "absent" repository results into `EntityNotFoundError`, enforce
uniqueness and association rules, and otherwise delegate straight to a
repository.
"""

from datetime import datetime, timedelta, timezone
import logging
from passlib.context import CryptContext
import jwt
from typing import Any, Dict, List, Optional
from . import models, repositories
from sqlmodel import Session
from .config import settings
from .errors import DuplicateEntityError, EntityNotFoundError, InvalidOperationError

PWD_CTX = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
logger = logging.getLogger("crudapi.services")


class CrudService:
    """Create/get/list/update/delete delegation shared by every aggregate.

    `get`, `update` and `delete` raise `EntityNotFoundError` for an
    unknown id; `create` builds the model from a plain dict of fields.
    """
    entity_name = "Entity"

    def __init__(self, repo: repositories.Repository, entity_name: Optional[str] = None):
        self.repo = repo
        if entity_name is not None:
            self.entity_name = entity_name

    def create(self, data: Dict[str, Any]):
        entity = self.repo.create(self.repo.model(**data))
        logger.info("created %s id=%s", self.entity_name, entity.id)
        return entity

    def get(self, entity_id: int):
        entity = self.repo.get(entity_id)
        if entity is None:
            raise EntityNotFoundError(self.entity_name, entity_id)
        return entity

    def list(self, offset: int = 0, limit: int = 100):
        return self.repo.list(offset=offset, limit=limit)

    def update(self, entity_id: int, changes: Dict[str, Any]):
        entity = self.repo.update(entity_id, changes)
        if entity is None:
            raise EntityNotFoundError(self.entity_name, entity_id)
        return entity

    def delete(self, entity_id: int) -> None:
        if not self.repo.delete(entity_id):
            raise EntityNotFoundError(self.entity_name, entity_id)
        logger.info("deleted %s id=%s", self.entity_name, entity_id)


class ProductService(CrudService):
    """Product catalogue operations."""
    entity_name = "Product"

    def __init__(self, session: Optional[Session] = None, repo: Optional[repositories.Repository] = None):
        super().__init__(repo or repositories.ProductRepository(session))

    def search(self, name: str, offset: int = 0, limit: int = 100) -> List[models.Product]:
        """Products whose name contains `name` (case-insensitive)."""
        return self.repo.search_by_name(name, offset=offset, limit=limit)


class StudentService(CrudService):
    entity_name = "Student"

    def __init__(self, session: Optional[Session] = None, repo: Optional[repositories.Repository] = None):
        super().__init__(repo or repositories.StudentRepository(session))

    def list_by_course(self, course: str, offset: int = 0, limit: int = 100) -> List[models.Student]:
        return self.repo.list_by_course(course, offset=offset, limit=limit)


class UserService(CrudService):
    """User registration and maintenance.

    Passwords arrive in plaintext under `password` and are stored only as
    a passlib hash. Usernames and emails are unique.
    """
    entity_name = "User"

    def __init__(self, session: Session):
        super().__init__(repositories.UserRepository(session))

    def _check_unique(self, username: Optional[str], email: Optional[str], exclude_id: Optional[int] = None):
        if username is not None:
            existing = self.repo.get_by_username(username)
            if existing and existing.id != exclude_id:
                raise DuplicateEntityError(self.entity_name, "username", username)
        if email is not None:
            existing = self.repo.get_by_email(email)
            if existing and existing.id != exclude_id:
                raise DuplicateEntityError(self.entity_name, "email", email)

    def create(self, data: Dict[str, Any]) -> models.User:
        """Create a new user with a hashed password."""
        data = dict(data)
        self._check_unique(data.get("username"), data.get("email"))
        data["password_hash"] = PWD_CTX.hash(data.pop("password"))
        return super().create(data)

    def update(self, entity_id: int, changes: Dict[str, Any]) -> models.User:
        changes = dict(changes)
        self.get(entity_id)
        self._check_unique(changes.get("username"), changes.get("email"), exclude_id=entity_id)
        if "password" in changes:
            changes["password_hash"] = PWD_CTX.hash(changes.pop("password"))
        return super().update(entity_id, changes)


class AuthService:
    """Authentication related operations."""
    def __init__(self, session: Session):
        self.session = session
        self.user_repo = repositories.UserRepository(session)

    def authenticate(self, username: str, password: str) -> Optional[str]:
        """Verify credentials and return a signed JWT token on success.

        Returns `None` if authentication fails.
        """
        user = self.user_repo.get_by_username(username)
        if not user or not PWD_CTX.verify(password, user.password_hash):
            logger.warning("failed login for username=%s", username)
            return None
        expire = datetime.now(timezone.utc) + timedelta(hours=settings.JWT_EXPIRE_HOURS)
        payload = {"user_id": user.id, "username": user.username, "exp": int(expire.timestamp())}
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


class DoctorService(CrudService):
    entity_name = "Doctor"

    def __init__(self, session: Session):
        super().__init__(repositories.DoctorRepository(session))
        self.patients = repositories.PatientRepository(session)

    def list_patients(self, doctor_id: int) -> List[models.Patient]:
        self.get(doctor_id)
        return self.patients.list_by_doctor(doctor_id)

    def delete(self, entity_id: int) -> None:
        """Delete a doctor; their patients stay, with no doctor assigned."""
        self.get(entity_id)
        self.patients.detach_doctor(entity_id)
        super().delete(entity_id)


class CanteenService(CrudService):
    entity_name = "Canteen"

    def __init__(self, session: Session):
        super().__init__(repositories.CanteenRepository(session))
        self.patients = repositories.PatientRepository(session)

    def delete(self, entity_id: int) -> None:
        self.get(entity_id)
        self.patients.detach_canteen(entity_id)
        super().delete(entity_id)


class LabService(CrudService):
    entity_name = "MedicalLab"

    def __init__(self, session: Session):
        super().__init__(repositories.LabRepository(session))

    def delete(self, entity_id: int) -> None:
        self.get(entity_id)
        self.repo.remove_links_for_lab(entity_id)
        super().delete(entity_id)


class BedService(CrudService):
    entity_name = "Bed"

    def __init__(self, session: Session):
        super().__init__(repositories.BedRepository(session))


class PatientService(CrudService):
    """Patients and their associations.

    A patient references at most one doctor and one canteen, occupies at
    most one bed (and a bed holds at most one patient), and may be
    enrolled in any number of labs.
    """
    entity_name = "Patient"

    def __init__(self, session: Session):
        super().__init__(repositories.PatientRepository(session))
        self.doctors = DoctorService(session)
        self.canteens = CanteenService(session)
        self.beds = BedService(session)
        self.labs = LabService(session)

    def _check_refs(self, data: Dict[str, Any]) -> None:
        if data.get("doctor_id") is not None:
            self.doctors.get(data["doctor_id"])
        if data.get("canteen_id") is not None:
            self.canteens.get(data["canteen_id"])

    def create(self, data: Dict[str, Any]) -> models.Patient:
        self._check_refs(data)
        return super().create(data)

    def update(self, entity_id: int, changes: Dict[str, Any]) -> models.Patient:
        self.get(entity_id)
        self._check_refs(changes)
        return super().update(entity_id, changes)

    def delete(self, entity_id: int) -> None:
        """Delete a patient, freeing their bed and lab enrollments."""
        self.release_bed(entity_id)
        self.labs.repo.remove_links_for_patient(entity_id)
        super().delete(entity_id)

    def assign_doctor(self, patient_id: int, doctor_id: Optional[int]) -> models.Patient:
        return self.update(patient_id, {"doctor_id": doctor_id})

    def assign_bed(self, patient_id: int, bed_id: int) -> models.Bed:
        """Put a patient in a bed, moving them out of any bed they held.

        Raises `InvalidOperationError` if another patient occupies the bed.
        """
        self.get(patient_id)
        bed = self.beds.get(bed_id)
        if bed.patient_id is not None and bed.patient_id != patient_id:
            raise InvalidOperationError(f"Bed {bed_id} is occupied by patient {bed.patient_id}")
        current = self.beds.repo.get_by_patient(patient_id)
        if current is not None and current.id != bed.id:
            self.beds.repo.set_patient(current, None)
        return self.beds.repo.set_patient(bed, patient_id)

    def release_bed(self, patient_id: int) -> Optional[models.Bed]:
        """Free the patient's bed, if any, and return it."""
        self.get(patient_id)
        bed = self.beds.repo.get_by_patient(patient_id)
        if bed is None:
            return None
        return self.beds.repo.set_patient(bed, None)

    def enroll_lab(self, patient_id: int, lab_id: int) -> List[models.MedicalLab]:
        """Link the patient to a lab (no-op if already linked); return their labs."""
        self.get(patient_id)
        self.labs.get(lab_id)
        self.labs.repo.add_patient(lab_id, patient_id)
        return self.labs.repo.list_for_patient(patient_id)

    def withdraw_lab(self, patient_id: int, lab_id: int) -> List[models.MedicalLab]:
        self.get(patient_id)
        self.labs.get(lab_id)
        if not self.labs.repo.remove_patient(lab_id, patient_id):
            raise EntityNotFoundError("Enrollment", f"patient={patient_id} lab={lab_id}")
        return self.labs.repo.list_for_patient(patient_id)

    def detail(self, patient_id: int) -> Dict[str, Any]:
        """Return the patient's fields plus doctor, canteen, bed and labs."""
        p = self.get(patient_id)
        return {
            **p.model_dump(),
            "doctor": self.doctors.repo.get(p.doctor_id) if p.doctor_id is not None else None,
            "canteen": self.canteens.repo.get(p.canteen_id) if p.canteen_id is not None else None,
            "bed": self.beds.repo.get_by_patient(p.id),
            "labs": self.labs.repo.list_for_patient(p.id),
        }
