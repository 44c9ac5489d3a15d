import pytest

from crudapi import models, repositories, services
from crudapi.errors import EntityNotFoundError, InvalidOperationError


def test_product_service_over_in_memory_backend():
    svc = services.ProductService(repo=repositories.InMemoryRepository(models.Product))
    p = svc.create({'name': 'Mug', 'price': 4.5})
    assert svc.get(p.id).name == 'Mug'
    assert svc.update(p.id, {'quantity': 10}).quantity == 10
    assert [x.id for x in svc.list()] == [p.id]
    svc.delete(p.id)
    with pytest.raises(EntityNotFoundError) as exc:
        svc.get(p.id)
    assert exc.value.status_code == 404
    assert str(exc.value) == f'Product {p.id} not found'


def test_crud_service_not_found_paths():
    svc = services.StudentService(repo=repositories.InMemoryRepository(models.Student))
    with pytest.raises(EntityNotFoundError):
        svc.update(1, {'name': 'x'})
    with pytest.raises(EntityNotFoundError):
        svc.delete(1)


def test_user_service_hashes_password(session):
    svc = services.UserService(session)
    u = svc.create({'username': 'kai', 'email': 'kai@x.io', 'password': 'secret1'})
    assert u.password_hash != 'secret1'
    assert services.PWD_CTX.verify('secret1', u.password_hash)
    assert services.AuthService(session).authenticate('kai', 'secret1')
    assert services.AuthService(session).authenticate('kai', 'wrong') is None


def test_assign_occupied_bed_raises(session):
    svc = services.PatientService(session)
    a = svc.create({'name': 'a', 'age': 1})
    b = svc.create({'name': 'b', 'age': 2})
    bed = svc.beds.create({'ward': 'W', 'number': 1})
    svc.assign_bed(a.id, bed.id)
    with pytest.raises(InvalidOperationError):
        svc.assign_bed(b.id, bed.id)
    # re-assigning the same patient is fine
    assert svc.assign_bed(a.id, bed.id).patient_id == a.id
    with pytest.raises(EntityNotFoundError):
        svc.assign_bed(a.id, 999)
