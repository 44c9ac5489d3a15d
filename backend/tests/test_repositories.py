import pytest

from crudapi import models, repositories


@pytest.fixture(params=["sql", "memory"])
def product_repo(request):
    if request.param == "sql":
        return repositories.ProductRepository(request.getfixturevalue("session"))
    return repositories.InMemoryRepository(models.Product)


def test_create_assigns_increasing_ids(product_repo):
    a = product_repo.create(models.Product(name='a', price=1))
    b = product_repo.create(models.Product(name='b', price=2))
    assert a.id is not None and b.id > a.id
    assert product_repo.count() == 2


def test_get_absent_returns_none(product_repo):
    assert product_repo.get(12345) is None


def test_list_is_ordered_and_paged(product_repo):
    for n in 'abcde':
        product_repo.create(models.Product(name=n, price=0))
    assert [p.name for p in product_repo.list()] == list('abcde')
    assert [p.name for p in product_repo.list(offset=1, limit=2)] == ['b', 'c']
    assert product_repo.list(offset=10) == []


def test_update_in_place(product_repo):
    p = product_repo.create(models.Product(name='a', price=1))
    updated = product_repo.update(p.id, {'price': 5.0, 'quantity': 2})
    assert updated.id == p.id
    assert product_repo.get(p.id).price == 5.0
    assert product_repo.get(p.id).quantity == 2
    assert product_repo.update(999, {'price': 1.0}) is None


def test_update_rejects_unknown_and_id_fields(product_repo):
    p = product_repo.create(models.Product(name='a', price=1))
    with pytest.raises(ValueError):
        product_repo.update(p.id, {'colour': 'red'})
    with pytest.raises(ValueError):
        product_repo.update(p.id, {'id': 77})


def test_delete_reports_absence(product_repo):
    p = product_repo.create(models.Product(name='a', price=1))
    assert product_repo.delete(p.id) is True
    assert product_repo.get(p.id) is None
    assert product_repo.delete(p.id) is False
    assert product_repo.count() == 0


def test_in_memory_ids_are_not_reused():
    repo = repositories.InMemoryRepository(models.Student)
    first = repo.create(models.Student(name='a', course='x'))
    repo.delete(first.id)
    second = repo.create(models.Student(name='b', course='x'))
    assert second.id == first.id + 1


def test_product_search_is_case_insensitive(session):
    repo = repositories.ProductRepository(session)
    for n in ('Desk Lamp', 'LAMP shade', 'Chair'):
        repo.create(models.Product(name=n, price=1))
    assert [p.name for p in repo.search_by_name('lamp')] == ['Desk Lamp', 'LAMP shade']
    assert repo.search_by_name('sofa') == []


def test_user_finders(session):
    repo = repositories.UserRepository(session)
    repo.create(models.User(username='ann', email='ann@x.io', password_hash='h'))
    assert repo.get_by_username('ann').email == 'ann@x.io'
    assert repo.get_by_email('ann@x.io').username == 'ann'
    assert repo.get_by_username('bob') is None


def test_lab_links(session):
    patients = repositories.PatientRepository(session)
    labs = repositories.LabRepository(session)
    p = patients.create(models.Patient(name='p', age=1))
    lab = labs.create(models.MedicalLab(name='Blood'))
    assert labs.add_patient(lab.id, p.id) is True
    assert labs.add_patient(lab.id, p.id) is False
    assert [x.name for x in labs.list_for_patient(p.id)] == ['Blood']
    labs.remove_links_for_patient(p.id)
    assert labs.list_for_patient(p.id) == []
    assert labs.remove_patient(lab.id, p.id) is False


def test_get_out_of_range_id_returns_none(product_repo):
    assert product_repo.get(2**70) is None
    assert product_repo.delete(2**70) is False


def test_repositories_expose_their_model(session):
    assert repositories.ProductRepository(session).model is models.Product
    assert repositories.InMemoryRepository(models.Bed).model is models.Bed
    assert repositories.SQLRepository(session, models.Doctor).model is models.Doctor
