def _create(client, **overrides):
    body = {'name': 'Laptop', 'description': '14 inch', 'price': 999.5, 'quantity': 3}
    body.update(overrides)
    r = client.post('/api/products', json=body)
    assert r.status_code == 201, r.text
    return r.json()


def test_product_crud_flow(client):
    created = _create(client)
    assert created['id'] > 0
    assert created['name'] == 'Laptop'

    r = client.get(f"/api/products/{created['id']}")
    assert r.status_code == 200
    assert r.json() == created

    r = client.put(f"/api/products/{created['id']}", json={'price': 899.0})
    assert r.status_code == 200
    updated = r.json()
    assert updated['price'] == 899.0
    # omitted fields keep their values
    assert updated['name'] == 'Laptop'
    assert updated['quantity'] == 3

    r = client.delete(f"/api/products/{created['id']}")
    assert r.status_code == 204
    assert client.get(f"/api/products/{created['id']}").status_code == 404


def test_full_put_replaces_every_field(client):
    p = _create(client)
    body = {'name': 'Phone', 'description': 'android', 'price': 10.0, 'quantity': 0}
    r = client.put(f"/api/products/{p['id']}", json=body)
    assert r.status_code == 200
    assert r.json() == {'id': p['id'], **body}


def test_list_products_with_paging_and_name_filter(client):
    for name in ('Red Pen', 'Blue Pen', 'Notebook'):
        _create(client, name=name)
    r = client.get('/api/products')
    assert [p['name'] for p in r.json()] == ['Red Pen', 'Blue Pen', 'Notebook']

    r = client.get('/api/products', params={'offset': 1, 'limit': 1})
    assert [p['name'] for p in r.json()] == ['Blue Pen']

    r = client.get('/api/products', params={'name': 'pen'})
    assert sorted(p['name'] for p in r.json()) == ['Blue Pen', 'Red Pen']


def test_missing_product_is_404(client):
    r = client.get('/api/products/9999')
    assert r.status_code == 404
    assert r.json()['detail'] == 'Product 9999 not found'
    assert client.put('/api/products/9999', json={'name': 'x'}).status_code == 404
    assert client.delete('/api/products/9999').status_code == 404


def test_product_validation(client):
    assert client.post('/api/products', json={'name': '', 'price': 1}).status_code == 422
    assert client.post('/api/products', json={'name': 'x', 'price': -1}).status_code == 422
    assert client.post('/api/products', json={'price': 1}).status_code == 422
    p = _create(client)
    assert client.put(f"/api/products/{p['id']}", json={'quantity': -5}).status_code == 422
    assert client.put(f"/api/products/{p['id']}", json={}).status_code == 400
    assert client.get('/api/products', params={'limit': 0}).status_code == 422


def test_request_id_header_is_echoed(client):
    r = client.get('/api/products', headers={'X-Request-ID': 'abc123'})
    assert r.headers['X-Request-ID'] == 'abc123'
    assert client.get('/health').headers['X-Request-ID']


def test_out_of_range_ids_are_404(client):
    huge = 10**20
    assert client.get(f'/api/products/{huge}').status_code == 404
    assert client.put(f'/api/products/{huge}', json={'price': 1.0}).status_code == 404
    assert client.delete(f'/api/products/{huge}').status_code == 404
    assert client.get(f'/api/products/{-huge}').status_code == 404


def test_quantity_beyond_integer_column_is_422(client):
    r = client.post('/api/products', json={'name': 'Bolt', 'price': 0.1, 'quantity': 10**20})
    assert r.status_code == 422
    p = _create(client)
    assert client.put(f"/api/products/{p['id']}", json={'quantity': 10**20}).status_code == 422


def test_offset_beyond_integer_range_is_422(client):
    assert client.get('/api/products', params={'offset': 10**20}).status_code == 422
