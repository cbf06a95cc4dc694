from tests.test_utils_seed import make_group, make_member, make_seed_type


def test_group_price_crud_is_raden_only(client, headers):
    group, seed = make_group(), make_seed_type()
    payload = {'group_id': group.id, 'item_kind': 'seed', 'item_type_id': seed.id, 'price': 350}
    assert client.post('/prices/group', json=payload, headers=headers['Ultra']).status_code == 403
    assert client.get('/prices/group', headers=headers['Ultra']).status_code == 403

    resp = client.post('/prices/group', json=payload, headers=headers['Raden'])
    assert resp.status_code == 201, resp.get_json()
    price = resp.get_json()
    assert price['is_active'] is True and price['group_id'] == group.id
    assert client.post('/prices/group', json=payload, headers=headers['Raden']).status_code == 409

    listed = client.get(f'/prices/group?group_id={group.id}', headers=headers['Raden']).get_json()
    assert [p['id'] for p in listed['data']] == [price['id']]

    upd = client.put(f"/prices/group/{price['id']}", json={'price': 300, 'is_active': False}, headers=headers['Raden'])
    assert upd.get_json()['price'] == 300 and upd.get_json()['is_active'] is False
    assert client.put(f"/prices/group/{price['id']}", json={'price': 'cheap'}, headers=headers['Raden']).status_code == 400

    assert client.delete(f"/prices/group/{price['id']}", headers=headers['Raden']).get_json() == {'id': price['id'], 'deleted': True}
    assert client.get(f"/prices/group/{price['id']}", headers=headers['Raden']).status_code == 404
    assert client.get('/prices/wholesale', headers=headers['Raden']).status_code == 404


def test_internal_price_applies_to_new_records(client, headers):
    member, seed = make_member(), make_seed_type()
    resp = client.post('/prices/internal', json={'item_kind': 'seed', 'item_type_id': seed.id, 'price': 250, 'role': 'Ijo'}, headers=headers['Raden'])
    assert resp.status_code == 201
    assert resp.get_json()['role'] == 'Ijo'
    rec = client.post('/records/internal-sale', json={'owner_id': member.id, 'item_type_id': seed.id, 'quantity': 4}, headers=headers['Ijo'])
    assert rec.status_code == 201
    assert rec.get_json()['unit_price'] == 250
    assert rec.get_json()['total_price'] == 1000


def test_records_filter_by_owner(client, headers):
    a, b, seed = make_group(), make_group(), make_seed_type()
    for group in (a, b):
        client.post('/records/external-sale', json={'owner_id': group.id, 'item_type_id': seed.id, 'quantity': 1}, headers=headers['Ultra'])
    body = client.get(f'/records/external-sale?owner_id={a.id}', headers=headers['Abu']).get_json()
    assert {r['owner_id'] for r in body['data']} == {a.id}
    assert body['pagination']['total'] == 1
    assert client.get('/records/external-sale?owner_id=abc', headers=headers['Abu']).status_code == 400
