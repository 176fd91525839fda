import datetime

from database.models import CropCycle, FieldActivity


def make_field(client, headers, name='Plot A'):
    resp = client.post('/api/fields', json={'field_name': name, 'area_hectares': 1.2}, headers=headers)
    return resp.get_json()['field']['id']


def start_cycle(client, headers, field_id, crop='Wheat', **extra):
    return client.post('/api/crop-cycles', json={'field_id': field_id, 'crop_name': crop, **extra}, headers=headers)


def test_new_cycle_starts_in_planning(client, farmer):
    _, headers = farmer
    field_id = make_field(client, headers)

    resp = start_cycle(client, headers, field_id, variety='HD-2967', planting_date='2026-11-05')
    assert resp.status_code == 201
    cycle = resp.get_json()['crop_cycle']
    assert cycle['status'] == 'planning'
    assert cycle['planting_date'] == '2026-11-05'
    assert cycle['field']['field_name'] == 'Plot A'


def test_second_active_cycle_rejected(app, client, farmer):
    _, headers = farmer
    field_id = make_field(client, headers)
    start_cycle(client, headers, field_id)

    resp = start_cycle(client, headers, field_id, crop='Maize')
    assert resp.status_code == 400
    assert resp.get_json()['error'] == "Field already has an active crop cycle"
    with app.app_context():
        assert CropCycle.query.count() == 1


def test_new_cycle_allowed_after_harvest(client, farmer):
    _, headers = farmer
    field_id = make_field(client, headers)
    first = start_cycle(client, headers, field_id).get_json()['crop_cycle']

    resp = client.put(f"/api/crop-cycles/{first['id']}",
                      json={'status': 'harvested', 'yield_quantity': '32.5', 'yield_unit': 'quintal',
                            'actual_harvest_date': '2027-03-30'},
                      headers=headers)
    assert resp.status_code == 200
    updated = resp.get_json()['crop_cycle']
    assert updated['yield_quantity'] == 32.5
    assert updated['actual_harvest_date'] == '2027-03-30'

    assert start_cycle(client, headers, field_id, crop='Soybean').status_code == 201


def test_reactivating_cycle_blocked_while_another_is_active(client, farmer):
    _, headers = farmer
    field_id = make_field(client, headers)
    first = start_cycle(client, headers, field_id).get_json()['crop_cycle']
    client.put(f"/api/crop-cycles/{first['id']}", json={'status': 'failed'}, headers=headers)
    start_cycle(client, headers, field_id, crop='Maize')

    resp = client.put(f"/api/crop-cycles/{first['id']}", json={'status': 'growing'}, headers=headers)
    assert resp.status_code == 400


def test_invalid_status_and_missing_fields(client, farmer):
    _, headers = farmer
    field_id = make_field(client, headers)
    cycle = start_cycle(client, headers, field_id).get_json()['crop_cycle']

    resp = client.put(f"/api/crop-cycles/{cycle['id']}", json={'status': 'sleeping'}, headers=headers)
    assert resp.status_code == 400
    assert 'Invalid status' in resp.get_json()['error']

    assert client.post('/api/crop-cycles', json={'field_id': field_id}, headers=headers).status_code == 400
    assert client.post('/api/crop-cycles', json={'crop_name': 'Rice'}, headers=headers).status_code == 400


def test_cycle_on_foreign_field_is_not_found(client, farmer, register):
    _, headers = farmer
    field_id = make_field(client, headers)
    _, other = register('other@example.com')

    resp = start_cycle(client, other, field_id)
    assert resp.status_code == 404


def test_list_filters_and_delete_cascades(app, client, farmer):
    _, headers = farmer
    field_a = make_field(client, headers, 'A')
    field_b = make_field(client, headers, 'B')
    cycle_a = start_cycle(client, headers, field_a).get_json()['crop_cycle']
    start_cycle(client, headers, field_b, crop='Rice')
    client.put(f"/api/crop-cycles/{cycle_a['id']}", json={'status': 'growing'}, headers=headers)
    client.post('/api/field-activities', json={'crop_cycle_id': cycle_a['id'], 'activity_type': 'irrigation'},
                headers=headers)

    by_field = client.get(f'/api/crop-cycles?field_id={field_a}', headers=headers).get_json()
    assert by_field['total'] == 1
    assert by_field['crop_cycles'][0]['field_activities'][0]['activity_type'] == 'irrigation'

    by_status = client.get('/api/crop-cycles?status=planning', headers=headers).get_json()
    assert [c['crop_name'] for c in by_status['crop_cycles']] == ['Rice']

    assert client.delete(f"/api/crop-cycles/{cycle_a['id']}", headers=headers).status_code == 200
    with app.app_context():
        assert FieldActivity.query.count() == 0
        assert CropCycle.query.count() == 1


def test_unauthenticated_cycle_requests(client):
    assert client.get('/api/crop-cycles').status_code == 401
    assert client.post('/api/crop-cycles', json={'field_id': 'x', 'crop_name': 'Rice'}).status_code == 401


def test_activities(client, farmer, register):
    _, headers = farmer
    field_id = make_field(client, headers)
    cycle = start_cycle(client, headers, field_id).get_json()['crop_cycle']

    resp = client.post('/api/field-activities',
                       json={'crop_cycle_id': cycle['id'], 'activity_type': 'fertilizer',
                             'materials_used': 'Urea 50kg', 'cost': '1200'},
                       headers=headers)
    assert resp.status_code == 201
    activity = resp.get_json()['activity']
    assert activity['cost'] == 1200.0
    assert activity['activity_date'] == datetime.date.today().isoformat()

    client.post('/api/field-activities',
                json={'crop_cycle_id': cycle['id'], 'activity_type': 'sowing', 'activity_date': '2020-01-01'},
                headers=headers)

    listing = client.get('/api/field-activities', headers=headers).get_json()
    assert [a['activity_type'] for a in listing['activities']] == ['fertilizer', 'sowing']
    assert listing['activities'][0]['crop_cycle']['field_name'] == 'Plot A'

    limited = client.get('/api/field-activities?limit=1&activity_type=sowing', headers=headers).get_json()
    assert limited['total'] == 1
    assert limited['activities'][0]['activity_type'] == 'sowing'

    bad_cost = client.post('/api/field-activities',
                           json={'crop_cycle_id': cycle['id'], 'activity_type': 'spray', 'cost': 'lots'},
                           headers=headers)
    assert bad_cost.status_code == 400

    _, other = register('other@example.com')
    foreign = client.post('/api/field-activities', json={'crop_cycle_id': cycle['id'], 'activity_type': 'spray'},
                          headers=other)
    assert foreign.status_code == 404


def test_non_string_names_are_rejected(app, client, farmer):
    _, headers = farmer
    field_id = make_field(client, headers)

    assert start_cycle(client, headers, field_id, crop=42).status_code == 400
    assert start_cycle(client, headers, field_id, crop=['Wheat']).status_code == 400
    with app.app_context():
        assert CropCycle.query.count() == 0

    cycle = start_cycle(client, headers, field_id).get_json()['crop_cycle']
    for bad in (7, '  ', None):
        resp = client.put(f"/api/crop-cycles/{cycle['id']}", json={'crop_name': bad}, headers=headers)
        assert resp.status_code == 400
    assert client.get('/api/crop-cycles', headers=headers).get_json()['crop_cycles'][0]['crop_name'] == 'Wheat'

    resp = client.post('/api/field-activities', json={'crop_cycle_id': cycle['id'], 'activity_type': {'a': 1}},
                       headers=headers)
    assert resp.status_code == 400
    with app.app_context():
        assert FieldActivity.query.count() == 0


def test_non_finite_activity_cost_is_rejected(app, client, farmer):
    _, headers = farmer
    cycle = start_cycle(client, headers, make_field(client, headers)).get_json()['crop_cycle']
    resp = client.post('/api/field-activities', json={'crop_cycle_id': cycle['id'], 'activity_type': 'spray',
                                                      'cost': 'nan'}, headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['error'] == "cost must be a number"
    with app.app_context():
        assert FieldActivity.query.count() == 0
