def test_profile_requires_session(client):
    assert client.get('/api/profile').status_code == 401
    assert client.post('/api/profile', json={'full_name': 'X'}).status_code == 401


def test_profile_is_null_until_saved(client, farmer):
    _, headers = farmer
    resp = client.get('/api/profile', headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()['profile'] is None


def test_upsert_accepts_form_aliases(client, farmer):
    user_id, headers = farmer
    resp = client.post('/api/profile', headers=headers, json={
        'full_name': 'Sunita Patil',
        'contact_number': '9876543210',
        'state': 'Maharashtra',
        'district': 'Pune',
        'land_area': '3.5',
        'irrigation': 'drip',
        'language': 'mr',
    })
    assert resp.status_code == 200
    profile = resp.get_json()['profile']
    assert profile['user_id'] == user_id
    assert profile['phone'] == '9876543210'
    assert profile['farm_size_hectares'] == 3.5
    assert profile['irrigation_method'] == 'drip'

    again = client.post('/api/profile', headers=headers, json={'primary_crop': 'Sugarcane'})
    assert again.get_json()['profile']['id'] == profile['id']
    assert again.get_json()['profile']['full_name'] == 'Sunita Patil'
    assert again.get_json()['profile']['primary_crop'] == 'Sugarcane'


def test_bad_land_area(client, farmer):
    _, headers = farmer
    resp = client.post('/api/profile', headers=headers, json={'farm_size': 'a lot'})
    assert resp.status_code == 400
