import pytest

from database.db import db
from database.models import User, Scheme, Crop, DiseaseReport, MarketPrice


def test_requires_session(client):
    assert client.get('/api/admin/verify').status_code == 401
    assert client.post('/api/admin/schemes', json={'name': 'X'}).status_code == 401


def test_non_admin_is_forbidden_and_nothing_changes(app, client, farmer):
    _, headers = farmer
    assert client.get('/api/admin/verify', headers=headers).status_code == 403

    resp = client.post('/api/admin/schemes', json={'name': 'Sneaky'}, headers=headers)
    assert resp.status_code == 403
    assert resp.get_json()['error'] == "Forbidden - Admin access required"
    assert client.post('/api/admin/crops', json={'common_name': 'Rice'}, headers=headers).status_code == 403
    with app.app_context():
        assert Scheme.query.count() == 0
        assert Crop.query.count() == 0


def test_admin_by_allow_list(client, admin):
    _, headers = admin
    body = client.get('/api/admin/verify', headers=headers).get_json()
    assert body['isAdmin'] is True
    assert body['user']['email'] == 'admin@example.com'


def test_admin_by_database_flag(app, client, farmer):
    user_id, headers = farmer
    with app.app_context():
        db.session.get(User, user_id).is_admin = True
        db.session.commit()
    assert client.get('/api/admin/verify', headers=headers).status_code == 200


def test_stats(app, client, admin):
    _, headers = admin
    with app.app_context():
        db.session.add(DiseaseReport(disease_name='Leaf Blight', confidence=0.8, source='sample'))
        db.session.commit()
    client.post('/api/admin/farmers', json={'full_name': 'Ramesh'}, headers=headers)

    stats = client.get('/api/admin/stats', headers=headers).get_json()['stats']
    assert stats == {
        'totalFarmers': 1, 'totalCrops': 0, 'diseaseReports': 1,
        'soilAnalyses': 0, 'marketPrices': 0, 'schemes': 0,
    }


def test_farmers(client, admin):
    _, headers = admin
    assert client.post('/api/admin/farmers', json={'state': 'Bihar'}, headers=headers).status_code == 400
    assert client.post('/api/admin/farmers', json={'full_name': 'A', 'farm_size': 'big'},
                       headers=headers).status_code == 400

    resp = client.post('/api/admin/farmers', headers=headers,
                       json={'full_name': 'Ramesh Kumar', 'phone': '9000000001', 'farm_size': 2})
    assert resp.status_code == 201
    assert resp.get_json()['farmer']['farm_size_hectares'] == 2.0

    farmers = client.get('/api/admin/farmers', headers=headers).get_json()['farmers']
    assert [f['full_name'] for f in farmers] == ['Ramesh Kumar']


def test_disease_reports_newest_first(app, client, admin):
    _, headers = admin
    import datetime
    with app.app_context():
        db.session.add_all([
            DiseaseReport(disease_name='Old', reported_date=datetime.datetime(2026, 1, 1)),
            DiseaseReport(disease_name='New', reported_date=datetime.datetime(2026, 9, 1)),
        ])
        db.session.commit()
    reports = client.get('/api/admin/disease-reports', headers=headers).get_json()['reports']
    assert [r['disease_name'] for r in reports] == ['New', 'Old']


def test_scheme_crud(client, admin):
    _, headers = admin
    assert client.post('/api/admin/schemes', json={'category': 'x'}, headers=headers).status_code == 400

    scheme = client.post('/api/admin/schemes', headers=headers,
                         json={'name': 'PMFBY', 'category': 'insurance'}).get_json()['scheme']
    assert scheme['state'] == 'All India'
    assert scheme['is_active'] is True

    updated = client.put(f"/api/admin/schemes/{scheme['id']}", json={'is_active': False}, headers=headers)
    assert updated.get_json()['scheme']['is_active'] is False
    assert client.get('/api/schemes').get_json()['total'] == 0
    assert len(client.get('/api/admin/schemes', headers=headers).get_json()['schemes']) == 1

    assert client.put(f"/api/admin/schemes/{scheme['id']}", json={'name': ''}, headers=headers).status_code == 400
    assert client.delete(f"/api/admin/schemes/{scheme['id']}", headers=headers).status_code == 200
    assert client.delete(f"/api/admin/schemes/{scheme['id']}", headers=headers).status_code == 404


def test_crop_crud(client, admin):
    _, headers = admin
    crop = client.post('/api/admin/crops', headers=headers,
                       json={'common_name': 'Ragi', 'diseases': ['Blast']}).get_json()['crop']
    assert client.get('/api/encyclopedia?crop=Ragi').get_json()['crops'][0]['diseases'] == ['Blast']

    resp = client.put(f"/api/admin/crops/{crop['id']}", json={'local_name': 'Nachni'}, headers=headers)
    assert resp.get_json()['crop']['local_name'] == 'Nachni'
    assert client.put('/api/admin/crops/missing', json={}, headers=headers).status_code == 404

    assert client.delete(f"/api/admin/crops/{crop['id']}", headers=headers).status_code == 200
    assert client.get('/api/encyclopedia').get_json()['total'] == 0


@pytest.mark.parametrize('payload', [
    {'market': 'Pune', 'modal_price': 100},
    {'commodity': 'Onion', 'modal_price': 100},
    {'commodity': 'Onion', 'market': 'Pune'},
    {'commodity': 'Onion', 'market': 'Pune', 'modal_price': 'cheap'},
])
def test_market_price_validation(client, admin, payload):
    _, headers = admin
    assert client.post('/api/admin/market-prices', json=payload, headers=headers).status_code == 400


def test_market_price_entry_is_upserted(app, client, admin):
    _, headers = admin
    entry = {'commodity': 'Onion', 'market': 'Pune', 'modal_price': 1800, 'arrival_date': '2026-10-18'}
    first = client.post('/api/admin/market-prices', json=entry, headers=headers)
    assert first.status_code == 201
    assert first.get_json()['price']['source'] == 'manual'

    client.post('/api/admin/market-prices', json={**entry, 'modal_price': 1900}, headers=headers)
    with app.app_context():
        assert MarketPrice.query.count() == 1
        assert MarketPrice.query.one().modal_price == 1900
