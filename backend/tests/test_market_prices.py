import datetime

import pytest
import requests

from conftest import FakeResponse
from database.db import db
from database.models import MarketPrice
from services.mandi_service import MandiService

TODAY = datetime.date.today()
YESTERDAY = TODAY - datetime.timedelta(days=1)


@pytest.fixture
def prices(app):
    with app.app_context():
        db.session.add_all([
            MarketPrice(commodity='Onion', market='Pune', state='Maharashtra', modal_price=2000, arrival_date=YESTERDAY),
            MarketPrice(commodity='Onion', market='Pune', state='Maharashtra', modal_price=2100, arrival_date=TODAY),
            MarketPrice(commodity='Onion', market='Nashik', state='Maharashtra', modal_price=1000, arrival_date=YESTERDAY),
            MarketPrice(commodity='Onion', market='Nashik', state='Maharashtra', modal_price=950, arrival_date=TODAY),
            MarketPrice(commodity='Wheat', market='Indore', state='Madhya Pradesh', modal_price=2400, arrival_date=YESTERDAY),
            MarketPrice(commodity='Wheat', market='Indore', state='Madhya Pradesh', modal_price=2410, arrival_date=TODAY),
        ])
        db.session.commit()


def test_trend_against_previous_price_at_same_market(client, prices):
    body = client.get('/api/market-prices').get_json()
    latest = {(p['commodity'], p['market']): p for p in body['prices'] if p['arrival_date'] == TODAY.isoformat()}

    pune = latest[('Onion', 'Pune')]
    assert (pune['trend'], pune['change_percent'], pune['change_amount']) == ('up', 5.0, 105)
    assert latest[('Onion', 'Nashik')]['trend'] == 'down'
    assert latest[('Wheat', 'Indore')]['trend'] == 'stable'

    oldest = [p for p in body['prices'] if p['arrival_date'] == YESTERDAY.isoformat()]
    assert {p['trend'] for p in oldest} == {'stable'}


def test_stats_and_grouping(client, prices):
    body = client.get('/api/market-prices').get_json()
    assert body['market_stats'] == {
        'total_crops': 2,
        'price_increases': 1,
        'price_decreases': 1,
        'avg_price': 1810,
        'highest_price': 2410,
        'lowest_price': 950,
    }
    assert set(body['grouped_prices']) == {'Onion', 'Wheat'}
    assert len(body['grouped_prices']['Onion']) == 4
    assert body['source'] == 'database'


def test_filters_and_limit(client, prices):
    assert len(client.get('/api/market-prices?crop=oni').get_json()['prices']) == 4
    assert len(client.get('/api/market-prices?state=madhya').get_json()['prices']) == 2
    assert len(client.get('/api/market-prices?limit=2').get_json()['prices']) == 2
    assert client.get('/api/market-prices?limit=many').status_code == 400


def test_empty_table(client):
    body = client.get('/api/market-prices').get_json()
    assert body['prices'] == []
    assert body['market_stats']['avg_price'] == 0


def test_record_price_upserts_on_commodity_market_date(app):
    with app.app_context():
        entry = {'commodity': 'Tomato', 'market': 'Kolar', 'arrival_date': '05/10/2026', 'modal_price': '1200'}
        MandiService.record_price(entry)
        db.session.commit()
        MandiService.record_price({**entry, 'arrival_date': '2026-10-05', 'modal_price': 1350})
        db.session.commit()

        row = MarketPrice.query.one()
        assert row.arrival_date == datetime.date(2026, 10, 5)
        assert row.modal_price == 1350
        assert row.unit == 'quintal'

        assert MandiService.record_price({'commodity': 'Tomato'}) is None


def test_ingest_skips_without_key(app):
    with app.app_context():
        assert MandiService.ingest_agmarknet() == 0


def test_ingest_agmarknet_records(app, monkeypatch):
    app.config['DATA_GOV_API_KEY'] = 'key'

    def fake_get(url, params=None, timeout=None):
        if params['filters[commodity]'] == 'Wheat':
            raise requests.Timeout("slow")
        return FakeResponse({'records': [
            {'commodity': 'Onion', 'market': 'Lasalgaon', 'state': 'Maharashtra', 'arrival_date': '18/10/2026',
             'min_price': '1500', 'max_price': '2200', 'modal_price': '1900'},
            {'commodity': 'Onion', 'market': 'Pimpalgaon', 'arrival_date': '18/10/2026', 'modal_price': '1850'},
        ]})

    monkeypatch.setattr(requests, 'get', fake_get)
    with app.app_context():
        assert MandiService.ingest_agmarknet(['Wheat', 'Onion']) == 2
        rows = MarketPrice.query.order_by(MarketPrice.market).all()
        assert [r.market for r in rows] == ['Lasalgaon', 'Pimpalgaon']
        assert rows[0].source == 'agmarknet'
        assert rows[0].max_price == 2200
        assert rows[0].arrival_date == datetime.date(2026, 10, 18)


def test_ingest_skips_malformed_payloads(app, monkeypatch):
    app.config['DATA_GOV_API_KEY'] = 'key'

    def fake_get(url, params=None, timeout=None):
        if params['filters[commodity]'] == 'Wheat':
            return FakeResponse([{'commodity': 'Wheat'}])
        return FakeResponse({'records': [
            'stray string',
            {'commodity': 'Onion', 'market': 'Lasalgaon', 'arrival_date': '18/10/2026', 'modal_price': '1900'},
        ]})

    monkeypatch.setattr(requests, 'get', fake_get)
    with app.app_context():
        assert MandiService.ingest_agmarknet(['Wheat', 'Onion']) == 1
        assert MarketPrice.query.one().market == 'Lasalgaon'
