import pytest
import requests

from app import create_app
from config import TestingConfig
from database.db import db


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self._payload = payload if payload is not None else {}
        self.status_code = status_code

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    app.config['ADMIN_USER_IDS'] = []
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def register(app):
    """Sign a user up on a throwaway client; returns (user_id, bearer headers)."""
    def _register(email='farmer@example.com', password='secret123'):
        resp = app.test_client().post('/api/auth/signup', json={'email': email, 'password': password})
        assert resp.status_code == 201, resp.get_json()
        body = resp.get_json()
        return body['userId'], {'Authorization': f"Bearer {body['token']}"}
    return _register


@pytest.fixture
def farmer(register):
    return register()


@pytest.fixture
def admin(app, register):
    user_id, headers = register('admin@example.com')
    app.config['ADMIN_USER_IDS'] = [user_id]
    return user_id, headers


@pytest.fixture
def offline(monkeypatch):
    """Every outbound HTTP call fails as if the network were down."""
    def _fail(*args, **kwargs):
        raise requests.ConnectionError("network unreachable")
    monkeypatch.setattr(requests, 'get', _fail)
    monkeypatch.setattr(requests, 'post', _fail)
