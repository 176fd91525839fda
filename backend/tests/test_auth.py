import importlib

import config
from database.db import db
from database.models import User


def test_signup_sets_session_cookie_and_returns_token(client):
    resp = client.post('/api/auth/signup', json={'email': 'Ravi@Example.com ', 'password': 'secret123'})

    assert resp.status_code == 201
    body = resp.get_json()
    assert body['success'] is True
    assert body['userId'] and body['token']
    assert 'auth_token=' in resp.headers.get('Set-Cookie', '')

    me = client.get('/api/auth/me')
    assert me.status_code == 200
    assert me.get_json()['user']['email'] == 'ravi@example.com'


def test_signup_validation(client, register):
    assert client.post('/api/auth/signup', json={'email': 'a@b.com'}).status_code == 400
    short = client.post('/api/auth/signup', json={'email': 'a@b.com', 'password': '123'})
    assert short.status_code == 400

    register('dup@example.com')
    dup = client.post('/api/auth/signup', json={'email': 'DUP@example.com', 'password': 'secret123'})
    assert dup.status_code == 400
    assert dup.get_json()['error'] == "User already exists"


def test_login(client, register):
    register('login@example.com', 'secret123')

    assert client.post('/api/auth/login', json={'email': 'login@example.com'}).status_code == 400
    bad = client.post('/api/auth/login', json={'email': 'login@example.com', 'password': 'wrong-pass'})
    assert bad.status_code == 401
    assert bad.get_json() == {'error': 'Invalid credentials'}

    ok = client.post('/api/auth/login', json={'email': 'login@example.com', 'password': 'secret123'})
    assert ok.status_code == 200
    assert ok.get_json()['token']


def test_logout_clears_cookie(client):
    client.post('/api/auth/signup', json={'email': 'out@example.com', 'password': 'secret123'})
    assert client.get('/api/auth/me').status_code == 200

    client.post('/api/auth/logout')
    assert client.get('/api/auth/me').status_code == 401


def test_bearer_header_and_bad_tokens(client, farmer):
    _, headers = farmer
    assert client.get('/api/auth/me', headers=headers).status_code == 200

    resp = client.get('/api/auth/me', headers={'Authorization': 'Bearer not-a-jwt'})
    assert resp.status_code == 401
    assert 'error' in resp.get_json()
    assert client.get('/api/auth/me').status_code == 401


def test_token_for_deleted_user_is_rejected(app, client, farmer):
    user_id, headers = farmer
    with app.app_context():
        db.session.delete(db.session.get(User, user_id))
        db.session.commit()

    resp = client.get('/api/auth/me', headers=headers)
    assert resp.status_code == 401


def test_me_reports_admin_flag(app, client, farmer):
    user_id, headers = farmer
    assert client.get('/api/auth/me', headers=headers).get_json()['user']['is_admin'] is False

    app.config['ADMIN_USER_IDS'] = [user_id]
    assert client.get('/api/auth/me', headers=headers).get_json()['user']['is_admin'] is True


def test_jwt_secret_read_from_environment(monkeypatch):
    monkeypatch.setenv('JWT_SECRET_KEY', 'jwt-from-environment')
    monkeypatch.setenv('SECRET_KEY', 'flask-session-secret')
    try:
        importlib.reload(config)
        assert config.Config.JWT_SECRET_KEY == 'jwt-from-environment'
        assert config.Config.SECRET_KEY == 'flask-session-secret'

        monkeypatch.delenv('JWT_SECRET_KEY')
        importlib.reload(config)
        assert config.Config.JWT_SECRET_KEY == 'flask-session-secret'
    finally:
        monkeypatch.undo()
        importlib.reload(config)
