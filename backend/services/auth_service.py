"""
Auth Service: users, passwords, session tokens and admin resolution.

Sessions are Flask-JWT-Extended access tokens (identity claim ``userId``)
delivered both in the response body and as the HTTP-only ``auth_token``
cookie. Admin status has a single source of truth: :meth:`AuthService.is_admin`.
"""

import logging
from functools import wraps

from flask import current_app, jsonify
from flask_jwt_extended import create_access_token, current_user, get_current_user, verify_jwt_in_request
from werkzeug.security import generate_password_hash, check_password_hash

from database.db import db
from database.models import User

logger = logging.getLogger('auth_service')


class AuthService:

    @staticmethod
    def normalize_email(email):
        return (email or '').strip().lower()

    @staticmethod
    def find_by_email(email):
        return User.query.filter_by(email=AuthService.normalize_email(email)).first()

    @staticmethod
    def create_user(email, password, is_admin=False):
        user = User(
            email=AuthService.normalize_email(email),
            password_hash=generate_password_hash(password),
            is_admin=is_admin,
        )
        db.session.add(user)
        db.session.commit()
        logger.info(f"Created user {user.id}")
        return user

    @staticmethod
    def authenticate(email, password):
        """Return the user for a correct email/password pair, else None."""
        user = AuthService.find_by_email(email)
        if not user or not check_password_hash(user.password_hash, password):
            return None
        return user

    @staticmethod
    def issue_token(user):
        return create_access_token(identity=user.id)

    @staticmethod
    def is_admin(user):
        """A user is an admin if flagged in the database or listed in ADMIN_USER_IDS."""
        if user is None:
            return False
        if user.is_admin:
            return True
        return user.id in current_app.config.get('ADMIN_USER_IDS', [])


def admin_required(fn):
    """Require a valid session (401) belonging to an admin (403)."""
    @wraps(fn)
    def wrapper(*args, **kwargs):
        verify_jwt_in_request()
        if not AuthService.is_admin(current_user):
            return jsonify({"error": "Forbidden - Admin access required"}), 403
        return fn(*args, **kwargs)
    return wrapper


def optional_user():
    """Current user when a valid session is present, else None."""
    verify_jwt_in_request(optional=True)
    return get_current_user()


def register_jwt_handlers(jwt):
    """Hook the user loader and make every auth failure a JSON 401."""

    @jwt.user_lookup_loader
    def load_user(_jwt_header, jwt_data):
        identity = jwt_data[current_app.config['JWT_IDENTITY_CLAIM']]
        return db.session.get(User, identity)

    @jwt.user_lookup_error_loader
    def user_missing(_jwt_header, _jwt_data):
        return jsonify({"error": "Unauthorized"}), 401

    @jwt.unauthorized_loader
    def missing_token(reason):
        return jsonify({"error": "Unauthorized"}), 401

    @jwt.invalid_token_loader
    def invalid_token(reason):
        return jsonify({"error": "Unauthorized"}), 401

    @jwt.expired_token_loader
    def expired_token(_jwt_header, _jwt_data):
        return jsonify({"error": "Session expired"}), 401
