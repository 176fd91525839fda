from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required, current_user, set_access_cookies, unset_jwt_cookies
from services.auth_service import AuthService

auth_bp = Blueprint('auth_bp', __name__, url_prefix='/api/auth')


def _session_response(user, status=200):
    token = AuthService.issue_token(user)
    response = jsonify({"success": True, "userId": user.id, "token": token})
    set_access_cookies(response, token)
    return response, status


@auth_bp.route('/signup', methods=['POST'])
def signup():
    """
    Register with email + password and start a session.
    Body: { email, password }
    """
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip()
    password = data.get('password') or ''

    if not email or not password:
        return jsonify({"error": "Email and password are required"}), 400
    if len(password) < 6:
        return jsonify({"error": "Password must be at least 6 characters"}), 400
    if AuthService.find_by_email(email):
        return jsonify({"error": "User already exists"}), 400

    user = AuthService.create_user(email, password)
    return _session_response(user, 201)


@auth_bp.route('/login', methods=['POST'])
def login():
    """
    Login with email + password.
    Body: { email, password }
    """
    data = request.get_json(silent=True) or {}
    email = (data.get('email') or '').strip()
    password = data.get('password') or ''

    if not email or not password:
        return jsonify({"error": "Email and password are required"}), 400

    user = AuthService.authenticate(email, password)
    if not user:
        return jsonify({"error": "Invalid credentials"}), 401

    return _session_response(user)


@auth_bp.route('/logout', methods=['POST'])
def logout():
    response = jsonify({"success": True})
    unset_jwt_cookies(response)
    return response


@auth_bp.route('/me', methods=['GET'])
@jwt_required()
def me():
    user = current_user.to_dict()
    user['is_admin'] = AuthService.is_admin(current_user)
    return jsonify({"success": True, "user": user})
