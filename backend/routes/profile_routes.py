from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required, get_jwt_identity
from services.farmer_service import FarmerService

profile_bp = Blueprint('profile_bp', __name__, url_prefix='/api/profile')


@profile_bp.route('', methods=['GET'])
@jwt_required()
def get_profile():
    profile = FarmerService.get_profile(get_jwt_identity())
    return jsonify({"success": True, "profile": profile})


@profile_bp.route('', methods=['POST'])
@jwt_required()
def save_profile():
    data = request.get_json(silent=True) or {}
    try:
        profile = FarmerService.upsert_profile(get_jwt_identity(), data)
    except (TypeError, ValueError):
        return jsonify({"error": "land_area must be a number"}), 400
    return jsonify({"success": True, "profile": profile})
