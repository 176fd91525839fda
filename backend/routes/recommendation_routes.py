import math

from flask import Blueprint, request, jsonify
from services.auth_service import optional_user
from services.field_service import FieldService
from services.recommendation_service import RecommendationService

recommendation_bp = Blueprint('recommendation_bp', __name__)

SOIL_PARAMS = ('nitrogen', 'phosphorus', 'potassium', 'ph')


def _optional_float(value):
    if value in (None, ''):
        return None
    return float(value)


@recommendation_bp.route('/api/recommend', methods=['POST'])
def recommend():
    data = request.get_json(silent=True) or {}

    if any(data.get(key) in (None, '') for key in SOIL_PARAMS):
        return jsonify({"error": "Missing required soil parameters"}), 400

    try:
        params = {key: float(data[key]) for key in SOIL_PARAMS}
        params['rainfall'] = _optional_float(data.get('rainfall'))
        params['temperature'] = _optional_float(data.get('temperature'))
    except (TypeError, ValueError):
        return jsonify({"error": "Soil parameters must be numeric"}), 400
    if any(value is not None and not math.isfinite(value) for value in params.values()):
        return jsonify({"error": "Soil parameters must be numeric"}), 400

    params['location'] = data.get('location') or "Unknown"
    params['season'] = (data.get('season') or "all").lower()

    # A field_id is only attached to the stored analysis when the caller owns it
    user = optional_user()
    if user and data.get('field_id') and FieldService.get_field(data['field_id'], user):
        params['field_id'] = data['field_id']

    result = RecommendationService.get_recommendation(params, user_id=user.id if user else None)
    return jsonify({"success": True, **result})
