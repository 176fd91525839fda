import math

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required, current_user
from services.field_service import FieldService

field_activity_bp = Blueprint('field_activity_bp', __name__, url_prefix='/api/field-activities')


@field_activity_bp.route('', methods=['GET'])
@jwt_required()
def list_activities():
    try:
        limit = int(request.args.get('limit', 50))
    except ValueError:
        return jsonify({"error": "limit must be an integer"}), 400

    activities = FieldService.list_activities(
        current_user,
        crop_cycle_id=request.args.get('crop_cycle_id'),
        activity_type=request.args.get('activity_type'),
        limit=limit,
    )
    return jsonify({"success": True, "activities": activities, "total": len(activities)})


@field_activity_bp.route('', methods=['POST'])
@jwt_required()
def create_activity():
    data = request.get_json(silent=True) or {}
    activity_type = data.get('activity_type')
    if not data.get('crop_cycle_id') or not isinstance(activity_type, str) or not activity_type.strip():
        return jsonify({"error": "Crop cycle ID and activity type are required"}), 400

    cost = data.get('cost')
    if cost in (None, ''):
        cost = None
    else:
        try:
            cost = float(cost)
        except (TypeError, ValueError):
            return jsonify({"error": "cost must be a number"}), 400
        if not math.isfinite(cost):
            return jsonify({"error": "cost must be a number"}), 400

    cycle = FieldService.get_cycle(data['crop_cycle_id'], current_user)
    if not cycle:
        return jsonify({"error": "Crop cycle not found or access denied"}), 404

    activity = FieldService.create_activity(cycle, data, cost=cost)
    return jsonify({"success": True, "activity": activity.to_dict()}), 201
