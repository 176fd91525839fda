from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required, current_user
from database.models import CROP_CYCLE_STATUSES
from services.field_service import FieldService

crop_cycle_bp = Blueprint('crop_cycle_bp', __name__, url_prefix='/api/crop-cycles')


@crop_cycle_bp.route('', methods=['GET'])
@jwt_required()
def list_crop_cycles():
    cycles = FieldService.list_cycles(
        current_user,
        field_id=request.args.get('field_id'),
        status=request.args.get('status'),
    )
    return jsonify({"success": True, "crop_cycles": cycles, "total": len(cycles)})


@crop_cycle_bp.route('', methods=['POST'])
@jwt_required()
def create_crop_cycle():
    data = request.get_json(silent=True) or {}
    crop_name = data.get('crop_name')
    if not data.get('field_id') or not isinstance(crop_name, str) or not crop_name.strip():
        return jsonify({"error": "Field ID and crop name are required"}), 400

    field = FieldService.get_field(data['field_id'], current_user)
    if not field:
        return jsonify({"error": "Field not found or access denied"}), 404

    result = FieldService.create_cycle(field, data)
    if isinstance(result, dict):
        return jsonify(result), 400
    return jsonify({"success": True, "crop_cycle": FieldService.cycle_detail(result)}), 201


@crop_cycle_bp.route('/<cycle_id>', methods=['PUT'])
@jwt_required()
def update_crop_cycle(cycle_id):
    data = request.get_json(silent=True) or {}
    status = data.get('status')
    if status and status not in CROP_CYCLE_STATUSES:
        return jsonify({"error": "Invalid status. Must be one of: " + ", ".join(CROP_CYCLE_STATUSES)}), 400
    if 'crop_name' in data and (not isinstance(data['crop_name'], str) or not data['crop_name'].strip()):
        return jsonify({"error": "Crop name must be a non-empty string"}), 400

    cycle = FieldService.get_cycle(cycle_id, current_user)
    if not cycle:
        return jsonify({"error": "Crop cycle not found"}), 404

    try:
        result = FieldService.update_cycle(cycle, data)
    except (TypeError, ValueError):
        return jsonify({"error": "yield_quantity must be a number"}), 400
    if isinstance(result, dict):
        return jsonify(result), 400
    return jsonify({"success": True, "crop_cycle": FieldService.cycle_detail(result)})


@crop_cycle_bp.route('/<cycle_id>', methods=['DELETE'])
@jwt_required()
def delete_crop_cycle(cycle_id):
    cycle = FieldService.get_cycle(cycle_id, current_user)
    if not cycle:
        return jsonify({"error": "Crop cycle not found"}), 404

    FieldService.delete_cycle(cycle)
    return jsonify({"success": True, "message": "Crop cycle deleted successfully"})
