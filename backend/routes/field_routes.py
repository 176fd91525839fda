"""
Field CRUD Routes

GET    /api/fields            List the caller's fields with crop cycles
POST   /api/fields            Create a field
GET    /api/fields/<id>       Field with cycles and activities
PUT    /api/fields/<id>       Update a field
DELETE /api/fields/<id>       Delete a field (blocked by an active cycle)
"""

import math

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required, current_user
from services.field_service import FieldService

field_bp = Blueprint('field_bp', __name__, url_prefix='/api/fields')


def _validate_field(data):
    """Return an error message, or None when the payload is usable."""
    name = data.get('field_name')
    if not isinstance(name, str) or not name.strip() or data.get('area_hectares') in (None, ''):
        return "Field name and area are required"
    try:
        area = float(data['area_hectares'])
    except (TypeError, ValueError):
        return "Area must be a number"
    if not math.isfinite(area):
        return "Area must be a number"
    if area <= 0:
        return "Area must be greater than 0"
    return None


@field_bp.route('', methods=['GET'])
@jwt_required()
def list_fields():
    fields = FieldService.list_fields(current_user)
    return jsonify({"success": True, "fields": fields, "total": len(fields)})


@field_bp.route('', methods=['POST'])
@jwt_required()
def create_field():
    data = request.get_json(silent=True) or {}
    error = _validate_field(data)
    if error:
        return jsonify({"error": error}), 400

    field = FieldService.create_field(current_user, data)
    return jsonify({"success": True, "field": field.to_dict()}), 201


@field_bp.route('/<field_id>', methods=['GET'])
@jwt_required()
def get_field(field_id):
    field = FieldService.get_field(field_id, current_user)
    if not field:
        return jsonify({"error": "Field not found"}), 404
    return jsonify({"success": True, "field": FieldService.field_detail(field)})


@field_bp.route('/<field_id>', methods=['PUT'])
@jwt_required()
def update_field(field_id):
    data = request.get_json(silent=True) or {}
    error = _validate_field(data)
    if error:
        return jsonify({"error": error}), 400

    field = FieldService.get_field(field_id, current_user)
    if not field:
        return jsonify({"error": "Field not found"}), 404

    field = FieldService.update_field(field, data)
    return jsonify({"success": True, "field": field.to_dict()})


@field_bp.route('/<field_id>', methods=['DELETE'])
@jwt_required()
def delete_field(field_id):
    field = FieldService.get_field(field_id, current_user)
    if not field:
        return jsonify({"error": "Field not found"}), 404

    result = FieldService.delete_field(field)
    if "error" in result:
        return jsonify(result), 400
    return jsonify({"success": True, "message": "Field deleted successfully"})
