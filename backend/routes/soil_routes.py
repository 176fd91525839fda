"""
Soil Analysis Routes

GET  /api/soil-analysis     Caller's soil tests, newest first (?field_id=)
POST /api/soil-analysis     Record a lab soil test
"""

import math
from datetime import date

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required, current_user
from database.db import db
from database.models import SoilAnalysis
from services.field_service import FieldService, parse_date
from services.recommendation_service import RecommendationService

soil_bp = Blueprint('soil_bp', __name__, url_prefix='/api/soil-analysis')


@soil_bp.route('', methods=['GET'])
@jwt_required()
def list_analyses():
    query = SoilAnalysis.query.filter_by(user_id=current_user.id)
    field_id = request.args.get('field_id')
    if field_id:
        query = query.filter_by(field_id=field_id)
    analyses = query.order_by(SoilAnalysis.created_at.desc()).all()
    return jsonify({"success": True, "analyses": [a.to_dict() for a in analyses], "total": len(analyses)})


@soil_bp.route('', methods=['POST'])
@jwt_required()
def create_analysis():
    data = request.get_json(silent=True) or {}
    required = ('nitrogen', 'phosphorus', 'potassium', 'ph')
    if any(data.get(key) in (None, '') for key in required):
        return jsonify({"error": "nitrogen, phosphorus, potassium and ph are required"}), 400

    try:
        values = {key: float(data[key]) for key in required}
        organic_matter = float(data['organic_matter']) if data.get('organic_matter') not in (None, '') else None
    except (TypeError, ValueError):
        return jsonify({"error": "Soil parameters must be numeric"}), 400
    if not all(math.isfinite(v) for v in values.values()) or (
            organic_matter is not None and not math.isfinite(organic_matter)):
        return jsonify({"error": "Soil parameters must be numeric"}), 400

    field_id = data.get('field_id')
    if field_id and not FieldService.get_field(field_id, current_user):
        return jsonify({"error": "Field not found or access denied"}), 404

    analysis = SoilAnalysis(
        user_id=current_user.id,
        field_id=field_id or None,
        organic_matter=organic_matter,
        test_date=parse_date(data.get('test_date')) or date.today(),
        location=data.get('location'),
        recommendations=RecommendationService.fertilizer_plan(
            values['nitrogen'], values['phosphorus'], values['potassium'], values['ph']
        ),
        **values,
    )
    db.session.add(analysis)
    db.session.commit()

    soil_health, score, issues = RecommendationService.assess_soil_health(
        values['nitrogen'], values['phosphorus'], values['potassium'], values['ph']
    )
    return jsonify({
        "success": True,
        "analysis": analysis.to_dict(),
        "soil_health": soil_health,
        "soil_health_score": score,
        "issues": issues,
    }), 201
