"""
Admin Back-office Routes: every endpoint requires an admin session.

GET    /api/admin/verify
GET    /api/admin/stats
GET    /api/admin/farmers            POST /api/admin/farmers
GET    /api/admin/disease-reports
GET    /api/admin/schemes            POST /api/admin/schemes
PUT    /api/admin/schemes/<id>       DELETE /api/admin/schemes/<id>
POST   /api/admin/crops
PUT    /api/admin/crops/<id>         DELETE /api/admin/crops/<id>
POST   /api/admin/market-prices
"""

import logging

from flask import Blueprint, request, jsonify
from flask_jwt_extended import current_user
from sqlalchemy.exc import IntegrityError

from database.db import db
from database.models import FarmerProfile, Crop, DiseaseReport, SoilAnalysis, MarketPrice, Scheme
from services.auth_service import admin_required
from services.farmer_service import FarmerService
from services.mandi_service import MandiService
from services.scheme_service import SchemeService

logger = logging.getLogger('admin_routes')

admin_bp = Blueprint('admin_bp', __name__, url_prefix='/api/admin')

CROP_FIELDS = (
    'common_name', 'local_name', 'scientific_name', 'category', 'description',
    'climate', 'soil_type', 'optimal_ph_range', 'water_requirements',
    'fertilizer_requirements', 'planting_season', 'harvest_time', 'average_yield',
    'diseases', 'disease_management', 'market_demand', 'image_url', 'source',
)


@admin_bp.route('/verify', methods=['GET'])
@admin_required
def verify():
    return jsonify({"success": True, "isAdmin": True, "user": current_user.to_dict()})


@admin_bp.route('/stats', methods=['GET'])
@admin_required
def stats():
    return jsonify({
        "success": True,
        "stats": {
            "totalFarmers": FarmerProfile.query.count(),
            "totalCrops": Crop.query.count(),
            "diseaseReports": DiseaseReport.query.count(),
            "soilAnalyses": SoilAnalysis.query.count(),
            "marketPrices": MarketPrice.query.count(),
            "schemes": Scheme.query.count(),
        },
    })


# ──────────────────────────────────────────
# FARMERS
# ──────────────────────────────────────────

@admin_bp.route('/farmers', methods=['GET'])
@admin_required
def list_farmers():
    return jsonify({"success": True, "farmers": FarmerService.list_farmers(limit=50)})


@admin_bp.route('/farmers', methods=['POST'])
@admin_required
def add_farmer():
    data = request.get_json(silent=True) or {}
    if not data.get('full_name'):
        return jsonify({"error": "full_name is required"}), 400
    try:
        farmer = FarmerService.create_farmer(data)
    except (TypeError, ValueError):
        return jsonify({"error": "farm_size must be a number"}), 400
    except IntegrityError:
        db.session.rollback()
        return jsonify({"error": "A profile already exists for this user"}), 400
    return jsonify({"success": True, "id": farmer.id, "farmer": farmer.to_dict()}), 201


@admin_bp.route('/disease-reports', methods=['GET'])
@admin_required
def disease_reports():
    reports = DiseaseReport.query.order_by(DiseaseReport.reported_date.desc()).limit(50).all()
    return jsonify({"success": True, "reports": [r.to_dict() for r in reports]})


# ──────────────────────────────────────────
# SCHEMES
# ──────────────────────────────────────────

@admin_bp.route('/schemes', methods=['GET'])
@admin_required
def list_schemes():
    return jsonify({"success": True, "schemes": SchemeService.list_all()})


@admin_bp.route('/schemes', methods=['POST'])
@admin_required
def create_scheme():
    data = request.get_json(silent=True) or {}
    if not data.get('name'):
        return jsonify({"error": "Scheme name is required"}), 400
    scheme = SchemeService.create_scheme(data)
    return jsonify({"success": True, "scheme": scheme.to_dict()}), 201


@admin_bp.route('/schemes/<scheme_id>', methods=['PUT'])
@admin_required
def update_scheme(scheme_id):
    data = request.get_json(silent=True) or {}
    if 'name' in data and not data['name']:
        return jsonify({"error": "Scheme name cannot be empty"}), 400
    scheme = SchemeService.update_scheme(scheme_id, data)
    if not scheme:
        return jsonify({"error": "Scheme not found"}), 404
    return jsonify({"success": True, "scheme": scheme.to_dict()})


@admin_bp.route('/schemes/<scheme_id>', methods=['DELETE'])
@admin_required
def delete_scheme(scheme_id):
    if not SchemeService.delete_scheme(scheme_id):
        return jsonify({"error": "Scheme not found"}), 404
    return jsonify({"success": True})


# ──────────────────────────────────────────
# CROP ENCYCLOPEDIA
# ──────────────────────────────────────────

def _apply_crop(crop, data):
    for key in CROP_FIELDS:
        if key in data:
            setattr(crop, key, data[key])


@admin_bp.route('/crops', methods=['POST'])
@admin_required
def create_crop():
    data = request.get_json(silent=True) or {}
    if not data.get('common_name'):
        return jsonify({"error": "common_name is required"}), 400
    crop = Crop()
    _apply_crop(crop, data)
    db.session.add(crop)
    db.session.commit()
    logger.info(f"Crop created: {crop.common_name}")
    return jsonify({"success": True, "crop": crop.to_dict()}), 201


@admin_bp.route('/crops/<crop_id>', methods=['PUT'])
@admin_required
def update_crop(crop_id):
    data = request.get_json(silent=True) or {}
    if 'common_name' in data and not data['common_name']:
        return jsonify({"error": "common_name cannot be empty"}), 400
    crop = db.session.get(Crop, crop_id)
    if not crop:
        return jsonify({"error": "Crop not found"}), 404
    _apply_crop(crop, data)
    db.session.commit()
    return jsonify({"success": True, "crop": crop.to_dict()})


@admin_bp.route('/crops/<crop_id>', methods=['DELETE'])
@admin_required
def delete_crop(crop_id):
    crop = db.session.get(Crop, crop_id)
    if not crop:
        return jsonify({"error": "Crop not found"}), 404
    db.session.delete(crop)
    db.session.commit()
    return jsonify({"success": True})


# ──────────────────────────────────────────
# MARKET PRICES
# ──────────────────────────────────────────

@admin_bp.route('/market-prices', methods=['POST'])
@admin_required
def add_market_price():
    data = request.get_json(silent=True) or {}
    if not data.get('commodity') or not data.get('market') or data.get('modal_price') in (None, ''):
        return jsonify({"error": "commodity, market and modal_price are required"}), 400
    try:
        float(data['modal_price'])
    except (TypeError, ValueError):
        return jsonify({"error": "modal_price must be a number"}), 400

    price = MandiService.record_price(data, source='manual')
    db.session.commit()
    return jsonify({"success": True, "price": price.to_dict()}), 201
