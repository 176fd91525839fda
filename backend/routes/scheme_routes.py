from flask import Blueprint, request, jsonify
from services.scheme_service import SchemeService

scheme_bp = Blueprint('scheme_bp', __name__)


@scheme_bp.route('/api/schemes', methods=['GET'])
def list_schemes():
    state = request.args.get('state')
    category = request.args.get('category')
    lang = request.args.get('lang', 'en')

    schemes = SchemeService.list_schemes(state=state, category=category, lang=lang)
    return jsonify({
        "success": True,
        "schemes": schemes,
        "total": len(schemes),
        "filters": {"state": state, "category": category, "lang": lang},
    })
