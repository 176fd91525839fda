from datetime import datetime

from flask import Blueprint, request, jsonify
from services.mandi_service import MandiService

market_bp = Blueprint('market_bp', __name__)


@market_bp.route('/api/market-prices', methods=['GET'])
def market_prices():
    crop = request.args.get('crop')
    state = request.args.get('state')
    try:
        limit = int(request.args.get('limit', 50))
    except ValueError:
        return jsonify({"error": "limit must be an integer"}), 400

    result = MandiService.list_prices(crop=crop, state=state, limit=limit)
    return jsonify({
        "success": True,
        **result,
        "filters": {"crop": crop, "state": state, "limit": limit},
        "source": "database",
        "last_updated": datetime.utcnow().isoformat(),
    })
