from flask import Blueprint, request, jsonify
from sqlalchemy import or_
from database.models import Crop

encyclopedia_bp = Blueprint('encyclopedia_bp', __name__)


@encyclopedia_bp.route('/api/encyclopedia', methods=['GET'])
def list_crops():
    search = request.args.get('search')
    crop = request.args.get('crop')

    query = Crop.query
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            Crop.common_name.ilike(pattern),
            Crop.local_name.ilike(pattern),
            Crop.scientific_name.ilike(pattern),
            Crop.description.ilike(pattern),
        ))
    if crop:
        query = query.filter(Crop.common_name == crop)

    crops = [c.to_dict() for c in query.order_by(Crop.common_name).all()]
    return jsonify({
        "success": True,
        "crops": crops,
        "total": len(crops),
        "filters": {"search": search, "crop": crop},
    })
