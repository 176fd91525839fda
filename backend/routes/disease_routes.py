import logging

from flask import Blueprint, request, jsonify
from database.db import db
from database.models import DiseaseReport
from services.auth_service import optional_user
from services.vision_service import VisionService, VisionError

logger = logging.getLogger('disease_routes')

disease_bp = Blueprint('disease_bp', __name__)


def _store_report(analysis, crop_name, source, user):
    report = DiseaseReport(
        user_id=user.id if user else None,
        crop_name=crop_name,
        disease_name=analysis['disease'],
        confidence=analysis['confidence'],
        severity=analysis['severity'],
        recommendations=analysis['recommendations'],
        source=source,
    )
    db.session.add(report)
    db.session.commit()
    return report


@disease_bp.route('/api/ai/disease-detection', methods=['POST'])
def detect_disease():
    image = request.files.get('image')
    if image is None or not image.filename:
        return jsonify({"error": "No image provided"}), 400

    crop_name = request.form.get('crop') or None
    user = optional_user()

    if not VisionService.is_configured():
        analysis = VisionService.SAMPLE_ANALYSIS
        report = _store_report(analysis, crop_name, 'sample', user)
        return jsonify({
            "success": True,
            "sample": True,
            "report_id": report.id,
            **analysis,
            "message": "Sample analysis - configure GROQ_API_KEY for real AI detection",
        })

    try:
        analysis = VisionService.analyze_leaf_image(
            image.read(), crop_name=crop_name or "Crop", mime_type=image.mimetype or "image/jpeg"
        )
    except VisionError:
        return jsonify({"error": "Failed to analyze image"}), 500

    report = _store_report(analysis, crop_name, 'groq', user)
    logger.info(f"Disease report {report.id}: {analysis['disease']} ({analysis['confidence']:.2f})")
    return jsonify({
        "success": True,
        "sample": False,
        "report_id": report.id,
        **analysis,
        "message": "AI-powered disease detection",
    })
