import logging

import requests
from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required
from services.notification_service import NotificationService, SmsNotConfigured

logger = logging.getLogger('sms_routes')

sms_bp = Blueprint('sms_bp', __name__, url_prefix='/api/sms')


@sms_bp.route('/send-alert', methods=['POST'])
@jwt_required()
def send_alert():
    data = request.get_json(silent=True) or {}
    phone = data.get('phone')
    message = data.get('message')
    language = data.get('language', 'en')

    if not phone or not message:
        return jsonify({"error": "Phone and message required"}), 400

    try:
        result = NotificationService.send_sms(phone, message, language)
    except SmsNotConfigured:
        return jsonify({
            "success": False,
            "demo": True,
            "message": "SMS service not configured - configure MSG91_AUTH_KEY",
        })
    except (requests.RequestException, ValueError) as e:
        logger.error(f"SMS gateway error: {e}")
        return jsonify({"error": "Failed to send SMS"}), 500

    return jsonify({"success": True, "data": result, "message": "SMS sent successfully"})
