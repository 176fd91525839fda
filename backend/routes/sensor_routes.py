"""
IoT Sensor Routes

GET  /api/sensors                   Caller's registered sensors
POST /api/sensors                   Register a sensor on an owned field
POST /api/sensors/data              Store a reading (threshold and 3σ alerts)
GET  /api/sensors/data              Readings (?sensor_id=&sensor_type=&field_id=&hours=&limit=)
GET  /api/sensors/analytics         Summary, trends and buckets (?period=&aggregation=&...)
GET  /api/sensors/alerts            Alerts (?sensor_id=&severity=&acknowledged=&limit=)
POST /api/sensors/alerts            Raise an alert for an owned sensor
PUT  /api/sensors/alerts/<id>       Acknowledge / resolve an alert
"""

import math

from flask import Blueprint, request, jsonify
from flask_jwt_extended import jwt_required, current_user
from database.models import ALERT_SEVERITIES, SENSOR_STATUSES
from services.field_service import FieldService
from services.sensor_service import SensorService, ANALYTICS_PERIODS, DEFAULT_PERIOD

sensor_bp = Blueprint('sensor_bp', __name__, url_prefix='/api/sensors')


def _flag(value):
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    return str(value).lower() == 'true'


def _finite_float(value):
    """float(value), raising ValueError for NaN and infinities."""
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"{value!r} is not finite")
    return number


@sensor_bp.route('', methods=['GET'])
@jwt_required()
def list_sensors():
    sensors = SensorService.list_sensors(current_user)
    return jsonify({"success": True, "sensors": sensors, "total": len(sensors)})


@sensor_bp.route('', methods=['POST'])
@jwt_required()
def register_sensor():
    data = request.get_json(silent=True) or {}
    if not data.get('field_id') or not data.get('sensor_id'):
        return jsonify({"error": "Field ID and sensor ID are required"}), 400

    status = data.get('status') or 'active'
    if status not in SENSOR_STATUSES:
        return jsonify({"error": "Invalid status. Must be one of: " + ", ".join(SENSOR_STATUSES)}), 400

    battery_level = data.get('battery_level')
    if battery_level is not None:
        try:
            battery_level = _finite_float(battery_level)
        except (TypeError, ValueError):
            return jsonify({"error": "battery_level must be a number"}), 400

    field = FieldService.get_field(data['field_id'], current_user)
    if not field:
        return jsonify({"error": "Field not found or access denied"}), 404

    sensor = SensorService.register_sensor(
        field, data['sensor_id'], data.get('sensor_type'), status=status, battery_level=battery_level,
    )
    return jsonify({"success": True, "sensor": sensor.to_dict()}), 201


@sensor_bp.route('/alerts', methods=['GET'])
@jwt_required()
def list_alerts():
    try:
        limit = int(request.args.get('limit', 50))
    except ValueError:
        return jsonify({"error": "limit must be an integer"}), 400

    alerts = SensorService.list_alerts(
        current_user,
        sensor_code=request.args.get('sensor_id'),
        severity=request.args.get('severity'),
        acknowledged=_flag(request.args.get('acknowledged')),
        limit=limit,
    )
    return jsonify({"success": True, "alerts": alerts, "total": len(alerts)})


@sensor_bp.route('/alerts', methods=['POST'])
@jwt_required()
def create_alert():
    data = request.get_json(silent=True) or {}
    if not data.get('sensor_id') or not data.get('alert_type') or not data.get('message'):
        return jsonify({"error": "Sensor ID, alert type, and message are required"}), 400

    severity = data.get('severity')
    if severity and severity not in ALERT_SEVERITIES:
        return jsonify({"error": "Invalid severity. Must be one of: " + ", ".join(ALERT_SEVERITIES)}), 400

    sensor = SensorService.find_sensor(data['sensor_id'], current_user)
    if not sensor:
        return jsonify({"error": "Sensor not found or access denied"}), 404

    try:
        alert = SensorService.create_alert(sensor, data)
    except (TypeError, ValueError):
        return jsonify({"error": "threshold_value and current_value must be numbers"}), 400
    return jsonify({"success": True, "alert": alert.to_dict()}), 201


@sensor_bp.route('/alerts/<alert_id>', methods=['PUT'])
@jwt_required()
def update_alert(alert_id):
    data = request.get_json(silent=True) or {}
    alert = SensorService.get_alert(alert_id, current_user)
    if not alert:
        return jsonify({"error": "Alert not found"}), 404

    alert = SensorService.update_alert(
        alert,
        acknowledged=_flag(data.get('acknowledged')),
        resolved=_flag(data.get('resolved')),
    )
    return jsonify({"success": True, "alert": alert.to_dict()})


@sensor_bp.route('/data', methods=['POST'])
@jwt_required()
def record_reading():
    data = request.get_json(silent=True) or {}
    if not data.get('sensor_id') or data.get('reading_value') is None:
        return jsonify({"error": "Sensor ID and reading value are required"}), 400

    try:
        value = _finite_float(data['reading_value'])
    except (TypeError, ValueError):
        return jsonify({"error": "Reading value must be a valid number"}), 400

    quality_score = data.get('quality_score')
    if quality_score is not None:
        try:
            quality_score = _finite_float(quality_score)
            in_range = 0 <= quality_score <= 1
        except (TypeError, ValueError):
            in_range = False
        if not in_range:
            return jsonify({"error": "Quality score must be a number between 0 and 1"}), 400

    sensor = SensorService.find_sensor(data['sensor_id'], current_user)
    if not sensor:
        return jsonify({"error": "Sensor not found or access denied"}), 404
    if sensor.status != 'active':
        return jsonify({"error": f"Sensor is not active. Status: {sensor.status}"}), 400

    reading, alerts = SensorService.record_reading(
        sensor, value,
        unit=data.get('unit'),
        raw_data=data.get('raw_data'),
        quality_score=quality_score,
    )
    return jsonify({
        "success": True,
        "reading": reading.to_dict(),
        "alerts": [a.to_dict() for a in alerts],
    }), 201


@sensor_bp.route('/data', methods=['GET'])
@jwt_required()
def list_readings():
    try:
        limit = int(request.args.get('limit', 100))
        hours = int(request.args.get('hours', 24))
    except ValueError:
        return jsonify({"error": "limit and hours must be integers"}), 400

    params = {
        'sensor_id': request.args.get('sensor_id'),
        'sensor_type': request.args.get('sensor_type'),
        'field_id': request.args.get('field_id'),
        'hours': hours,
        'limit': limit,
    }
    readings = SensorService.list_readings(
        current_user,
        sensor_code=params['sensor_id'],
        sensor_type=params['sensor_type'],
        field_id=params['field_id'],
        hours=hours,
        limit=limit,
    )
    return jsonify({"success": True, "readings": readings, "total": len(readings), "parameters": params})


@sensor_bp.route('/analytics', methods=['GET'])
@jwt_required()
def sensor_analytics():
    period = request.args.get('period') or DEFAULT_PERIOD
    if period not in ANALYTICS_PERIODS:
        return jsonify({"error": "Invalid period. Must be one of: " + ", ".join(ANALYTICS_PERIODS)}), 400

    params = {
        'period': period,
        'aggregation': request.args.get('aggregation') or 'hourly',
        'sensor_id': request.args.get('sensor_id'),
        'field_id': request.args.get('field_id'),
        'sensor_type': request.args.get('sensor_type'),
    }
    analytics = SensorService.analytics(
        current_user,
        period=period,
        aggregation=params['aggregation'],
        sensor_code=params['sensor_id'],
        sensor_type=params['sensor_type'],
        field_id=params['field_id'],
    )
    if analytics is None:
        return jsonify({
            "success": True,
            "analytics": {"time_series": [], "summary": {}, "alerts": [], "trends": {}},
            "message": "No sensor data available for the specified period",
            "parameters": params,
        })
    return jsonify({"success": True, "analytics": analytics, "parameters": params})
