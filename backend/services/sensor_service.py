"""
Sensor Service: registered devices, their readings and alerts.

Each stored reading is compared with the sensor type's default thresholds
and with the sensor's last ten readings (3σ rule); breaches are written
as ``sensor_alerts`` rows in the same commit as the reading.
"""

import datetime
import logging
import math

from database.db import db
from database.models import IotSensor, SensorReading, SensorAlert
from services.auth_service import AuthService

logger = logging.getLogger('sensor_service')

# Plausible range, display unit and default alert thresholds per sensor type
SENSOR_TYPES = {
    'soil_moisture': {'unit': '%', 'min_value': 0, 'max_value': 100, 'threshold_low': 20, 'threshold_high': 80},
    'soil_temperature': {'unit': '°C', 'min_value': -10, 'max_value': 60, 'threshold_low': 10, 'threshold_high': 35},
    'temperature': {'unit': '°C', 'min_value': -20, 'max_value': 60, 'threshold_low': 5, 'threshold_high': 40},
    'humidity': {'unit': '%', 'min_value': 0, 'max_value': 100, 'threshold_low': 30, 'threshold_high': 90},
    'soil_ph': {'unit': 'pH', 'min_value': 0, 'max_value': 14, 'threshold_low': 5.5, 'threshold_high': 8.0},
    'light_intensity': {'unit': 'lux', 'min_value': 0, 'max_value': 200000, 'threshold_low': None, 'threshold_high': None},
}

ANALYTICS_PERIODS = {'24h': 24, '7d': 7 * 24, '30d': 30 * 24, '90d': 90 * 24}
DEFAULT_PERIOD = '7d'
ANOMALY_WINDOW = 10
ANOMALY_SIGMA = 3
TREND_THRESHOLD_PERCENT = 10


def _optional_float(value):
    if value in (None, ''):
        return None
    number = float(value)
    if not math.isfinite(number):
        raise ValueError(f"{value!r} is not finite")
    return number


def _mean(values):
    return sum(values) / len(values)


def _population_std(values):
    avg = _mean(values)
    return math.sqrt(sum((v - avg) ** 2 for v in values) / len(values))


class SensorService:

    @staticmethod
    def list_sensors(user):
        sensors = IotSensor.query.filter_by(user_id=user.id).order_by(IotSensor.created_at.desc()).all()
        return [s.to_dict() for s in sensors]

    @staticmethod
    def register_sensor(field, sensor_code, sensor_type=None, status='active', battery_level=None):
        sensor = IotSensor(
            user_id=field.user_id,
            field_id=field.id,
            sensor_id=sensor_code,
            sensor_type=sensor_type,
            status=status,
            battery_level=battery_level,
        )
        db.session.add(sensor)
        db.session.commit()
        logger.info(f"Sensor {sensor_code} registered on field {field.id}")
        return sensor

    @staticmethod
    def find_sensor(sensor_code, user):
        """Sensor by device code, restricted to the caller unless admin."""
        query = IotSensor.query.filter_by(sensor_id=sensor_code)
        if not AuthService.is_admin(user):
            query = query.filter_by(user_id=user.id)
        return query.first()

    @staticmethod
    def list_alerts(user, sensor_code=None, severity=None, acknowledged=None, limit=50):
        query = SensorAlert.query.join(IotSensor).filter(IotSensor.user_id == user.id)
        if sensor_code:
            query = query.filter(IotSensor.sensor_id == sensor_code)
        if severity:
            query = query.filter(SensorAlert.severity == severity)
        if acknowledged is not None:
            query = query.filter(SensorAlert.acknowledged.is_(acknowledged))
        alerts = query.order_by(SensorAlert.created_at.desc()).limit(limit).all()
        return [a.to_dict() for a in alerts]

    @staticmethod
    def create_alert(sensor, data):
        alert = SensorAlert(
            sensor_pk=sensor.id,
            alert_type=data['alert_type'],
            severity=data.get('severity') or 'medium',
            message=data['message'],
            threshold_value=_optional_float(data.get('threshold_value')),
            current_value=_optional_float(data.get('current_value')),
            anomaly_details=data.get('anomaly_details') or None,
        )
        db.session.add(alert)
        db.session.commit()
        return alert

    @staticmethod
    def get_alert(alert_id, user):
        query = SensorAlert.query.join(IotSensor).filter(SensorAlert.id == alert_id)
        if not AuthService.is_admin(user):
            query = query.filter(IotSensor.user_id == user.id)
        return query.first()

    @staticmethod
    def update_alert(alert, acknowledged=None, resolved=None):
        """Flip acknowledged/resolved flags, stamping the time when set."""
        now = datetime.datetime.utcnow()
        if acknowledged is not None:
            alert.acknowledged = acknowledged
            alert.acknowledged_at = now if acknowledged else None
        if resolved is not None:
            alert.resolved = resolved
            alert.resolved_at = now if resolved else None
        db.session.commit()
        return alert

    # ──────────────────────────────────────────
    # READINGS
    # ──────────────────────────────────────────

    @staticmethod
    def detect_anomaly(value, recent_values):
        """
        Flag a value more than 3σ from the mean of the recent readings.
        Needs at least three prior readings; a flat history (σ = 0) is never flagged.
        """
        if len(recent_values) <= 2:
            return None
        avg = _mean(recent_values)
        std = _population_std(recent_values)
        deviation = abs(value - avg)
        if std == 0 or deviation <= ANOMALY_SIGMA * std:
            return None
        return {
            'reason': "Statistical anomaly",
            'deviation': round(deviation, 4),
            'standard_deviations': round(deviation / std, 2),
            'recent_average': round(avg, 4),
        }

    @staticmethod
    def threshold_alerts(sensor, value):
        """Unsaved threshold alerts for a reading against its type's defaults."""
        spec = SENSOR_TYPES.get(sensor.sensor_type)
        if not spec:
            return []

        alerts = []
        low, high = spec['threshold_low'], spec['threshold_high']
        if low is not None and value < low:
            alerts.append(SensorAlert(
                sensor_pk=sensor.id,
                alert_type='threshold',
                severity='high' if value < low * 0.5 else 'medium',
                message=f"Reading ({value}) is below low threshold ({low})",
                threshold_value=low,
                current_value=value,
            ))
        if high is not None and value > high:
            alerts.append(SensorAlert(
                sensor_pk=sensor.id,
                alert_type='threshold',
                severity='high' if value > high * 1.5 else 'medium',
                message=f"Reading ({value}) is above high threshold ({high})",
                threshold_value=high,
                current_value=value,
            ))
        return alerts

    @staticmethod
    def record_reading(sensor, value, unit=None, raw_data=None, quality_score=None):
        """Store a reading plus any threshold/anomaly alerts it raises. Returns (reading, alerts)."""
        spec = SENSOR_TYPES.get(sensor.sensor_type) or {}
        if spec and not spec['min_value'] <= value <= spec['max_value']:
            logger.warning(f"Reading {value} outside expected range [{spec['min_value']}, {spec['max_value']}] "
                           f"for sensor {sensor.sensor_id}")

        recent = (SensorReading.query.filter_by(sensor_pk=sensor.id)
                  .order_by(SensorReading.recorded_at.desc())
                  .limit(ANOMALY_WINDOW).all())
        anomaly = SensorService.detect_anomaly(value, [r.reading_value for r in recent])

        now = datetime.datetime.utcnow()
        reading = SensorReading(
            sensor_pk=sensor.id,
            reading_value=value,
            unit=unit or spec.get('unit'),
            raw_data=raw_data or None,
            quality_score=1.0 if quality_score is None else quality_score,
            anomaly_detected=anomaly is not None,
            anomaly_details=anomaly,
            recorded_at=now,
        )
        alerts = SensorService.threshold_alerts(sensor, value)
        if anomaly:
            alerts.append(SensorAlert(
                sensor_pk=sensor.id,
                alert_type='anomaly',
                severity='medium',
                message="Statistical anomaly detected in sensor reading",
                anomaly_details=anomaly,
                current_value=value,
            ))

        sensor.last_reading_at = now
        db.session.add(reading)
        db.session.add_all(alerts)
        db.session.commit()
        if alerts:
            logger.info(f"Sensor {sensor.sensor_id} reading {value} raised {len(alerts)} alert(s)")
        return reading, alerts

    @staticmethod
    def _readings_query(user, sensor_code=None, sensor_type=None, field_id=None):
        query = SensorReading.query.join(IotSensor).filter(IotSensor.user_id == user.id)
        if sensor_code:
            query = query.filter(IotSensor.sensor_id == sensor_code)
        if sensor_type:
            query = query.filter(IotSensor.sensor_type == sensor_type)
        if field_id:
            query = query.filter(IotSensor.field_id == field_id)
        return query

    @staticmethod
    def list_readings(user, sensor_code=None, sensor_type=None, field_id=None, hours=24, limit=100):
        """Newest readings first; ``hours`` <= 0 disables the time window."""
        query = SensorService._readings_query(user, sensor_code, sensor_type, field_id)
        if hours > 0:
            since = datetime.datetime.utcnow() - datetime.timedelta(hours=hours)
            query = query.filter(SensorReading.recorded_at >= since)
        readings = query.order_by(SensorReading.recorded_at.desc()).limit(limit).all()
        return [r.to_dict() for r in readings]

    # ──────────────────────────────────────────
    # ANALYTICS
    # ──────────────────────────────────────────

    @staticmethod
    def bucket_start(moment, aggregation):
        if aggregation == 'hourly':
            return moment.replace(minute=0, second=0, microsecond=0)
        if aggregation == 'daily':
            return moment.replace(hour=0, minute=0, second=0, microsecond=0)
        if aggregation == 'weekly':
            monday = moment - datetime.timedelta(days=moment.weekday())
            return monday.replace(hour=0, minute=0, second=0, microsecond=0)
        return moment

    @staticmethod
    def time_series(readings, aggregation):
        """Per-sensor buckets with mean/min/max value, mean quality and anomaly count."""
        buckets = {}
        for r in readings:
            key = (r.sensor.sensor_id, r.sensor.sensor_type, SensorService.bucket_start(r.recorded_at, aggregation))
            buckets.setdefault(key, []).append(r)

        series = []
        for (sensor_code, sensor_type, start), group in buckets.items():
            values = [r.reading_value for r in group]
            sensor = group[0].sensor
            series.append({
                'timestamp': start.isoformat(),
                'sensor_id': sensor_code,
                'sensor_type': sensor_type,
                'field_id': sensor.field_id,
                'field_name': sensor.field.field_name if sensor.field else None,
                'unit': group[0].unit,
                'reading_value': round(_mean(values), 2),
                'min_value': min(values),
                'max_value': max(values),
                'quality_score': round(_mean([r.quality_score or 1 for r in group]), 3),
                'anomaly_count': sum(1 for r in group if r.anomaly_detected),
                'reading_count': len(group),
            })
        return series

    @staticmethod
    def summary_stats(readings):
        values = [r.reading_value for r in readings]
        anomalies = sum(1 for r in readings if r.anomaly_detected)

        by_type = {}
        for r in readings:
            by_type.setdefault(r.sensor.sensor_type, []).append(r.reading_value)

        return {
            'total_readings': len(readings),
            'average_value': round(_mean(values), 2),
            'min_value': min(values),
            'max_value': max(values),
            'average_quality': round(_mean([r.quality_score or 1 for r in readings]), 3),
            'anomaly_count': anomalies,
            'anomaly_rate': round(anomalies / len(readings) * 100, 2),
            'sensor_types': {
                sensor_type: {
                    'count': len(type_values),
                    'average': round(_mean(type_values), 2),
                    'min': min(type_values),
                    'max': max(type_values),
                    'latest': type_values[-1],
                }
                for sensor_type, type_values in by_type.items()
            },
            'time_range': {
                'start': readings[0].recorded_at.isoformat(),
                'end': readings[-1].recorded_at.isoformat(),
            },
        }

    @staticmethod
    def trends(readings):
        """
        First-to-last change per sensor type, oldest reading first.
        More than ±10% is increasing/decreasing; confidence is high with 10+
        points and a coefficient of variation under 0.2, low under 5 points
        or above 0.5.
        """
        by_type = {}
        for r in readings:
            by_type.setdefault(r.sensor.sensor_type, []).append(r.reading_value)

        result = {}
        for sensor_type, values in by_type.items():
            if len(values) < 2:
                result[sensor_type] = {'trend': 'stable', 'change': 0, 'confidence': 'low'}
                continue

            first, last = values[0], values[-1]
            change = (last - first) / abs(first) * 100 if first else 0.0
            trend = 'stable'
            if abs(change) > TREND_THRESHOLD_PERCENT:
                trend = 'increasing' if change > 0 else 'decreasing'

            avg = _mean(values)
            variation = _population_std(values) / abs(avg) if avg else math.inf
            confidence = 'medium'
            if len(values) >= 10 and variation < 0.2:
                confidence = 'high'
            elif len(values) < 5 or variation > 0.5:
                confidence = 'low'

            result[sensor_type] = {
                'trend': trend,
                'change': round(change, 2),
                'confidence': confidence,
                'first_value': first,
                'last_value': last,
                'data_points': len(values),
            }
        return result

    @staticmethod
    def sensor_health(user):
        sensors = IotSensor.query.filter_by(user_id=user.id).all()
        batteries = [s.battery_level for s in sensors if s.battery_level is not None]

        by_type = {}
        for s in sensors:
            entry = by_type.setdefault(s.sensor_type, {'total': 0, 'active': 0, 'offline': 0})
            entry['total'] += 1
            if s.status in ('active', 'offline'):
                entry[s.status] += 1

        return {
            'total_sensors': len(sensors),
            'active_sensors': sum(1 for s in sensors if s.status == 'active'),
            'offline_sensors': sum(1 for s in sensors if s.status == 'offline'),
            'maintenance_sensors': sum(1 for s in sensors if s.status == 'maintenance'),
            'low_battery_sensors': sum(1 for level in batteries if level < 20),
            'average_battery_level': round(_mean(batteries), 1) if batteries else 0,
            'sensors_by_type': by_type,
        }

    @staticmethod
    def analytics(user, period=DEFAULT_PERIOD, aggregation='hourly', sensor_code=None, sensor_type=None,
                  field_id=None):
        since = datetime.datetime.utcnow() - datetime.timedelta(hours=ANALYTICS_PERIODS[period])
        readings = (SensorService._readings_query(user, sensor_code, sensor_type, field_id)
                    .filter(SensorReading.recorded_at >= since)
                    .order_by(SensorReading.recorded_at.asc())
                    .all())
        if not readings:
            return None

        alerts = (SensorAlert.query.join(IotSensor)
                  .filter(IotSensor.user_id == user.id, SensorAlert.created_at >= since)
                  .order_by(SensorAlert.created_at.desc())
                  .all())
        return {
            'time_series': SensorService.time_series(readings, aggregation),
            'summary': SensorService.summary_stats(readings),
            'trends': SensorService.trends(readings),
            'alerts': [a.to_dict() for a in alerts],
            'sensor_health': SensorService.sensor_health(user),
        }
