import uuid
from database.db import db
from datetime import datetime, date


def _uuid():
    return str(uuid.uuid4())


def _iso(value):
    return value.isoformat() if value else None


CROP_CYCLE_STATUSES = ('planning', 'planted', 'growing', 'harvested', 'failed')
ACTIVE_CYCLE_STATUSES = ('planning', 'planted', 'growing')
ALERT_SEVERITIES = ('low', 'medium', 'high', 'critical')
SENSOR_STATUSES = ('active', 'offline', 'maintenance')


# ============================================================================
# 🔹 DOMAIN 1: USER DOMAIN
# ============================================================================

class User(db.Model):
    """Login + Identity. Farm data lives on FarmerProfile / Field."""
    __tablename__ = 'users'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    profile = db.relationship('FarmerProfile', backref='user', uselist=False, cascade='all, delete-orphan')
    fields = db.relationship('Field', backref='user', lazy=True, cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id, 'email': self.email, 'is_admin': self.is_admin,
            'created_at': _iso(self.created_at),
        }


class FarmerProfile(db.Model):
    """Farmer details captured during onboarding, one per user."""
    __tablename__ = 'farmer_profiles'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), unique=True, nullable=True)
    full_name = db.Column(db.String(120))
    phone = db.Column(db.String(20), index=True)
    state = db.Column(db.String(50))
    district = db.Column(db.String(50))
    village = db.Column(db.String(100))
    language = db.Column(db.String(10), default='en')
    farm_name = db.Column(db.String(100))
    farm_size_hectares = db.Column(db.Float)
    primary_crop = db.Column(db.String(50))
    irrigation_method = db.Column(db.String(50))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id, 'user_id': self.user_id,
            'full_name': self.full_name, 'phone': self.phone,
            'state': self.state, 'district': self.district, 'village': self.village,
            'language': self.language, 'farm_name': self.farm_name,
            'farm_size_hectares': self.farm_size_hectares,
            'primary_crop': self.primary_crop,
            'irrigation_method': self.irrigation_method,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }


# ============================================================================
# 🔹 DOMAIN 2: FIELD DOMAIN
# ============================================================================

class Field(db.Model):
    """A farmer-owned land parcel."""
    __tablename__ = 'fields'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    field_name = db.Column(db.String(100), nullable=False)
    area_hectares = db.Column(db.Float, nullable=False)
    soil_type = db.Column(db.String(50))
    irrigation_type = db.Column(db.String(50))
    coordinates = db.Column(db.JSON)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    crop_cycles = db.relationship(
        'CropCycle', backref='field', lazy=True, cascade='all, delete-orphan',
        order_by='CropCycle.created_at.desc()',
    )

    def to_dict(self):
        return {
            'id': self.id, 'user_id': self.user_id,
            'field_name': self.field_name,
            'area_hectares': self.area_hectares,
            'soil_type': self.soil_type, 'irrigation_type': self.irrigation_type,
            'coordinates': self.coordinates,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }

    def summary(self):
        return {'id': self.id, 'field_name': self.field_name, 'area_hectares': self.area_hectares}


class CropCycle(db.Model):
    """One planting-to-harvest lifecycle on a field."""
    __tablename__ = 'crop_cycles'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    field_id = db.Column(db.String(36), db.ForeignKey('fields.id'), nullable=False, index=True)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    crop_name = db.Column(db.String(50), nullable=False)
    variety = db.Column(db.String(100))
    planting_date = db.Column(db.Date)
    expected_harvest_date = db.Column(db.Date)
    actual_harvest_date = db.Column(db.Date)
    status = db.Column(db.String(20), nullable=False, default='planning', index=True)
    yield_quantity = db.Column(db.Float)
    yield_unit = db.Column(db.String(20))
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    activities = db.relationship(
        'FieldActivity', backref='crop_cycle', lazy=True, cascade='all, delete-orphan',
        order_by='FieldActivity.activity_date.desc()',
    )

    @property
    def is_active(self):
        return self.status in ACTIVE_CYCLE_STATUSES

    def to_dict(self):
        return {
            'id': self.id, 'field_id': self.field_id, 'user_id': self.user_id,
            'crop_name': self.crop_name, 'variety': self.variety,
            'planting_date': _iso(self.planting_date),
            'expected_harvest_date': _iso(self.expected_harvest_date),
            'actual_harvest_date': _iso(self.actual_harvest_date),
            'status': self.status,
            'yield_quantity': self.yield_quantity, 'yield_unit': self.yield_unit,
            'notes': self.notes,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }


class FieldActivity(db.Model):
    """Sowing, irrigation, spraying and other work logged against a crop cycle."""
    __tablename__ = 'field_activities'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    crop_cycle_id = db.Column(db.String(36), db.ForeignKey('crop_cycles.id'), nullable=False, index=True)
    field_id = db.Column(db.String(36), db.ForeignKey('fields.id'), nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    activity_type = db.Column(db.String(50), nullable=False)
    activity_date = db.Column(db.Date, nullable=False, default=date.today)
    materials_used = db.Column(db.Text)
    cost = db.Column(db.Float)
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id, 'crop_cycle_id': self.crop_cycle_id,
            'field_id': self.field_id,
            'activity_type': self.activity_type,
            'activity_date': _iso(self.activity_date),
            'materials_used': self.materials_used,
            'cost': self.cost, 'notes': self.notes,
            'created_at': _iso(self.created_at),
        }


class SoilAnalysis(db.Model):
    """Soil test results, either lab-entered or captured by the recommender."""
    __tablename__ = 'soil_analysis'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=True, index=True)
    field_id = db.Column(db.String(36), db.ForeignKey('fields.id', ondelete='SET NULL'), nullable=True, index=True)
    nitrogen = db.Column(db.Float, nullable=False)
    phosphorus = db.Column(db.Float, nullable=False)
    potassium = db.Column(db.Float, nullable=False)
    ph = db.Column(db.Float, nullable=False)
    organic_matter = db.Column(db.Float)
    test_date = db.Column(db.Date, default=date.today)
    location = db.Column(db.String(100))
    season = db.Column(db.String(20))
    rainfall = db.Column(db.Float)
    temperature = db.Column(db.Float)
    suitable_crops = db.Column(db.JSON)
    recommendations = db.Column(db.JSON)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id, 'user_id': self.user_id, 'field_id': self.field_id,
            'nitrogen': self.nitrogen, 'phosphorus': self.phosphorus,
            'potassium': self.potassium, 'ph': self.ph,
            'organic_matter': self.organic_matter,
            'test_date': _iso(self.test_date),
            'location': self.location, 'season': self.season,
            'rainfall': self.rainfall, 'temperature': self.temperature,
            'suitable_crops': self.suitable_crops or [],
            'recommendations': self.recommendations or [],
            'created_at': _iso(self.created_at),
        }


# ============================================================================
# 🔹 DOMAIN 3: REFERENCE DATA (schemes, encyclopedia)
# ============================================================================

class Scheme(db.Model):
    """Government support programme (subsidy, insurance, credit)."""
    __tablename__ = 'schemes'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(200), nullable=False, index=True)
    name_hi = db.Column(db.String(200))
    name_mr = db.Column(db.String(200))
    description = db.Column(db.Text)
    description_hi = db.Column(db.Text)
    description_mr = db.Column(db.Text)
    category = db.Column(db.String(50), index=True)
    state = db.Column(db.String(50), default='All India', index=True)
    department = db.Column(db.String(150))
    eligibility = db.Column(db.Text)
    benefits = db.Column(db.Text)
    application_process = db.Column(db.Text)
    official_url = db.Column(db.String(300))
    contact_info = db.Column(db.String(300))
    is_active = db.Column(db.Boolean, default=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id, 'name': self.name,
            'name_hi': self.name_hi, 'name_mr': self.name_mr,
            'description': self.description,
            'description_hi': self.description_hi, 'description_mr': self.description_mr,
            'category': self.category, 'state': self.state,
            'department': self.department,
            'eligibility': self.eligibility, 'benefits': self.benefits,
            'application_process': self.application_process,
            'official_url': self.official_url, 'contact_info': self.contact_info,
            'is_active': self.is_active,
            'created_at': _iso(self.created_at),
        }


class Crop(db.Model):
    """Crop encyclopedia entry."""
    __tablename__ = 'crops'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    common_name = db.Column(db.String(100), nullable=False, index=True)
    local_name = db.Column(db.String(100))
    scientific_name = db.Column(db.String(150))
    category = db.Column(db.String(50))
    description = db.Column(db.Text)
    climate = db.Column(db.String(200))
    soil_type = db.Column(db.String(200))
    optimal_ph_range = db.Column(db.String(50))
    water_requirements = db.Column(db.String(200))
    fertilizer_requirements = db.Column(db.Text)
    planting_season = db.Column(db.String(100))
    harvest_time = db.Column(db.String(100))
    average_yield = db.Column(db.String(100))
    diseases = db.Column(db.JSON)
    disease_management = db.Column(db.Text)
    market_demand = db.Column(db.String(50))
    image_url = db.Column(db.String(300))
    source = db.Column(db.String(100))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id, 'common_name': self.common_name,
            'local_name': self.local_name, 'scientific_name': self.scientific_name,
            'category': self.category, 'description': self.description,
            'climate': self.climate, 'soil_type': self.soil_type,
            'optimal_ph_range': self.optimal_ph_range,
            'water_requirements': self.water_requirements,
            'fertilizer_requirements': self.fertilizer_requirements,
            'planting_season': self.planting_season,
            'harvest_time': self.harvest_time,
            'average_yield': self.average_yield,
            'diseases': self.diseases or [],
            'disease_management': self.disease_management,
            'market_demand': self.market_demand,
            'image_url': self.image_url, 'source': self.source,
        }


# ============================================================================
# 🔹 DOMAIN 4: MARKET DOMAIN
# ============================================================================

class MarketPrice(db.Model):
    """Daily mandi price records (Agmarknet or manual entry)."""
    __tablename__ = 'market_prices'

    id = db.Column(db.Integer, primary_key=True)
    commodity = db.Column(db.String(50), nullable=False, index=True)
    variety = db.Column(db.String(100))
    market = db.Column(db.String(100), nullable=False, index=True)
    district = db.Column(db.String(50))
    state = db.Column(db.String(50), index=True)
    min_price = db.Column(db.Float)
    max_price = db.Column(db.Float)
    modal_price = db.Column(db.Float)
    unit = db.Column(db.String(20), default='quintal')
    arrival_date = db.Column(db.Date, nullable=False, index=True)
    source = db.Column(db.String(50), default='agmarknet')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint('commodity', 'market', 'arrival_date', name='uq_price_commodity_market_date'),
    )

    def to_dict(self):
        return {
            'id': self.id, 'commodity': self.commodity, 'variety': self.variety,
            'market': self.market, 'district': self.district, 'state': self.state,
            'min_price': self.min_price, 'max_price': self.max_price,
            'modal_price': self.modal_price, 'unit': self.unit,
            'arrival_date': _iso(self.arrival_date),
            'source': self.source,
        }


# ============================================================================
# 🔹 DOMAIN 5: WEATHER DOMAIN
# ============================================================================

class WeatherReading(db.Model):
    """Raw weather snapshot per location, doubles as a fallback cache."""
    __tablename__ = 'weather_readings'

    id = db.Column(db.Integer, primary_key=True)
    location = db.Column(db.String(100), nullable=False, index=True)
    temperature = db.Column(db.Float)
    humidity = db.Column(db.Float)
    rainfall = db.Column(db.Float)
    wind_speed = db.Column(db.Float)
    condition = db.Column(db.String(50))
    source = db.Column(db.String(30))
    recorded_on = db.Column(db.Date, nullable=False, default=date.today, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id, 'location': self.location,
            'temperature': self.temperature, 'humidity': self.humidity,
            'rainfall': self.rainfall, 'wind_speed': self.wind_speed,
            'condition': self.condition, 'source': self.source,
            'recorded_on': _iso(self.recorded_on),
        }


class WeatherAlert(db.Model):
    """Threshold alert derived from a weather reading."""
    __tablename__ = 'weather_alerts'

    id = db.Column(db.Integer, primary_key=True)
    location = db.Column(db.String(100), nullable=False, index=True)
    alert_key = db.Column(db.String(30), nullable=False)
    type = db.Column(db.String(20))
    priority = db.Column(db.String(20))
    title = db.Column(db.JSON)
    message = db.Column(db.JSON)
    icon = db.Column(db.String(30))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            'id': self.alert_key, 'type': self.type, 'priority': self.priority,
            'title': self.title, 'message': self.message, 'icon': self.icon,
            'location': self.location,
            'timestamp': _iso(self.created_at),
        }


# ============================================================================
# 🔹 DOMAIN 6: MONITORING DOMAIN (disease reports, IoT sensors)
# ============================================================================

class DiseaseReport(db.Model):
    """Result of one leaf image analysis."""
    __tablename__ = 'disease_reports'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=True, index=True)
    crop_name = db.Column(db.String(50))
    disease_name = db.Column(db.String(150), nullable=False)
    confidence = db.Column(db.Float)
    severity = db.Column(db.String(20))
    recommendations = db.Column(db.JSON)
    source = db.Column(db.String(30))
    reported_date = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            'id': self.id, 'user_id': self.user_id,
            'crop_name': self.crop_name, 'disease_name': self.disease_name,
            'confidence': self.confidence, 'severity': self.severity,
            'recommendations': self.recommendations,
            'source': self.source,
            'reported_date': _iso(self.reported_date),
        }


class IotSensor(db.Model):
    """A field-mounted sensor registered by a farmer."""
    __tablename__ = 'iot_sensors'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    user_id = db.Column(db.String(36), db.ForeignKey('users.id'), nullable=False, index=True)
    field_id = db.Column(db.String(36), db.ForeignKey('fields.id'), nullable=False)
    sensor_id = db.Column(db.String(64), nullable=False, index=True)
    sensor_type = db.Column(db.String(50))
    status = db.Column(db.String(20), nullable=False, default='active')
    battery_level = db.Column(db.Float)
    last_reading_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    field = db.relationship('Field', backref=db.backref('sensors', cascade='all, delete-orphan'))
    alerts = db.relationship('SensorAlert', backref='sensor', lazy=True, cascade='all, delete-orphan')
    readings = db.relationship('SensorReading', backref='sensor', lazy=True, cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id, 'sensor_id': self.sensor_id,
            'sensor_type': self.sensor_type, 'field_id': self.field_id,
            'field_name': self.field.field_name if self.field else None,
            'status': self.status,
            'battery_level': self.battery_level,
            'last_reading_at': _iso(self.last_reading_at),
            'created_at': _iso(self.created_at),
        }


class SensorReading(db.Model):
    __tablename__ = 'sensor_readings'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    sensor_pk = db.Column(db.String(36), db.ForeignKey('iot_sensors.id'), nullable=False, index=True)
    reading_value = db.Column(db.Float, nullable=False)
    unit = db.Column(db.String(20))
    raw_data = db.Column(db.JSON)
    quality_score = db.Column(db.Float, default=1.0)
    anomaly_detected = db.Column(db.Boolean, default=False)
    anomaly_details = db.Column(db.JSON)
    recorded_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def to_dict(self):
        sensor = self.sensor
        return {
            'id': self.id,
            'sensor_id': sensor.sensor_id if sensor else None,
            'sensor_type': sensor.sensor_type if sensor else None,
            'field_id': sensor.field_id if sensor else None,
            'field_name': sensor.field.field_name if sensor and sensor.field else None,
            'reading_value': self.reading_value,
            'unit': self.unit,
            'raw_data': self.raw_data,
            'quality_score': self.quality_score,
            'anomaly_detected': self.anomaly_detected,
            'anomaly_details': self.anomaly_details,
            'recorded_at': _iso(self.recorded_at),
        }


class SensorAlert(db.Model):
    __tablename__ = 'sensor_alerts'

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    sensor_pk = db.Column(db.String(36), db.ForeignKey('iot_sensors.id'), nullable=False, index=True)
    alert_type = db.Column(db.String(50), nullable=False)
    severity = db.Column(db.String(20), nullable=False, default='medium')
    message = db.Column(db.Text, nullable=False)
    threshold_value = db.Column(db.Float)
    current_value = db.Column(db.Float)
    anomaly_details = db.Column(db.JSON)
    acknowledged = db.Column(db.Boolean, default=False)
    acknowledged_at = db.Column(db.DateTime)
    resolved = db.Column(db.Boolean, default=False)
    resolved_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)

    def to_dict(self):
        return {
            'id': self.id, 'alert_type': self.alert_type,
            'severity': self.severity, 'message': self.message,
            'threshold_value': self.threshold_value,
            'current_value': self.current_value,
            'anomaly_details': self.anomaly_details,
            'acknowledged': self.acknowledged,
            'acknowledged_at': _iso(self.acknowledged_at),
            'resolved': self.resolved,
            'resolved_at': _iso(self.resolved_at),
            'created_at': _iso(self.created_at),
            'sensor': self.sensor.to_dict() if self.sensor else None,
        }
