from flask import Flask
from flask_cors import CORS
from flask_jwt_extended import JWTManager
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from config import Config
from database.db import db
from services.auth_service import register_jwt_handlers
from services.observability import setup_observability
from routes.auth_routes import auth_bp
from routes.profile_routes import profile_bp
from routes.field_routes import field_bp
from routes.crop_cycle_routes import crop_cycle_bp
from routes.field_activity_routes import field_activity_bp
from routes.soil_routes import soil_bp
from routes.recommendation_routes import recommendation_bp
from routes.scheme_routes import scheme_bp
from routes.encyclopedia_routes import encyclopedia_bp
from routes.market_routes import market_bp
from routes.weather_routes import weather_bp
from routes.disease_routes import disease_bp
from routes.sensor_routes import sensor_bp
from routes.sms_routes import sms_bp
from routes.admin_routes import admin_bp
import atexit


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    jwt = JWTManager(app)
    register_jwt_handlers(jwt)

    db.init_app(app)
    CORS(app, supports_credentials=True)

    # ── Rate Limiting ──
    limiter = Limiter(
        get_remote_address,
        app=app,
        default_limits=["60 per minute"],
        storage_uri="memory://",
    )
    # Stricter limit for auth endpoints
    limiter.limit("10 per minute")(auth_bp)

    # ── Observability ──
    setup_observability(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(profile_bp)
    app.register_blueprint(field_bp)
    app.register_blueprint(crop_cycle_bp)
    app.register_blueprint(field_activity_bp)
    app.register_blueprint(soil_bp)
    app.register_blueprint(recommendation_bp)
    app.register_blueprint(scheme_bp)
    app.register_blueprint(encyclopedia_bp)
    app.register_blueprint(market_bp)
    app.register_blueprint(weather_bp)
    app.register_blueprint(disease_bp)
    app.register_blueprint(sensor_bp)
    app.register_blueprint(sms_bp)
    app.register_blueprint(admin_bp)

    with app.app_context():
        db.create_all()

    # ── Background Scheduler ──
    if app.config.get('SCHEDULER_ENABLED'):
        from services.scheduler import init_scheduler, shutdown_scheduler
        init_scheduler(app)
        atexit.register(shutdown_scheduler)

    @app.route('/')
    def index():
        return {"message": "AgriSmart API is running", "version": "1.0"}

    return app


if __name__ == '__main__':
    app = create_app()
    app.run(host='0.0.0.0', port=5000)
