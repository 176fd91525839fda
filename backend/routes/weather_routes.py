from flask import Blueprint, request, jsonify
from services.weather_service import WeatherService

weather_bp = Blueprint("weather_bp", __name__, url_prefix="/api/weather")


def _coordinates():
    lat = request.args.get("lat", type=float)
    lon = request.args.get("lon", type=float)
    if lat is None or lon is None:
        return None, None
    return lat, lon


@weather_bp.route("", methods=["GET"])
def current_weather():
    lat, lon = _coordinates()
    weather = WeatherService.get_weather(request.args.get("location"), lat, lon)
    return jsonify({"success": True, "weather": weather})


@weather_bp.route("/alerts", methods=["GET"])
def weather_alerts():
    location = request.args.get("location") or WeatherService.DEFAULT_LOCATION
    lat, lon = _coordinates()
    alerts = WeatherService.get_alerts(location, lat, lon)
    return jsonify({"success": True, "alerts": alerts, "location": location})
