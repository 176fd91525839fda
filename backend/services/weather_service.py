"""
Weather Service: current conditions, 5-day outlook and farm alerts.

Source order for /api/weather:
  1. OpenWeatherMap (needs lat/lon and OPENWEATHER_API_KEY)
  2. Latest cached WeatherReading rows for the location
  3. Open-Meteo (keyless; coordinates from the request or a city table)
  4. Built-in sample payload
Fresh readings from 1 and 3 are cached as WeatherReading rows.
"""

import datetime
import logging

import requests
from flask import current_app

from database.db import db
from database.models import WeatherReading, WeatherAlert

logger = logging.getLogger('weather_service')


def _day_label(index, day):
    if index == 0:
        return "Today"
    if index == 1:
        return "Tomorrow"
    return day.strftime('%a')


class WeatherService:
    CURRENT_URL = "https://api.openweathermap.org/data/2.5/weather"
    FORECAST_URL = "https://api.openweathermap.org/data/2.5/forecast"
    OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"

    DEFAULT_LOCATION = "Delhi"
    DEFAULT_COORDINATES = {
        "delhi": (28.6139, 77.209),
        "mumbai": (19.076, 72.8777),
        "pune": (18.5204, 73.8567),
        "nagpur": (21.1458, 79.0882),
        "kolkata": (22.5726, 88.3639),
        "chennai": (13.0827, 80.2707),
    }

    # Open-Meteo WMO weather codes
    WEATHER_CODES = {
        0: "clear",
        1: "partly-cloudy", 2: "partly-cloudy",
        3: "cloudy",
        45: "fog", 48: "fog",
        51: "rain", 53: "rain", 55: "rain", 61: "rain", 63: "rain",
        65: "rainy",
        71: "snow", 73: "snow", 75: "snow",
        80: "rain", 81: "rain", 82: "rain",
        95: "thunderstorm", 96: "thunderstorm", 99: "thunderstorm",
    }

    ALERT_RETENTION_HOURS = 24

    @staticmethod
    def map_weather_code(code):
        return WeatherService.WEATHER_CODES.get(code, "partly-cloudy")

    @staticmethod
    def get_weather(location=None, lat=None, lon=None):
        location = (location or WeatherService.DEFAULT_LOCATION).strip().lower()
        display_name = location.capitalize()

        weather = None
        if lat is not None and lon is not None:
            weather = WeatherService.fetch_openweathermap(lat, lon)

        if weather is None:
            weather = WeatherService.from_cache(display_name)

        if weather is None:
            if lat is not None and lon is not None:
                coords = (lat, lon)
            else:
                coords = WeatherService.DEFAULT_COORDINATES.get(location, WeatherService.DEFAULT_COORDINATES['delhi'])
            weather = WeatherService.fetch_open_meteo(coords[0], coords[1], display_name)

        if weather is None:
            weather = WeatherService.sample_weather(display_name)

        return weather

    # ──────────────────────────────────────────
    # PROVIDERS
    # ──────────────────────────────────────────

    @staticmethod
    def fetch_openweathermap(lat, lon):
        api_key = current_app.config.get('OPENWEATHER_API_KEY')
        if not api_key:
            return None

        params = {'lat': lat, 'lon': lon, 'appid': api_key, 'units': 'metric'}
        timeout = current_app.config['HTTP_TIMEOUT_SECONDS']
        try:
            current_resp = requests.get(WeatherService.CURRENT_URL, params=params, timeout=timeout)
            forecast_resp = requests.get(WeatherService.FORECAST_URL, params=params, timeout=timeout)
            if current_resp.status_code != 200 or forecast_resp.status_code != 200:
                return None
            current = current_resp.json()
            forecast_data = forecast_resp.json()

            # One entry per calendar day from the 3-hourly list
            forecast = []
            seen_days = set()
            for item in forecast_data.get('list', [])[:40]:
                day = datetime.datetime.fromtimestamp(item['dt'], tz=datetime.timezone.utc).date()
                if day in seen_days or len(forecast) >= 5:
                    continue
                seen_days.add(day)
                forecast.append({
                    'day': _day_label(len(forecast), day),
                    'temp': round(item['main']['temp']),
                    'condition': item['weather'][0]['main'].lower(),
                    'rain': round((item.get('pop') or 0) * 100),
                })

            weather = {
                'temperature': round(current['main']['temp']),
                'condition': current['weather'][0]['main'].lower(),
                'humidity': current['main']['humidity'],
                'wind_speed': round(current['wind']['speed'] * 3.6),  # m/s → km/h
                'rainfall': (current.get('rain') or {}).get('1h', 0),
                'visibility': round(current['visibility'] / 1000) if current.get('visibility') else 10,
                'pressure': current['main'].get('pressure'),
                'uv_index': 5,
                'location': current.get('name'),
                'forecast': forecast,
                'source': 'openweathermap',
            }
        except (requests.RequestException, KeyError, IndexError, TypeError, ValueError) as e:
            logger.warning(f"OpenWeatherMap lookup failed: {e}")
            return None

        WeatherService.cache_reading(weather)
        return weather

    @staticmethod
    def fetch_open_meteo(lat, lon, location_name):
        params = {
            'latitude': lat,
            'longitude': lon,
            'current_weather': 'true',
            'hourly': 'relativehumidity_2m,precipitation',
            'daily': 'temperature_2m_max,temperature_2m_min,precipitation_probability_max,weathercode',
            'timezone': 'auto',
        }
        try:
            response = requests.get(
                WeatherService.OPEN_METEO_URL, params=params, timeout=current_app.config['HTTP_TIMEOUT_SECONDS']
            )
            if response.status_code != 200:
                return None
            data = response.json()
            current = data.get('current_weather')
            if not current:
                return None

            hourly = data.get('hourly') or {}
            daily = data.get('daily') or {}
            humidity = (hourly.get('relativehumidity_2m') or [60])[0]
            rainfall = (hourly.get('precipitation') or [0])[0]

            forecast = []
            for index, day in enumerate((daily.get('time') or [])[:5]):
                max_temps = daily.get('temperature_2m_max') or []
                codes = daily.get('weathercode') or []
                rain = daily.get('precipitation_probability_max') or []
                forecast.append({
                    'day': _day_label(index, datetime.date.fromisoformat(day)),
                    'temp': round(max_temps[index] if index < len(max_temps) else current['temperature']),
                    'condition': WeatherService.map_weather_code(codes[index] if index < len(codes) else None),
                    'rain': (rain[index] if index < len(rain) else 0) or 0,
                })

            weather = {
                'temperature': round(current['temperature']),
                'condition': WeatherService.map_weather_code(current.get('weathercode')),
                'humidity': round(humidity),
                'wind_speed': round(current['windspeed']),
                'rainfall': round(rainfall, 1),
                'visibility': 8,
                'pressure': 1013,
                'uv_index': 5,
                'location': location_name,
                'forecast': forecast,
                'source': 'open-meteo',
            }
        except (requests.RequestException, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Open-Meteo lookup failed: {e}")
            return None

        WeatherService.cache_reading(weather)
        return weather

    @staticmethod
    def from_cache(location_name):
        """Rebuild a payload from the newest stored readings (most recent first)."""
        rows = (
            WeatherReading.query.filter_by(location=location_name)
            .order_by(WeatherReading.recorded_on.desc(), WeatherReading.id.desc())
            .limit(7)
            .all()
        )
        if not rows:
            return None

        current = rows[0]
        return {
            'temperature': current.temperature,
            'condition': current.condition,
            'humidity': current.humidity,
            'wind_speed': current.wind_speed,
            'rainfall': current.rainfall,
            'visibility': 8,
            'pressure': 1013,
            'uv_index': 5,
            'location': current.location,
            'forecast': [
                {'day': _day_label(i, r.recorded_on), 'temp': r.temperature, 'condition': r.condition, 'rain': 0}
                for i, r in enumerate(rows[:5])
            ],
            'source': 'cache',
        }

    @staticmethod
    def sample_weather(location_name):
        today = datetime.date.today()
        return {
            'temperature': 28,
            'condition': 'partly-cloudy',
            'humidity': 65,
            'wind_speed': 12,
            'rainfall': 0,
            'visibility': 10,
            'pressure': 1013,
            'uv_index': 5,
            'location': location_name,
            'forecast': [
                {'day': _day_label(i, today + datetime.timedelta(days=i)), 'temp': 28 + i % 3, 'condition': 'partly-cloudy', 'rain': 10}
                for i in range(5)
            ],
            'source': 'sample',
        }

    @staticmethod
    def cache_reading(weather):
        try:
            db.session.add(WeatherReading(
                location=weather.get('location') or WeatherService.DEFAULT_LOCATION,
                temperature=weather.get('temperature'),
                humidity=weather.get('humidity'),
                rainfall=weather.get('rainfall'),
                wind_speed=weather.get('wind_speed'),
                condition=weather.get('condition'),
                source=weather.get('source'),
            ))
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Failed to cache weather reading: {e}")

    # ──────────────────────────────────────────
    # ALERTS
    # ──────────────────────────────────────────

    @staticmethod
    def build_alerts(weather):
        """Threshold alerts with en/hi/mr text. Pure function of the payload."""
        alerts = []
        temp = weather.get('temperature')
        humidity = weather.get('humidity')
        wind = weather.get('wind_speed')
        rainfall = weather.get('rainfall') or 0
        condition = (weather.get('condition') or '').lower()

        if 'rain' in condition or rainfall > 0:
            alerts.append({
                'id': 'rain_alert', 'type': 'warning', 'priority': 'high', 'icon': 'rain',
                'title': {'en': "Rain Expected", 'hi': "बारिश की संभावना", 'mr': "पाऊस अपेक्षित"},
                'message': {
                    'en': f"Light rain expected today. Plan irrigation accordingly. Expected rainfall: {rainfall}mm",
                    'hi': f"आज हल्की बारिश की संभावना है। सिंचाई की योजना बनाएं। अपेक्षित वर्षा: {rainfall}mm",
                    'mr': f"आज हलका पाऊस अपेक्षित आहे. पाणीपुरवठा योजना करा. अपेक्षित पाऊस: {rainfall}mm",
                },
            })

        if temp is not None and 20 <= temp <= 25:
            alerts.append({
                'id': 'temp_optimal', 'type': 'info', 'priority': 'medium', 'icon': 'temperature',
                'title': {'en': "Optimal Temperature", 'hi': "अनुकूल तापमान", 'mr': "अनुकूल तापमान"},
                'message': {
                    'en': f"Current temperature ({temp}°C) is ideal for wheat germination",
                    'hi': f"वर्तमान तापमान ({temp}°C) गेहूं के अंकुरण के लिए आदर्श है",
                    'mr': f"सध्याचे तापमान ({temp}°C) गव्हाच्या उगवणीसाठी आदर्श आहे",
                },
            })

        if temp is not None and temp > 35:
            alerts.append({
                'id': 'heat_warning', 'type': 'warning', 'priority': 'high', 'icon': 'sun',
                'title': {'en': "High Temperature Alert", 'hi': "उच्च तापमान चेतावनी", 'mr': "उच्च तापमान इशारा"},
                'message': {
                    'en': f"Temperature is {temp}°C. Increase irrigation and provide shade to sensitive crops",
                    'hi': f"तापमान {temp}°C है। सिंचाई बढ़ाएं और संवेदनशील फसलों को छाया प्रदान करें",
                    'mr': f"तापमान {temp}°C आहे. पाणीपुरवठा वाढवा आणि संवेदनशील पिकांना सावली द्या",
                },
            })

        if humidity is not None and humidity < 40:
            alerts.append({
                'id': 'low_humidity', 'type': 'warning', 'priority': 'medium', 'icon': 'droplets',
                'title': {'en': "Low Humidity Alert", 'hi': "कम नमी चेतावनी", 'mr': "कमी आर्द्रता इशारा"},
                'message': {
                    'en': f"Humidity is {humidity}%. Increase irrigation frequency",
                    'hi': f"नमी {humidity}% है। सिंचाई की आवृत्ति बढ़ाएं",
                    'mr': f"आर्द्रता {humidity}% आहे. पाणीपुरवठा वारंवारता वाढवा",
                },
            })

        if wind is not None and wind > 40:
            alerts.append({
                'id': 'wind_warning', 'type': 'danger', 'priority': 'high', 'icon': 'wind',
                'title': {'en': "Strong Wind Alert", 'hi': "तेज़ हवा चेतावनी", 'mr': "जोरदार वारा इशारा"},
                'message': {
                    'en': f"Strong winds ({wind} km/h). Protect tall crops and structures",
                    'hi': f"तेज़ हवाएं ({wind} km/h)। ऊंची फसलों और संरचनाओं की सुरक्षा करें",
                    'mr': f"जोरदार वारा ({wind} km/h). उंच पिके आणि संरचनांचे संरक्षण करा",
                },
            })

        forecast = weather.get('forecast') or []
        if len(forecast) > 1 and (forecast[1].get('rain') or 0) > 50:
            chance = forecast[1]['rain']
            alerts.append({
                'id': 'forecast_rain', 'type': 'info', 'priority': 'medium', 'icon': 'calendar',
                'title': {'en': "Rain Forecast", 'hi': "बारिश का पूर्वानुमान", 'mr': "पाऊस अंदाज"},
                'message': {
                    'en': f"Rain expected tomorrow ({chance}% chance). Prepare accordingly",
                    'hi': f"कल बारिश की संभावना ({chance}%)। तैयारी करें",
                    'mr': f"उद्या पाऊस अपेक्षित ({chance}% शक्यता). तयारी करा",
                },
            })

        now = datetime.datetime.utcnow().isoformat()
        for alert in alerts:
            alert['timestamp'] = now
        return alerts

    @staticmethod
    def prune_alerts(location=None, hours=None):
        """Delete alerts older than the retention window. Returns the number removed."""
        cutoff = datetime.datetime.utcnow() - datetime.timedelta(hours=hours or WeatherService.ALERT_RETENTION_HOURS)
        query = WeatherAlert.query.filter(WeatherAlert.created_at < cutoff)
        if location:
            query = query.filter(WeatherAlert.location == location)
        return query.delete(synchronize_session=False)

    @staticmethod
    def get_alerts(location=None, lat=None, lon=None):
        """Recompute alerts from current weather and store them for the location."""
        location = location or WeatherService.DEFAULT_LOCATION
        weather = WeatherService.get_weather(location, lat, lon)
        alerts = WeatherService.build_alerts(weather)

        if alerts:
            WeatherService.prune_alerts(location)
            for alert in alerts:
                db.session.add(WeatherAlert(
                    location=location,
                    alert_key=alert['id'],
                    type=alert['type'],
                    priority=alert['priority'],
                    title=alert['title'],
                    message=alert['message'],
                    icon=alert['icon'],
                ))
            db.session.commit()

        return alerts
