import os
from datetime import timedelta
from dotenv import load_dotenv

# Load .env file
load_dotenv()


def _env_flag(name, default='false'):
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'hard-to-guess-string'
    # Fallback to SQLite for local development if no URL provided
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///agrismart.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session tokens: HS256, 7 days, carried in an HTTP-only cookie or a Bearer header
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or SECRET_KEY
    JWT_TOKEN_LOCATION = ['headers', 'cookies']
    JWT_ACCESS_COOKIE_NAME = 'auth_token'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=7)
    JWT_IDENTITY_CLAIM = 'userId'
    JWT_COOKIE_SECURE = _env_flag('JWT_COOKIE_SECURE')
    JWT_COOKIE_SAMESITE = 'Lax'
    JWT_COOKIE_CSRF_PROTECT = False

    # Comma-separated user ids allowed into /api/admin/*
    ADMIN_USER_IDS = [i.strip() for i in os.environ.get('ADMIN_USER_IDS', '').split(',') if i.strip()]

    # External services
    OPENWEATHER_API_KEY = os.environ.get('OPENWEATHER_API_KEY', '')
    DATA_GOV_API_KEY = os.environ.get('DATA_GOV_API_KEY', '')
    DATA_GOV_RESOURCE_ID = os.environ.get('DATA_GOV_RESOURCE_ID', '9ef84268-d588-465a-a308-a864a43d0070')
    GOOGLE_TRANSLATE_API_KEY = os.environ.get('GOOGLE_TRANSLATE_API_KEY', '')
    GROQ_API_KEY = os.environ.get('GROQ_API_KEY', '')
    GROQ_VISION_MODEL = os.environ.get('GROQ_VISION_MODEL', 'meta-llama/llama-4-scout-17b-16e-instruct')
    MSG91_AUTH_KEY = os.environ.get('MSG91_AUTH_KEY', '')
    MSG91_TEMPLATE_ID = os.environ.get('MSG91_TEMPLATE_ID', '')
    HTTP_TIMEOUT_SECONDS = float(os.environ.get('HTTP_TIMEOUT_SECONDS', '10'))

    SCHEDULER_ENABLED = _env_flag('SCHEDULER_ENABLED', 'true')
    RATELIMIT_ENABLED = _env_flag('RATELIMIT_ENABLED', 'true')


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    JWT_SECRET_KEY = 'test-secret-key-that-is-long-enough-for-hs256'
    JWT_COOKIE_SECURE = False
    ADMIN_USER_IDS = []
    OPENWEATHER_API_KEY = ''
    DATA_GOV_API_KEY = ''
    GOOGLE_TRANSLATE_API_KEY = ''
    GROQ_API_KEY = ''
    MSG91_AUTH_KEY = ''
    SCHEDULER_ENABLED = False
    RATELIMIT_ENABLED = False
