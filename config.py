import os
from datetime import timedelta
from dotenv import load_dotenv

load_dotenv()


def _split_origins(value):
    return [origin.strip() for origin in value.split(',') if origin.strip()]


class Config:
    # Database configuration
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///buffet.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_recycle": 300,
        "pool_pre_ping": True,
    }

    # JWT configuration
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or os.environ.get('SESSION_SECRET', 'development_jwt_secret')
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=24)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=30)
    JWT_TOKEN_LOCATION = ['headers', 'cookies']
    JWT_ACCESS_COOKIE_NAME = 'buffet.sid'
    JWT_COOKIE_SECURE = False
    JWT_COOKIE_SAMESITE = 'Lax'
    JWT_COOKIE_CSRF_PROTECT = False

    # CORS configuration
    CORS_ORIGINS = _split_origins(os.environ.get(
        'CORS_ORIGINS',
        'http://localhost:5173,http://localhost:5174,http://localhost:5175'
    ))

    # Upload configuration
    UPLOAD_FOLDER = os.environ.get('UPLOAD_FOLDER', os.path.join(os.getcwd(), 'uploads'))
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024  # 10 MB max upload

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

    # Seed administrator
    ADMIN_USERNAME = os.environ.get('ADMIN_USERNAME', 'admin')
    ADMIN_EMAIL = os.environ.get('ADMIN_EMAIL', 'admin@buffet.com')
    ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD', 'admin123')

    # Dashboard metrics cache, in seconds
    DASHBOARD_CACHE_TTL = int(os.environ.get('DASHBOARD_CACHE_TTL', 120))

    # Per-IP rate limiting (Flask-Limiter)
    RATELIMIT_ENABLED = True
    RATELIMIT_DEFAULT = os.environ.get('RATELIMIT_DEFAULT', '100 per 15 minutes')
    RATELIMIT_STORAGE_URI = os.environ.get('RATELIMIT_STORAGE_URI', 'memory://')
    RATELIMIT_HEADERS_ENABLED = True

    # Let flask-jwt-extended and app-level handlers see exceptions raised in resources
    PROPAGATE_EXCEPTIONS = True
    RESTX_MASK_SWAGGER = False
    RESTX_ERROR_404_HELP = False

    ENVIRONMENT = 'development'

class DevelopmentConfig(Config):
    DEBUG = True
    TESTING = False
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')

class TestingConfig(Config):
    DEBUG = True
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    JWT_SECRET_KEY = 'testing_jwt_secret_with_enough_length'
    RATELIMIT_ENABLED = False
    ENVIRONMENT = 'testing'

class ProductionConfig(Config):
    DEBUG = False
    TESTING = False
    JWT_COOKIE_SECURE = True
    JWT_COOKIE_SAMESITE = 'None'
    ENVIRONMENT = 'production'
