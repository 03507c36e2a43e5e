"""Configuration module for the QR check-in service."""
import os
from datetime import timedelta


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False

    # JWT Configuration
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or 'jwt-secret-key-change-in-production'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=2)
    JWT_ALGORITHM = 'HS256'

    # CORS
    CORS_ORIGINS = ["http://localhost:*", "http://127.0.0.1:*"]

    # Rate Limiting (Flask-Limiter, per IP on teacher endpoints)
    RATELIMIT_STORAGE_URI = os.environ.get('REDIS_URL') or 'memory://'
    RATELIMIT_DEFAULT = "200 per day, 50 per hour"
    SESSION_CREATE_RATE_LIMIT = os.environ.get('SESSION_CREATE_RATE_LIMIT') or "5 per minute"
    TOKEN_ISSUE_RATE_LIMIT = os.environ.get('TOKEN_ISSUE_RATE_LIMIT') or "30 per minute"

    # Check-in throttle (store-backed sliding window)
    CHECKIN_RATE_LIMIT = int(os.environ.get('CHECKIN_RATE_LIMIT', 10))
    CHECKIN_RATE_WINDOW_SECONDS = int(os.environ.get('CHECKIN_RATE_WINDOW_SECONDS', 60))

    # Attendance tokens
    QR_SECRET = os.environ.get('QR_SECRET')
    QR_TOKEN_TTL_SECONDS = int(os.environ.get('QR_TOKEN_TTL_SECONDS', 60))
    QR_TOKEN_CLOCK_SKEW_SECONDS = int(os.environ.get('QR_TOKEN_CLOCK_SKEW_SECONDS', 5))

    # School geofence defaults, used until an admin stores a location
    SCHOOL_NAME = os.environ.get('SCHOOL_NAME') or 'School Campus'
    SCHOOL_LATITUDE = float(os.environ.get('SCHOOL_LATITUDE', 14.5995))
    SCHOOL_LONGITUDE = float(os.environ.get('SCHOOL_LONGITUDE', 120.9842))
    SCHOOL_RADIUS_METERS = float(os.environ.get('SCHOOL_RADIUS_METERS', 500))
    SCHOOL_ALLOW_OUT_OF_RANGE = _env_bool('SCHOOL_ALLOW_OUT_OF_RANGE')
    SCHOOL_LOCATION_CACHE_TTL = int(os.environ.get('SCHOOL_LOCATION_CACHE_TTL', 30))
    MIN_RADIUS_METERS = 10
    MAX_RADIUS_METERS = 10000

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL') or 'INFO'
    LOG_FILE = os.environ.get('LOG_FILE') or 'logs/app.log'


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False
    SQLALCHEMY_DATABASE_URI = os.environ.get('DEV_DATABASE_URL') or \
        'sqlite:///qr_checkin_dev.db'
    QR_SECRET = os.environ.get('QR_SECRET') or 'dev-qr-secret-change-in-production'
    LOG_LEVEL = 'DEBUG'


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    TESTING = False
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL')

    # Enhanced security
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'

    # Stricter limits
    RATELIMIT_DEFAULT = "100 per day, 20 per hour"


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=5)
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = 'memory://'

    QR_SECRET = 'test-qr-secret'
    QR_TOKEN_TTL_SECONDS = 60
    CHECKIN_RATE_LIMIT = 5
    CHECKIN_RATE_WINDOW_SECONDS = 60

    SCHOOL_NAME = 'Test Campus'
    SCHOOL_LATITUDE = 14.5995
    SCHOOL_LONGITUDE = 120.9842
    SCHOOL_RADIUS_METERS = 500.0
    SCHOOL_ALLOW_OUT_OF_RANGE = False
    SCHOOL_LOCATION_CACHE_TTL = 0

    LOG_LEVEL = 'WARNING'


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config(config_name=None):
    """Get configuration by name."""
    return config.get(config_name or os.environ.get('FLASK_ENV', 'default'), config['default'])
