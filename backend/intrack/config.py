"""Configuration module for InTrack."""
import os
from datetime import timedelta


class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ECHO = False

    # JWT Configuration
    JWT_SECRET_KEY = os.environ.get('JWT_SECRET_KEY') or 'jwt-secret-key-change-in-production'
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(hours=2)
    JWT_REFRESH_TOKEN_EXPIRES = timedelta(days=7)
    JWT_ALGORITHM = 'HS256'

    # CORS
    CORS_ORIGINS = os.environ.get('FRONTEND_URL', 'http://localhost:8083').split(',')

    # Rate Limiting
    RATELIMIT_STORAGE_URI = os.environ.get('REDIS_URL') or 'memory://'
    RATELIMIT_DEFAULT = "200 per day, 50 per hour"

    # QR tokens
    QR_TOKEN_TTL_MINUTES = int(os.environ.get('QR_EXPIRE_MINUTES', 15))
    QR_TOKEN_BYTES = 32  # 256 bits, hex encoded
    QR_IMAGE_BOX_SIZE = 10
    QR_IMAGE_BORDER = 2
    QR_FILL_COLOR = '#1F2937'
    QR_BACK_COLOR = '#FFFFFF'

    # Visit location
    VISIT_DEFAULT_RADIUS_METERS = 100
    VISIT_MIN_RADIUS_METERS = 50
    VISIT_MAX_RADIUS_METERS = 10000

    # Pagination
    DEFAULT_PAGE_SIZE = 10
    MAX_PAGE_SIZE = 100


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    TESTING = False
    SQLALCHEMY_DATABASE_URI = os.environ.get('DEV_DATABASE_URL') or \
        'sqlite:///intrack_dev.db'


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
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=5)
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URI = 'memory://'


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config(config_name=None):
    """Get configuration by name."""
    return config.get(config_name or os.environ.get('FLASK_ENV', 'default'), DevelopmentConfig)
