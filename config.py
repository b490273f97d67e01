"""
Application Configuration

Centralizes all Flask and application configuration settings.
"""

import os

# Base directory of the application
BASE_DIR = os.path.dirname(os.path.abspath(__file__))


def _env_bool(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    """Base configuration class."""

    # Flask settings
    SECRET_KEY = os.environ.get('SECRET_KEY', 'dev-only-change-in-production')

    # SQLAlchemy settings
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL', 'sqlite:///bakery.db')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = os.environ.get('LOG_FORMAT', 'text')

    # Snapshot archive (MinIO / S3-compatible); local directory when not configured
    SNAPSHOT_BUCKET = os.environ.get('SNAPSHOT_BUCKET', 'bakery-snapshots')
    SNAPSHOT_ENDPOINT = os.environ.get('SNAPSHOT_ENDPOINT', '')
    SNAPSHOT_ACCESS_KEY = os.environ.get('SNAPSHOT_ACCESS_KEY', '')
    SNAPSHOT_SECRET_KEY = os.environ.get('SNAPSHOT_SECRET_KEY', '')
    SNAPSHOT_SECURE = _env_bool('SNAPSHOT_SECURE', True)
    SNAPSHOT_LOCAL_DIR = os.environ.get('SNAPSHOT_LOCAL_DIR', os.path.join(BASE_DIR, 'snapshots'))

    # Inventory
    EXPIRY_WARNING_DAYS = int(os.environ.get('EXPIRY_WARNING_DAYS', 7))
    MAX_RECIPE_SCALE = int(os.environ.get('MAX_RECIPE_SCALE', 100))


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'DEBUG')


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False
    LOG_FORMAT = os.environ.get('LOG_FORMAT', 'json')


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SNAPSHOT_ENDPOINT = ''
    SNAPSHOT_ACCESS_KEY = ''
    SNAPSHOT_SECRET_KEY = ''


# Configuration dictionary for easy access
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig
}


def get_config(env=None):
    """Get configuration based on environment."""
    if env is None:
        env = os.environ.get('FLASK_ENV', 'development')
    return config.get(env, config['default'])
