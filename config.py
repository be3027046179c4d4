"""
Centralized Configuration for the Kanban CRM backend
Manages environment-specific settings, database and reordering behaviour.
"""
import os


def _database_url(default):
    url = os.environ.get('DATABASE_URL', default)
    # Handle Render's postgres:// vs postgresql:// URL format
    if url and url.startswith('postgres://'):
        url = url.replace('postgres://', 'postgresql://', 1)
    return url


class Config:
    """Base configuration with defaults"""

    # Flask Settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or os.urandom(32).hex()
    JSON_SORT_KEYS = False

    # CORS Settings
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')
    CORS_METHODS = ['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS']
    CORS_ALLOW_HEADERS = ['Content-Type', 'Authorization', 'X-Requested-With']

    # Database Settings
    DATABASE_URL = _database_url('sqlite:///kanban.db')
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }
    SEED_DATABASE = os.environ.get('SEED_DATABASE', 'false').lower() == 'true'

    # Board defaults
    DEFAULT_BOARD_COLUMNS = ['To Do', 'In Progress', 'Done']

    # Reordering: attempts per request when rows change underneath us
    REORDER_MAX_ATTEMPTS = int(os.environ.get('REORDER_MAX_ATTEMPTS', '3'))
    REORDER_RETRY_DELAY = float(os.environ.get('REORDER_RETRY_DELAY', '0.05'))  # seconds

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    LOG_DIR = os.environ.get('LOG_DIR', 'logs')
    LOG_FILE = os.environ.get('LOG_FILE', 'app.log')


class DevelopmentConfig(Config):
    """Development-specific configuration"""
    DEBUG = True
    TESTING = False
    LOG_LEVEL = 'DEBUG'
    # Allow all CORS in development
    CORS_ORIGINS = ['*']


class ProductionConfig(Config):
    """Production-specific configuration"""
    DEBUG = False
    TESTING = False
    DATABASE_URL = _database_url(None)
    # Strict CORS in production
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', 'http://localhost:5173').split(',')
    PREFERRED_URL_SCHEME = 'https'
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'


class TestingConfig(Config):
    """Testing-specific configuration"""
    DEBUG = True
    TESTING = True
    DATABASE_URL = 'sqlite://'
    SEED_DATABASE = False
    LOG_FILE = None
    REORDER_RETRY_DELAY = 0


# Configuration selector
config_by_name = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig,
}


def get_app_env():
    """Current environment name from FLASK_ENV"""
    return os.environ.get('FLASK_ENV', 'development')


def is_production():
    return get_app_env() == 'production'


def get_config():
    """Get configuration based on FLASK_ENV environment variable"""
    return config_by_name.get(get_app_env(), DevelopmentConfig)
