import os


def get_database_uri():
    """
    Resolve the database URI lazily.
    Called when the database connection is actually needed.
    """
    url = os.environ.get('DATABASE_URL')
    if url:
        return url

    user = os.environ.get('MYSQL_USER', 'admin')
    password = os.environ.get('MYSQL_PASSWORD', 'admin123')
    host = os.environ.get('DATABASE_HOST', 'localhost')
    port = os.environ.get('DATABASE_PORT', '3306')
    database = os.environ.get('MYSQL_DATABASE', 'reservation_service_db')
    return f"mysql+pymysql://{user}:{password}@{host}:{port}/{database}"


def _env_bool(key, default):
    return os.environ.get(key, str(default)).lower() == 'true'


class Config:
    """Base configuration"""

    # Flask
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-secret-key-change-in-production'

    # Database - resolved at app creation when not set here
    SQLALCHEMY_DATABASE_URI = None
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }

    # Reservation settings
    RESERVATION_TTL_MINUTES = int(os.environ.get('RESERVATION_TTL_MINUTES', 15))
    DEFAULT_WAREHOUSE_ID = os.environ.get('DEFAULT_WAREHOUSE_ID')

    # Optimistic concurrency
    LEDGER_MAX_ATTEMPTS = int(os.environ.get('LEDGER_MAX_ATTEMPTS', 3))
    LEDGER_RETRY_BACKOFF_SECONDS = float(os.environ.get('LEDGER_RETRY_BACKOFF_SECONDS', 0.05))

    # ERP integration
    ERP_API_BASE_URL = os.environ.get('ERP_API_BASE_URL')
    ERP_API_TOKEN = os.environ.get('ERP_API_TOKEN', '')
    ERP_TIMEOUT_SECONDS = float(os.environ.get('ERP_TIMEOUT_SECONDS', 10))
    ERP_TTL_MINUTES = int(os.environ.get('ERP_TTL_MINUTES', 30))
    ERP_MAX_ATTEMPTS = int(os.environ.get('ERP_MAX_ATTEMPTS', 2))
    ERP_SYNC_MANDATORY = _env_bool('ERP_SYNC_MANDATORY', True)
    ERP_DEFAULT_LOCATION = os.environ.get('ERP_DEFAULT_LOCATION', 'MAIN')

    # Expiry sweeper
    SWEEP_INTERVAL_SECONDS = int(os.environ.get('SWEEP_INTERVAL_SECONDS', 60))

    # Authentication
    JWT_SECRET = os.environ.get('JWT_SECRET', 'dev-jwt-secret-change-in-production')
    JWT_ALGORITHM = os.environ.get('JWT_ALGORITHM', 'HS256')

    # CORS
    CORS_ORIGINS = [o.strip() for o in os.environ.get('CORS_ORIGINS', '*').split(',')]

    # Pagination
    DEFAULT_PAGE_SIZE = int(os.environ.get('DEFAULT_PAGE_SIZE', 20))
    MAX_PAGE_SIZE = int(os.environ.get('MAX_PAGE_SIZE', 100))

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    LOG_LEVEL = 'DEBUG'


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    # Use in-memory SQLite for testing
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    JWT_SECRET = 'test-jwt-secret-with-at-least-32-characters'
    DEFAULT_WAREHOUSE_ID = None
    LEDGER_RETRY_BACKOFF_SECONDS = 0.0
    ERP_API_BASE_URL = 'http://erp.test'
    ERP_API_TOKEN = 'erp-test-token'
    ERP_SYNC_MANDATORY = True


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}
