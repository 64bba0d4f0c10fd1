"""
Centralized Configuration for SolarOps
Manages environment-specific settings for the store, logging and domain defaults.
"""
import os


class Config:
    """Base configuration with defaults"""

    # Database Settings
    DATABASE_URL = os.environ.get('DATABASE_URL', 'sqlite:///solarops.db')
    SQL_ECHO = os.environ.get('SQL_ECHO', 'false').lower() == 'true'
    DB_POOL_SIZE = int(os.environ.get('DB_POOL_SIZE', '5'))
    DB_MAX_OVERFLOW = int(os.environ.get('DB_MAX_OVERFLOW', '10'))
    DB_POOL_RECYCLE = 300  # seconds

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    LOG_FILE = os.environ.get('LOG_FILE', 'solarops.log')
    LOG_DIR = os.environ.get('LOG_DIR', 'logs')
    LOG_TO_FILE = True

    # Authentication
    MIN_PASSWORD_LENGTH = 6
    PASSWORD_HASH_METHOD = 'pbkdf2:sha256'

    # Domain defaults
    DEFAULT_LOW_STOCK_THRESHOLD = 5
    DEFAULT_INSTALLATION_DURATION = 8 * 3600  # 8 hours, in seconds
    DEFAULT_WARRANTY_MONTHS = 12
    RECENT_JOBS_LIMIT = 5
    REVENUE_MILESTONE = 100000


class DevelopmentConfig(Config):
    """Development-specific configuration"""
    DEBUG = True
    TESTING = False
    LOG_LEVEL = 'DEBUG'


class ProductionConfig(Config):
    """Production-specific configuration"""
    DEBUG = False
    TESTING = False
    SQL_ECHO = False


class TestingConfig(Config):
    """Testing-specific configuration"""
    DEBUG = True
    TESTING = True
    # Shared in-memory SQLite database
    DATABASE_URL = 'sqlite://'
    LOG_TO_FILE = False
    # Fewer hash rounds keep the suite fast
    PASSWORD_HASH_METHOD = 'pbkdf2:sha256:1000'


# Configuration selector
config_by_name = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig,
}


def get_config():
    """Get configuration based on APP_ENV environment variable"""
    env = os.environ.get('APP_ENV', 'development')
    return config_by_name.get(env, DevelopmentConfig)


def is_production() -> bool:
    """Check if running in production mode."""
    return os.environ.get('APP_ENV', 'development') == 'production'
