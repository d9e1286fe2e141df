"""Configuration module for Flask application."""
import os
import tempfile
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '0') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')
    JSON_SORT_KEYS = False

    # Database - Support multiple environment variable naming conventions
    # Priority: DATABASE_URL > DB_* > POSTGRES_*
    DATABASE_URL = os.getenv('DATABASE_URL')

    if not DATABASE_URL:
        # Try DB_* variables (Docker style)
        DB_HOST = os.getenv('DB_HOST') or os.getenv('POSTGRES_HOST', 'localhost')
        DB_PORT = os.getenv('DB_PORT') or os.getenv('POSTGRES_PORT', '5432')
        DB_NAME = os.getenv('DB_NAME') or os.getenv('POSTGRES_DB', 'clearvue')
        DB_USER = os.getenv('DB_USER') or os.getenv('POSTGRES_USER', 'clearvue')
        DB_PASSWORD = os.getenv('DB_PASSWORD') or os.getenv('POSTGRES_PASSWORD', 'clearvue')

        DATABASE_URL = (
            f"postgresql://{DB_USER}:{DB_PASSWORD}"
            f"@{DB_HOST}:{DB_PORT}/{DB_NAME}"
        )

    # SQLAlchemy
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'

    # Record store deadlines and retry policy
    DB_STATEMENT_TIMEOUT_MS = int(os.getenv('DB_STATEMENT_TIMEOUT_MS', '5000'))
    DB_BUSY_TIMEOUT = float(os.getenv('DB_BUSY_TIMEOUT', '5'))  # SQLite only, seconds
    DB_RETRY_ATTEMPTS = int(os.getenv('DB_RETRY_ATTEMPTS', '3'))
    DB_RETRY_BACKOFF = float(os.getenv('DB_RETRY_BACKOFF', '0.1'))

    # Pricing
    TAX_RATE = os.getenv('TAX_RATE', '0.15')

    # Analytics windows (days)
    INVENTORY_WINDOW_DAYS = int(os.getenv('INVENTORY_WINDOW_DAYS', '30'))
    OVERDUE_DAYS = int(os.getenv('OVERDUE_DAYS', '30'))

    # Redis Cache Configuration
    # Analytics responses are cached and dropped whenever a sale commits
    REDIS_URL = os.getenv('REDIS_URL', 'redis://redis:6379/0')
    CACHE_ENABLED = os.getenv('CACHE_ENABLED', 'true').lower() == 'true'
    CACHE_ANALYTICS_TTL = int(os.getenv('CACHE_ANALYTICS_TTL', '60'))  # seconds
    CACHE_KEY_PREFIX = os.getenv('CACHE_KEY_PREFIX', 'clearvue')


class TestConfig(Config):
    """Configuration used by the test suite (throwaway SQLite file, no Redis)."""

    TESTING = True
    SQLALCHEMY_ECHO = False
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'TEST_DATABASE_URL',
        f"sqlite:///{os.path.join(tempfile.gettempdir(), 'clearvue_test.sqlite3')}"
    )
    CACHE_ENABLED = False
    DB_RETRY_ATTEMPTS = 5
    DB_RETRY_BACKOFF = 0.05
