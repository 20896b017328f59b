"""
Application configuration with fail-fast validation.

Secrets and deployment settings come from the environment through
ConfigValidator; the gameplay and rate-limit constants live here.
"""
from datetime import timedelta

from dotenv import load_dotenv

from spinverse_be.config_validator import validate_production_config

load_dotenv()


class Config:
    """Production-ready configuration with fail-fast validation."""

    _validated_config = validate_production_config()

    SECRET_KEY = _validated_config['SECRET_KEY']

    # Database Configuration
    SQLALCHEMY_DATABASE_URI = _validated_config['SQLALCHEMY_DATABASE_URI']
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # JWT Configuration
    JWT_SECRET_KEY = _validated_config['JWT_SECRET_KEY']
    JWT_ACCESS_TOKEN_EXPIRES = _validated_config['JWT_ACCESS_TOKEN_EXPIRES']
    JWT_REFRESH_TOKEN_EXPIRES = _validated_config['JWT_REFRESH_TOKEN_EXPIRES']
    ADMIN_TOKEN_EXPIRES = timedelta(hours=8)

    # Players use HTTP-only cookies, admin dashboard and socket clients send bearer tokens
    JWT_TOKEN_LOCATION = ['headers', 'cookies']
    JWT_COOKIE_SECURE = _validated_config['JWT_COOKIE_SECURE']
    JWT_COOKIE_SAMESITE = 'Strict'
    JWT_COOKIE_CSRF_PROTECT = True
    JWT_ACCESS_COOKIE_NAME = 'access_token_cookie'
    JWT_REFRESH_COOKIE_NAME = 'refresh_token_cookie'

    # Session Configuration
    SESSION_COOKIE_NAME = 'spinverse.session'
    SESSION_COOKIE_SECURE = JWT_COOKIE_SECURE
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Strict'
    PERMANENT_SESSION_LIFETIME = timedelta(hours=24)

    # Rate Limiter Storage URI, shared by Flask-Limiter and the progressive login limiter
    RATELIMIT_STORAGE_URI = _validated_config['RATELIMIT_STORAGE_URI']
    RATELIMIT_DEFAULT = "100 per 15 minutes"

    # Progressive login limiter
    LOGIN_WINDOW_SECONDS = 15 * 60
    LOGIN_BASE_ATTEMPTS = 5
    LOGIN_MIN_ATTEMPTS = 1

    # Withdrawal limiter
    WITHDRAWAL_RATE_LIMIT = "3 per hour"

    DEBUG = _validated_config['DEBUG']

    ADMIN_USERNAME = _validated_config['ADMIN_USERNAME']
    ADMIN_EMAIL = _validated_config['ADMIN_EMAIL']

    CORS_ORIGINS_LIST = _validated_config['CORS_ORIGINS']

    # Business settings
    BUSINESS_TIMEZONE = _validated_config['BUSINESS_TIMEZONE']
    DEFAULT_BALANCE = 1000
    MIN_BET = 0.5
    MAX_BET = 100
    BET_STEP = 0.5
    MIN_WITHDRAWAL_AMOUNT = 10
    MAX_WITHDRAWAL_AMOUNT = 50000

    # Public broadcast thresholds for the win ticker
    WIN_BROADCAST_THRESHOLD = 10
    JACKPOT_BROADCAST_THRESHOLD = 1000


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///./test_spinverse_be_isolated.db'
    DATABASE_FILE_PATH = SQLALCHEMY_DATABASE_URI.replace('sqlite:///', '')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SECRET_KEY = 'test-session-secret'
    JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length'
    JWT_COOKIE_SECURE = False
    SESSION_COOKIE_SECURE = False
    JWT_COOKIE_CSRF_PROTECT = False
    RATELIMIT_STORAGE_URI = 'memory://'
    # General limits off; the login and withdrawal limiters are exercised explicitly
    RATELIMIT_DEFAULT = None
    SQLALCHEMY_ENGINE_OPTIONS = {
        'connect_args': {'check_same_thread': False}
    }
