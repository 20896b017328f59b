"""
Configuration validation and startup checks for production security.

This module implements fail-fast validation to ensure critical environment
variables are set before the application starts, preventing insecure defaults
from being used in production.
"""

import os
import sys
import warnings
import secrets
from typing import List, Tuple, Optional


class ConfigValidationError(Exception):
    """Raised when critical configuration is missing or invalid."""
    pass


class ConfigValidator:
    """Validates application configuration and enforces production security."""

    def __init__(self, is_production: bool = None):
        """
        Initialize the configuration validator.

        Args:
            is_production: If None, auto-detect based on FLASK_ENV / APP_ENV
        """
        if is_production is None:
            app_env = (os.getenv('APP_ENV') or os.getenv('FLASK_ENV', '')).lower()
            is_production = app_env == 'production'

        self.is_production = is_production
        self.is_testing = os.getenv('TESTING', 'False').lower() in ('true', '1', 't')
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def validate_required_env_var(self, var_name: str, description: str = None) -> Optional[str]:
        """
        Validate that a required environment variable is set.

        Args:
            var_name: Name of the environment variable
            description: Human-readable description for error messages

        Returns:
            The environment variable value if set, None otherwise
        """
        value = os.getenv(var_name)
        if not value:
            desc = description or var_name
            if self.is_production:
                self.errors.append(f"CRITICAL: {desc} ({var_name}) must be set in production environment")
            else:
                self.warnings.append(f"WARNING: {desc} ({var_name}) not set - using development fallback")
        return value

    def _secret_or_fallback(self, var_name: str, description: str) -> str:
        secret = self.validate_required_env_var(var_name, description)

        if not secret:
            if self.is_production:
                raise ConfigValidationError(f"{var_name} is required in production")
            secret = secrets.token_urlsafe(64)
            warnings.warn(
                f"{var_name} not set. Generated secure random key for development. "
                f"Set {var_name} environment variable for production!",
                UserWarning
            )
        elif len(secret) < 32:
            error_msg = f"{var_name} must be at least 32 characters long"
            if self.is_production:
                self.errors.append(f"CRITICAL: {error_msg}")
            else:
                self.warnings.append(f"WARNING: {error_msg}")
        return secret

    def validate_jwt_config(self) -> Tuple[str, int, int]:
        """Validate JWT configuration."""
        jwt_secret = self._secret_or_fallback('JWT_SECRET_KEY', 'JWT Secret Key')

        try:
            access_expires = int(os.getenv('JWT_ACCESS_TOKEN_EXPIRES', str(60 * 60 * 24)))
            refresh_expires = int(os.getenv('JWT_REFRESH_TOKEN_EXPIRES', str(86400 * 7)))
        except ValueError:
            raise ConfigValidationError("JWT token expiration values must be integers")

        return jwt_secret, access_expires, refresh_expires

    def validate_session_config(self) -> str:
        """Validate the Flask session secret (signs the session cookie holding the limiter key)."""
        return self._secret_or_fallback('SESSION_SECRET', 'Session Secret')

    def validate_database_config(self) -> str:
        """Validate database configuration."""
        database_url = os.getenv('DATABASE_URL')

        if database_url:
            if not database_url.startswith(('postgresql://', 'postgresql+psycopg2://', 'sqlite://')):
                self.errors.append("CRITICAL: DATABASE_URL must use a supported database driver")
            return database_url

        if self.is_production:
            self.errors.append("CRITICAL: DATABASE_URL must be set in production environment")
            return ''

        self.warnings.append("DATABASE_URL not set - using local SQLite database for development")
        return 'sqlite:///spinverse_dev.db'

    def validate_admin_config(self) -> Tuple[str, str]:
        """Validate the bootstrap admin credentials used by 'flask create-admin'."""
        admin_username = os.getenv('ADMIN_USERNAME')
        admin_email = os.getenv('ADMIN_EMAIL')

        if not self.is_production and not self.is_testing:
            if not admin_username or not admin_email:
                self.warnings.append(
                    "Using development admin defaults. "
                    "Set ADMIN_USERNAME and ADMIN_EMAIL for production!"
                )
            admin_username = admin_username or 'admin'
            admin_email = admin_email or 'admin@spinverse.local'

        return admin_username, admin_email

    def validate_rate_limiting_config(self) -> str:
        """Validate rate limiting configuration."""
        rate_limit_uri = os.getenv('RATELIMIT_STORAGE_URI', 'memory://')

        if rate_limit_uri == 'memory://' and self.is_production:
            self.errors.append(
                "CRITICAL: Rate limiting uses memory:// storage in production. "
                "This is not suitable for multi-process deployments. "
                "Set RATELIMIT_STORAGE_URI to a Redis URL (e.g., redis://localhost:6379/0)"
            )
        elif rate_limit_uri == 'memory://' and not self.is_testing:
            self.warnings.append(
                "Rate limiting uses memory:// storage in development. "
                "Consider using Redis for production."
            )

        return rate_limit_uri

    def validate_cors_config(self) -> List[str]:
        """Validate CORS configuration."""
        cors_origins = os.getenv('CORS_ORIGINS', '')

        if not cors_origins and self.is_production:
            self.errors.append(
                "CRITICAL: CORS_ORIGINS must be set in production to specify allowed frontend domains"
            )
            return []

        if cors_origins:
            origins = [origin.strip() for origin in cors_origins.split(',') if origin.strip()]
            for origin in origins:
                if not origin.startswith(('http://', 'https://')):
                    self.warnings.append(f"CORS origin '{origin}' should include protocol (http:// or https://)")
            return origins

        return ['http://localhost:3000', 'http://localhost:5000']

    def validate_all(self) -> dict:
        """
        Validate all configuration settings.

        Returns:
            Dictionary containing validated configuration values

        Raises:
            ConfigValidationError: If critical configuration is missing in production
        """
        config = {}

        try:
            config['JWT_SECRET_KEY'], config['JWT_ACCESS_TOKEN_EXPIRES'], config['JWT_REFRESH_TOKEN_EXPIRES'] = self.validate_jwt_config()
            config['SECRET_KEY'] = self.validate_session_config()
            config['SQLALCHEMY_DATABASE_URI'] = self.validate_database_config()
            config['ADMIN_USERNAME'], config['ADMIN_EMAIL'] = self.validate_admin_config()
            config['RATELIMIT_STORAGE_URI'] = self.validate_rate_limiting_config()
            config['CORS_ORIGINS'] = self.validate_cors_config()

            config['DEBUG'] = os.getenv('FLASK_DEBUG', 'False').lower() in ('true', '1', 't')
            config['JWT_COOKIE_SECURE'] = os.getenv('JWT_COOKIE_SECURE', str(self.is_production)).lower() in ('true', '1', 't')
            config['BUSINESS_TIMEZONE'] = os.getenv('BUSINESS_TIMEZONE', 'Australia/Sydney')

            if self.is_production:
                if config['DEBUG']:
                    self.errors.append("CRITICAL: DEBUG mode must be disabled in production (set FLASK_DEBUG=False)")

                if not config['JWT_COOKIE_SECURE']:
                    self.errors.append("CRITICAL: JWT cookies must be secure in production (set JWT_COOKIE_SECURE=True)")

            if self.errors:
                error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {error}" for error in self.errors)
                if self.warnings:
                    error_msg += "\n\nWarnings:\n" + "\n".join(f"  - {warning}" for warning in self.warnings)
                raise ConfigValidationError(error_msg)

            if self.warnings:
                for warning in self.warnings:
                    warnings.warn(warning, UserWarning)

            return config

        except Exception as e:
            if isinstance(e, ConfigValidationError):
                raise
            else:
                raise ConfigValidationError(f"Configuration validation error: {str(e)}") from e


def validate_production_config() -> dict:
    """
    Validate configuration with fail-fast behavior.

    Returns:
        Dictionary of validated configuration values

    Raises:
        SystemExit: If validation fails during startup
    """
    try:
        validator = ConfigValidator()
        return validator.validate_all()
    except ConfigValidationError as e:
        print("\nCONFIGURATION VALIDATION FAILED\n", file=sys.stderr)
        print(str(e), file=sys.stderr)
        print("\nHow to fix:", file=sys.stderr)
        print("1. Set required environment variables (see .env.example)", file=sys.stderr)
        print("2. Use 'flask create-admin' for admin user creation", file=sys.stderr)
        print("\nApplication startup ABORTED\n", file=sys.stderr)

        sys.exit(1)
