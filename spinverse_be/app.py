from flask import Flask, request, jsonify, current_app, g, has_app_context
import uuid
import re
from flask_cors import CORS
from flask_socketio import SocketIO
from flask_jwt_extended import JWTManager
from flask_jwt_extended.exceptions import NoAuthorizationError
from flask_limiter.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException as WerkzeugHTTPException
from flask_talisman import Talisman
from datetime import datetime, timezone
from decimal import Decimal
from http import HTTPStatus
import logging
from pythonjsonlogger import jsonlogger
from marshmallow import ValidationError
import click

from .config import Config
from .models import db, User, UserBalance, TokenBlacklist
from .exceptions import AppException, RateLimitException
from .error_codes import ErrorCodes
from .catalog import seed_catalog
from .utils.auth import register_jwt_handlers
from .utils.security import secure_headers, validate_password_strength
from .utils.progressive_rate_limit import (
    limiter, login_limiter, WITHDRAWAL_ENDPOINTS, withdrawal_limit_exception
)
from .services.websocket_manager import websocket_manager

from .routes.auth import auth_bp
from .routes.balance import balance_bp
from .routes.admin import admin_bp
from .routes.games import games_bp
from .routes.promotions import promotions_bp

# Custom Logging Filter for Request ID
class RequestIdFilter(logging.Filter):
    def filter(self, record):
        record.request_id = g.get('request_id', 'N/A') if has_app_context() else 'N/A'
        return True


def create_app(config_class=Config):
    """Application factory. Returns (app, socketio)."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    # --- Security Headers with Talisman ---
    csp = {
        'default-src': "'self'",
        'img-src': "'self' data: https:",
        'connect-src': "'self'",
        'frame-ancestors': "'none'"
    }

    Talisman(app,
             force_https=not (app.debug or app.testing),
             strict_transport_security=True,
             session_cookie_secure=app.config.get('SESSION_COOKIE_SECURE', True),
             content_security_policy=csp)

    # --- CORS Setup ---
    allowed_origins = list(app.config.get('CORS_ORIGINS_LIST') or [])
    if allowed_origins:
        CORS(app,
             origins=allowed_origins,
             supports_credentials=True,
             methods=['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS'],
             allow_headers=['Content-Type', 'Authorization', 'X-CSRF-TOKEN'],
             expose_headers=['X-RateLimit-Limit', 'X-RateLimit-Remaining'],
             max_age=86400)
        app.logger.info(f"CORS configured for origins: {allowed_origins}")
    else:
        app.logger.warning("No CORS origins configured - API will reject cross-origin requests")

    # --- Logging Configuration ---
    if not app.debug:
        logger = app.logger
        handler = logging.StreamHandler()
        formatter = jsonlogger.JsonFormatter(
            '%(asctime)s %(levelname)s %(request_id)s %(module)s %(funcName)s %(lineno)d %(message)s'
        )
        handler.setFormatter(formatter)
        handler.addFilter(RequestIdFilter())
        if logger.hasHandlers():
            logger.handlers.clear()
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
    elif not app.logger.handlers:
        logging.basicConfig(level=logging.DEBUG)

    @app.before_request
    def assign_request_id():
        g.request_id = request.headers.get('X-Request-ID') or str(uuid.uuid4())

    @app.after_request
    def security_headers_middleware(response):
        response.headers['X-Request-ID'] = g.get('request_id', '')
        return secure_headers(response)

    log_production_warnings(app)

    # --- Rate Limiters ---
    limiter.init_app(app)
    login_limiter.init_app(app)

    # --- Database Setup ---
    db.init_app(app)

    # --- WebSocket Setup ---
    socketio = SocketIO(app,
                        cors_allowed_origins=allowed_origins or '*',
                        async_mode='threading',
                        logger=app.logger,
                        engineio_logger=False)
    websocket_manager.init_app(app, socketio)
    app.socketio = socketio

    # --- JWT Setup ---
    jwt = JWTManager(app)
    register_jwt_handlers(jwt)

    register_error_handlers(app)
    register_cli_commands(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(balance_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(games_bp)
    app.register_blueprint(promotions_bp)

    return app, socketio


def _error_envelope(error_code, status_message, details=None, action_button=None):
    return {
        'request_id': g.get('request_id', 'N/A'),
        'status': False,
        'error_code': error_code,
        'status_message': status_message,
        'details': details if details is not None else {},
        'action_button': action_button
    }


def register_error_handlers(app):
    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        current_app.logger.warning(
            f"Request ID: {g.get('request_id', 'N/A')} - Validation error: {e.messages} - Error Code: {ErrorCodes.VALIDATION_ERROR}"
        )
        return jsonify(_error_envelope(
            ErrorCodes.VALIDATION_ERROR, 'Input validation failed.', {'errors': e.messages}
        )), HTTPStatus.UNPROCESSABLE_ENTITY

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e):
        db.session.rollback()
        current_app.logger.error(
            f"Request ID: {g.get('request_id', 'N/A')} - Database error. Error Code: {ErrorCodes.INTERNAL_SERVER_ERROR}",
            exc_info=True
        )
        return jsonify(_error_envelope(
            ErrorCodes.INTERNAL_SERVER_ERROR, 'A database error occurred. Please try again later.'
        )), HTTPStatus.INTERNAL_SERVER_ERROR

    @app.errorhandler(NoAuthorizationError)
    def handle_no_auth_error(e):
        current_app.logger.warning(
            f"Request ID: {g.get('request_id', 'N/A')} - JWT NoAuthorizationError: {str(e)} - Error Code: {ErrorCodes.UNAUTHENTICATED}"
        )
        return jsonify(_error_envelope(
            ErrorCodes.UNAUTHENTICATED, 'Missing or invalid authorization token.', {'original_error': str(e)}
        )), HTTPStatus.UNAUTHORIZED

    @app.errorhandler(RateLimitExceeded)
    def handle_rate_limit_exceeded(e):
        if request.endpoint in WITHDRAWAL_ENDPOINTS:
            exc = withdrawal_limit_exception()
        else:
            exc = RateLimitException(
                'Too many requests, please try again later',
                next_attempt_in=str(e.description)
            )
        current_app.logger.warning(
            f"Request ID: {g.get('request_id', 'N/A')} - Rate limit exceeded on {request.endpoint} from {request.remote_addr}"
        )
        return jsonify(exc.to_payload()), HTTPStatus.TOO_MANY_REQUESTS

    @app.errorhandler(WerkzeugHTTPException)
    def handle_werkzeug_http_exception(e):
        error_code = ErrorCodes.GENERIC_ERROR
        if e.code == 404:
            error_code = ErrorCodes.NOT_FOUND
        elif e.code == 405:
            error_code = ErrorCodes.METHOD_NOT_ALLOWED
        elif e.code == 401:
            error_code = ErrorCodes.UNAUTHENTICATED
        elif e.code == 403:
            error_code = ErrorCodes.FORBIDDEN
        elif e.code >= 500:
            error_code = ErrorCodes.INTERNAL_SERVER_ERROR

        current_app.logger.warning(
            f"Request ID: {g.get('request_id', 'N/A')} - Werkzeug HTTPException: {e.code} - {e.name}: {e.description} - Error Code: {error_code}"
        )
        response = e.get_response()
        response.data = jsonify(_error_envelope(error_code, e.name, {'description': e.description})).data
        response.content_type = "application/json"
        return response

    @app.errorhandler(404)
    def handle_flask_not_found(e):
        current_app.logger.warning(
            f"Request ID: {g.get('request_id', 'N/A')} - HTTP 404 Not Found: {request.url} - Error Code: {ErrorCodes.NOT_FOUND}"
        )
        return jsonify(_error_envelope(
            ErrorCodes.NOT_FOUND, 'The requested resource was not found.', {'path': request.path}
        )), HTTPStatus.NOT_FOUND

    # --- Global Error Handler (catch-all for general exceptions) ---
    @app.errorhandler(Exception)
    def handle_global_exception(e):
        request_id = g.get('request_id', 'N/A')

        if isinstance(e, RateLimitException):
            current_app.logger.warning(
                f"Request ID: {request_id} - {e.error_code}: {e.status_message} - Details: {e.details}"
            )
            return jsonify(e.to_payload()), e.status_code

        if isinstance(e, AppException):
            current_app.logger.error(
                f"Request ID: {request_id} - AppException: {e.error_code} - {e.status_message} - Details: {e.details}",
                exc_info=True if e.status_code >= 500 else False
            )
            return jsonify(_error_envelope(
                e.error_code, e.status_message, e.details, e.action_button
            )), e.status_code

        if isinstance(e, WerkzeugHTTPException):
            return handle_werkzeug_http_exception(e)

        current_app.logger.critical(
            f"Request ID: {request_id} - Unhandled Critical Exception. Error Code: {ErrorCodes.INTERNAL_SERVER_ERROR}",
            exc_info=True
        )
        return jsonify(_error_envelope(
            ErrorCodes.INTERNAL_SERVER_ERROR,
            'An unexpected internal server error occurred. Please try again later.'
        )), HTTPStatus.INTERNAL_SERVER_ERROR


def register_cli_commands(app):
    @app.cli.command('cleanup-expired-tokens')
    def cleanup_expired_tokens_command():
        """Deletes blacklisted tokens that have expired anyway."""
        now = datetime.now(timezone.utc)
        try:
            count = TokenBlacklist.query.filter(TokenBlacklist.expires_at < now).delete()
            db.session.commit()
            click.echo(f"Successfully deleted {count} expired token(s).")
        except SQLAlchemyError as e:
            db.session.rollback()
            click.echo(f"Error during token cleanup: {str(e)}")

    @app.cli.command('seed-catalog')
    def seed_catalog_command():
        """Loads the starter categories and games."""
        db.create_all()
        added = seed_catalog()
        click.echo(f"Catalog seeded: {added} game(s) added.")

    @app.cli.command("create-admin")
    @click.option('-u', '--username', default=None, help='Admin username')
    @click.option('-e', '--email', default=None, help='Admin email')
    @click.option('-p', '--password', default=None, help='Admin password (will be prompted if not provided)')
    @click.option('-b', '--balance', type=float, default=None, help='Initial balance (defaults to DEFAULT_BALANCE)')
    def create_admin_command(username, email, password, balance):
        """Creates an admin user with the given credentials and balance."""
        username = username or app.config.get('ADMIN_USERNAME') or click.prompt("Enter admin username")

        email = email or app.config.get('ADMIN_EMAIL')
        while not email or not re.match(r"[^@]+@[^@]+\.[^@]+", email):
            if email:
                click.echo("Invalid email format. Please try again.")
            email = click.prompt("Enter admin email")

        if not password:
            while True:
                password_input = click.prompt("Enter admin password", hide_input=True)
                problems = validate_password_strength(password_input)
                if problems:
                    click.echo(f"Password validation failed: {'; '.join(problems)}")
                    continue
                if password_input == click.prompt("Confirm admin password", hide_input=True):
                    password = password_input
                    break
                click.echo("Passwords do not match. Please try again.")
        else:
            problems = validate_password_strength(password)
            if problems:
                click.echo(f"Error: The provided password does not meet strength requirements: {'; '.join(problems)}")
                click.echo("Admin user creation aborted.")
                return

        existing_user = User.query.filter((User.username == username) | (User.email == email.lower())).first()
        if existing_user:
            click.echo(f"Error: User '{existing_user.username}' <{existing_user.email}> already exists.")
            return

        if balance is None:
            balance = app.config.get('DEFAULT_BALANCE', 1000)

        click.echo(f"Creating admin user: {username}")
        try:
            admin = User(
                username=username,
                email=email.lower(),
                password=User.hash_password(password),
                is_admin=True
            )
            db.session.add(admin)
            db.session.flush()
            db.session.add(UserBalance(user_id=admin.id, balance=Decimal(str(balance))))
            db.session.commit()
            click.echo(f"Admin user '{username}' created successfully with email '{email}'.")
        except SQLAlchemyError as e:
            db.session.rollback()
            click.echo(f"Failed to create admin user: {e}")


def log_production_warnings(app):
    if not app.debug and not app.testing:
        if app.config.get('RATELIMIT_STORAGE_URI') == 'memory://':
            app.logger.warning(
                "PERFORMANCE/SCALABILITY WARNING: RATELIMIT_STORAGE_URI is set to 'memory://'. "
                "Login strikes and withdrawal limits are per-process with this store. "
                "Consider using Redis (e.g., 'redis://localhost:6379/0')."
            )
        if not app.config.get('JWT_COOKIE_SECURE'):
            app.logger.warning("JWT cookies are not marked secure; enable JWT_COOKIE_SECURE behind HTTPS.")
