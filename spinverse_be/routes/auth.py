from flask import Blueprint, request, jsonify, current_app, make_response
from flask_jwt_extended import (
    create_access_token, create_refresh_token, jwt_required,
    get_jwt, current_user, set_access_cookies,
    set_refresh_cookies, unset_jwt_cookies
)
from datetime import datetime, timezone
import re
import secrets

from spinverse_be.models import db, User, UserBalance
from spinverse_be.schemas import UserSchema, RegisterSchema, LoginSchema
from spinverse_be.services.balance_service import get_or_create_balance
from spinverse_be.utils.auth import revoke_token
from spinverse_be.utils.progressive_rate_limit import limiter, progressive_rate_limit, reset_login_strikes
from spinverse_be.utils.security_logger import SecurityLogger
from spinverse_be.exceptions import AuthenticationException, ValidationException
from decimal import Decimal

auth_bp = Blueprint('auth', __name__, url_prefix='/api')


def _username_from_email(email):
    base = re.sub(r'[^a-zA-Z0-9_]', '_', email.split('@')[0])[:24]
    if len(base) < 3 or User.query.filter_by(username=base).first():
        base = f"{base[:20]}_{secrets.token_hex(2)}"
    return base


def _session_response(user, status_code):
    access_token = create_access_token(identity=user)
    refresh_token = create_refresh_token(identity=user)
    balance = get_or_create_balance(user)
    db.session.commit()

    response = make_response(jsonify({
        'status': True,
        'user': UserSchema().dump(user),
        'balance': float(balance.balance),
        'access_token': access_token
    }), status_code)

    set_access_cookies(response, access_token)
    set_refresh_cookies(response, refresh_token)
    return response


@auth_bp.route('/user', methods=['GET'])
@jwt_required()
def get_current_user():
    balance = get_or_create_balance(current_user)
    db.session.commit()
    return jsonify({
        'status': True,
        'user': UserSchema().dump(current_user),
        'balance': float(balance.balance)
    }), 200

@auth_bp.route('/register', methods=['POST'])
@limiter.limit("10 per hour")
def register():
    validated_data = RegisterSchema().load(request.get_json() or {})

    email = validated_data['email'].lower()
    if User.query.filter_by(email=email).first():
        raise ValidationException(
            status_message="Email already registered.",
            details={'email': 'Email already exists.'}
        )

    username = validated_data.get('username') or _username_from_email(email)
    if User.query.filter_by(username=username).first():
        raise ValidationException(
            status_message="Username already taken.",
            details={'username': 'Username already taken.'}
        )

    try:
        new_user = User(
            username=username,
            email=email,
            password=User.hash_password(validated_data['password'])
        )
        db.session.add(new_user)
        db.session.flush()
        db.session.add(UserBalance(
            user_id=new_user.id,
            balance=Decimal(str(current_app.config.get('DEFAULT_BALANCE', 1000)))
        ))
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    reset_login_strikes()
    SecurityLogger.log_authentication_event('register', user_id=new_user.id, username=new_user.username)
    current_app.logger.info(f"User registered: {new_user.username} (ID: {new_user.id})")
    return _session_response(new_user, 201)

@auth_bp.route('/login', methods=['POST'])
@progressive_rate_limit
def login():
    validated_data = LoginSchema().load(request.get_json() or {})

    user = User.query.filter_by(email=validated_data['email'].lower()).first()
    if not user or not user.is_active or not user.check_password(validated_data['password']):
        SecurityLogger.log_authentication_event(
            'login', username=validated_data['email'], success=False,
            details={'reason': 'invalid_credentials' if not user or user.is_active else 'inactive'}
        )
        raise AuthenticationException(status_message="Invalid email or password.")

    user.last_login_at = datetime.now(timezone.utc)
    db.session.commit()
    reset_login_strikes()

    SecurityLogger.log_authentication_event('login', user_id=user.id, username=user.username)
    current_app.logger.info(f"User logged in: {user.username} (ID: {user.id})")
    return _session_response(user, 200)

@auth_bp.route('/refresh', methods=['POST'])
@jwt_required(refresh=True)
def refresh():
    new_access_token = create_access_token(identity=current_user)

    response = make_response(jsonify({
        'status': True,
        'access_token': new_access_token
    }), 200)

    set_access_cookies(response, new_access_token)

    current_app.logger.info(f"Token refreshed for user: {current_user.username} (ID: {current_user.id})")
    return response

@auth_bp.route('/logout', methods=['POST'])
@jwt_required()
def logout():
    revoke_token(get_jwt())

    response = make_response(jsonify({
        "status": True,
        "status_message": "Successfully logged out"
    }), 200)
    unset_jwt_cookies(response)

    SecurityLogger.log_authentication_event('logout', user_id=current_user.id, username=current_user.username)
    return response
