"""
Security Event Logging System
Provides audit logging for authentication, balance and rate-limit events
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from flask import current_app, g, request
import json


def _request_context():
    # Safely get request context information
    try:
        return (g.get('request_id', 'N/A'), request.remote_addr,
                request.headers.get('User-Agent'))
    except RuntimeError:
        # Outside request context
        return 'N/A', None, None


def _money(value):
    if value is None:
        return None
    return float(value) if isinstance(value, Decimal) else value


class SecurityLogger:
    """Centralized security event logging"""

    @staticmethod
    def log_authentication_event(event_type: str, user_id: int = None, username: str = None,
                                 success: bool = True, details: dict = None):
        """Log authentication-related events"""
        request_id, ip_address, user_agent = _request_context()

        event_data = {
            'event_type': 'authentication',
            'sub_type': event_type,
            'user_id': user_id,
            'username': username,
            'success': success,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'request_id': request_id,
            'ip_address': ip_address,
            'user_agent': user_agent,
            'details': details or {}
        }

        level = logging.INFO if success else logging.WARNING
        current_app.logger.log(level, f"AUTH_EVENT: {json.dumps(event_data)}")

    @staticmethod
    def log_financial_event(event_type: str, user_id: int, amount=None,
                            balance_before=None, balance_after=None,
                            transaction_id: int = None, details: dict = None):
        """Log balance movements (bet, win, deposit, withdraw)"""
        request_id, ip_address, _ = _request_context()

        event_data = {
            'event_type': 'financial',
            'sub_type': event_type,
            'user_id': user_id,
            'amount': _money(amount),
            'balance_before': _money(balance_before),
            'balance_after': _money(balance_after),
            'transaction_id': transaction_id,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'request_id': request_id,
            'ip_address': ip_address,
            'details': details or {}
        }

        current_app.logger.info(f"FINANCIAL_EVENT: {json.dumps(event_data)}")

    @staticmethod
    def log_game_event(event_type: str, user_id: int = None, game_id: int = None,
                       details: dict = None):
        """Log game and promotion related events"""
        request_id, ip_address, _ = _request_context()

        event_data = {
            'event_type': 'game',
            'sub_type': event_type,
            'user_id': user_id,
            'game_id': game_id,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'request_id': request_id,
            'ip_address': ip_address,
            'details': details or {}
        }

        current_app.logger.info(f"GAME_EVENT: {json.dumps(event_data)}")

    @staticmethod
    def log_security_event(event_type: str, severity: str = 'medium', user_id: int = None,
                           details: dict = None):
        """Log security-related events"""
        request_id, ip_address, user_agent = _request_context()

        event_data = {
            'event_type': 'security',
            'sub_type': event_type,
            'severity': severity,
            'user_id': user_id,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'request_id': request_id,
            'ip_address': ip_address,
            'user_agent': user_agent,
            'details': details or {}
        }

        level_map = {
            'low': logging.INFO,
            'medium': logging.WARNING,
            'high': logging.ERROR,
            'critical': logging.CRITICAL
        }

        level = level_map.get(severity, logging.WARNING)
        current_app.logger.log(level, f"SECURITY_EVENT: {json.dumps(event_data)}")

    @staticmethod
    def log_admin_event(event_type: str, admin_user_id: int, target_user_id: int = None,
                        action: str = None, details: dict = None):
        """Log administrative actions"""
        request_id, ip_address, _ = _request_context()

        event_data = {
            'event_type': 'admin',
            'sub_type': event_type,
            'admin_user_id': admin_user_id,
            'target_user_id': target_user_id,
            'action': action,
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'request_id': request_id,
            'ip_address': ip_address,
            'details': details or {}
        }

        current_app.logger.warning(f"ADMIN_EVENT: {json.dumps(event_data)}")
