from functools import wraps
from flask_jwt_extended import verify_jwt_in_request, get_jwt, current_user

from spinverse_be.error_codes import ErrorCodes
from spinverse_be.exceptions import AuthenticationException, AuthorizationException
from spinverse_be.utils.security_logger import SecurityLogger


def admin_required(f):
    """
    Decorator for the admin dashboard API.
    Requires a valid access token carrying the is_admin claim whose user is
    still an active admin.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        verify_jwt_in_request()
        claims = get_jwt()
        user = current_user
        if user is None:
            raise AuthenticationException("Authentication required")

        if not claims.get('is_admin') or not user.is_admin:
            SecurityLogger.log_security_event(
                'admin_access_denied',
                severity='medium',
                user_id=user.id,
                details={'reason': 'missing admin claim' if not claims.get('is_admin') else 'user is not admin'}
            )
            raise AuthorizationException("Admin privileges required", error_code=ErrorCodes.ADMIN_REQUIRED)

        return f(*args, **kwargs)
    return decorated_function
