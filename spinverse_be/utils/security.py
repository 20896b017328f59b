"""
Security utilities: input sanitizing, response headers and password rules
"""
import secrets


def sanitize_input(data):
    """Sanitize input data to prevent injection attacks"""
    if isinstance(data, str):
        # Basic XSS prevention
        data = data.replace('<', '&lt;').replace('>', '&gt;')
        # Remove potential SQL injection patterns
        dangerous_patterns = ['--', ';', 'DROP', 'DELETE', 'INSERT', 'UPDATE', 'UNION', 'SELECT']
        for pattern in dangerous_patterns:
            data = data.replace(pattern.lower(), '').replace(pattern.upper(), '')
    elif isinstance(data, dict):
        return {key: sanitize_input(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [sanitize_input(item) for item in data]

    return data


def secure_headers(response):
    """Add security headers to API responses"""
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['X-Frame-Options'] = 'DENY'
    response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
    response.headers.setdefault('Cache-Control', 'no-store')
    return response


def validate_password_strength(password):
    """Validate password meets security requirements"""
    errors = []

    if len(password) < 8:
        errors.append("Password must be at least 8 characters long")

    if not any(c.isupper() for c in password):
        errors.append("Password must contain at least one uppercase letter")

    if not any(c.islower() for c in password):
        errors.append("Password must contain at least one lowercase letter")

    if not any(c.isdigit() for c in password):
        errors.append("Password must contain at least one digit")

    # Check for common passwords
    common_passwords = ['password', '123456', 'password123', 'admin', 'qwerty']
    if password.lower() in common_passwords:
        errors.append("Password is too common")

    return errors


def generate_secure_session_id():
    """Generate a cryptographically secure session ID"""
    return secrets.token_urlsafe(32)
