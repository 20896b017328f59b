from spinverse_be.error_codes import ErrorCodes

class AppException(Exception):
    def __init__(self, error_code, status_message, status_code, details=None, action_button=None):
        super().__init__(status_message)
        self.error_code = error_code
        self.status_message = status_message
        self.status_code = status_code
        self.details = details if details is not None else {}
        self.action_button = action_button if action_button is not None else {}

class ValidationException(AppException):
    def __init__(self, status_message="Validation failed", details=None, action_button=None, error_code=ErrorCodes.VALIDATION_ERROR):
        super().__init__(
            error_code=error_code,
            status_message=status_message,
            status_code=422,
            details=details,
            action_button=action_button
        )

class AuthenticationException(AppException):
    def __init__(self, status_message="Authentication required", details=None, action_button=None):
        super().__init__(
            error_code=ErrorCodes.UNAUTHENTICATED,
            status_message=status_message,
            status_code=401,
            details=details,
            action_button=action_button
        )

class AuthorizationException(AppException):
    def __init__(self, status_message="Forbidden", details=None, action_button=None, error_code=ErrorCodes.FORBIDDEN):
        super().__init__(
            error_code=error_code,
            status_message=status_message,
            status_code=403,
            details=details,
            action_button=action_button
        )

class NotFoundException(AppException):
    def __init__(self, status_message="Resource not found", details=None, action_button=None, error_code=ErrorCodes.NOT_FOUND):
        super().__init__(
            error_code=error_code,
            status_message=status_message,
            status_code=404,
            details=details,
            action_button=action_button
        )

class InsufficientFundsException(AppException):
    def __init__(self, status_message="Insufficient balance", details=None, action_button=None):
        super().__init__(
            error_code=ErrorCodes.INSUFFICIENT_FUNDS,
            status_message=status_message,
            status_code=400,
            details=details,
            action_button=action_button
        )

class RateLimitException(AppException):
    """
    Raised when a limiter rejects a request. Rendered with the public
    {"error": {...}} payload instead of the standard envelope so clients
    can show a countdown.
    """
    def __init__(self, status_message, error_code=ErrorCodes.RATE_LIMIT_EXCEEDED, next_attempt_in=None, strikes=None):
        details = {'nextAttemptIn': next_attempt_in}
        if strikes is not None:
            details['strikes'] = strikes
        super().__init__(
            error_code=error_code,
            status_message=status_message,
            status_code=429,
            details=details
        )
        self.next_attempt_in = next_attempt_in
        self.strikes = strikes

    def to_payload(self):
        payload = {
            'message': self.status_message,
            'code': self.error_code,
            'nextAttemptIn': self.next_attempt_in,
        }
        if self.strikes is not None:
            payload['strikes'] = self.strikes
        return {'error': payload}
