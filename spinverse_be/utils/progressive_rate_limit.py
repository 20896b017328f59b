"""
Rate limiting for authentication and high-risk endpoints.

Login endpoints use a progressive limiter: every 15 minute window in which a
requester hits the ceiling earns a strike, and each strike shrinks the
allowance for the following windows (5, 4, 3, 2, then 1 attempt). A window
earns at most one strike no matter how many requests it rejects. Strikes
only go away through reset_login_strikes(), called after a successful login.

Window counters are keyed by remote address and live in the same `limits`
storage Flask-Limiter uses (RATELIMIT_STORAGE_URI), so dropping the session
cookie does not open a fresh window. Strikes live in an in-process ledger
keyed by the requester's session.

Withdrawals use a plain Flask-Limiter ceiling of 3 per hour.
"""
import math
import threading
import time
from dataclasses import dataclass
from functools import wraps
from typing import Dict, Optional

from flask import current_app, request, session
from flask_jwt_extended import verify_jwt_in_request, get_jwt_identity
from flask_jwt_extended.exceptions import JWTExtendedException
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from jwt.exceptions import PyJWTError
from limits.storage import storage_from_string

from spinverse_be.error_codes import ErrorCodes
from spinverse_be.exceptions import RateLimitException
from spinverse_be.utils.security import generate_secure_session_id
from spinverse_be.utils.security_logger import SecurityLogger

# Bound to the app in create_app via limiter.init_app(app)
limiter = Limiter(key_func=get_remote_address)

LOGIN_LIMIT_MESSAGE = 'Too many login attempts, try again later'
WITHDRAWAL_LIMIT_MESSAGE = 'Too many withdrawal attempts, please try again later'
WITHDRAWAL_ENDPOINTS = {'balance.withdraw'}
SESSION_KEY = 'limiter_id'


def withdrawal_rate_limit():
    """Fixed ceiling for withdrawal attempts, read from WITHDRAWAL_RATE_LIMIT."""
    return limiter.limit(lambda: current_app.config.get('WITHDRAWAL_RATE_LIMIT', '3 per hour'))


def withdrawal_limit_exception():
    return RateLimitException(
        WITHDRAWAL_LIMIT_MESSAGE,
        error_code=ErrorCodes.WITHDRAWAL_RATE_LIMIT_EXCEEDED,
        next_attempt_in='1 hour'
    )


@dataclass
class StrikeRecord:
    strikes: int = 0
    last_attempt_at: Optional[float] = None
    # Start time of the last window that earned a strike
    struck_window: Optional[float] = None


class StrikeLedger:
    """Thread-safe strike counters keyed by session, plus window start times keyed by address."""

    def __init__(self):
        self._records: Dict[str, StrikeRecord] = {}
        self._windows: Dict[str, float] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> StrikeRecord:
        with self._lock:
            record = self._records.get(key)
            return StrikeRecord(**vars(record)) if record else StrikeRecord()

    def open_window(self, address: str, now: float) -> None:
        with self._lock:
            self._windows[address] = now

    def window_started(self, address: str, now: float) -> float:
        """Start of the address's current window; `now` when it predates this process."""
        with self._lock:
            return self._windows.setdefault(address, now)

    def strike(self, key: str, window: float, now: float) -> StrikeRecord:
        """Record a rejection; the strike count moves at most once per window."""
        with self._lock:
            record = self._records.setdefault(key, StrikeRecord())
            if record.struck_window != window:
                record.strikes += 1
                record.struck_window = window
                record.last_attempt_at = now
            return StrikeRecord(**vars(record))

    def reset(self, key: str) -> None:
        with self._lock:
            self._records.pop(key, None)


class ProgressiveRateLimiter:
    """Escalating login limiter: attempts counted per address, strikes per session."""

    def __init__(self, window_seconds=15 * 60, base_attempts=5, min_attempts=1, clock=time.time):
        self.window_seconds = window_seconds
        self.base_attempts = base_attempts
        self.min_attempts = min_attempts
        self.clock = clock
        self.storage = None
        self.ledger = StrikeLedger()

    def init_app(self, app):
        self.window_seconds = app.config.get('LOGIN_WINDOW_SECONDS', self.window_seconds)
        self.base_attempts = app.config.get('LOGIN_BASE_ATTEMPTS', self.base_attempts)
        self.min_attempts = app.config.get('LOGIN_MIN_ATTEMPTS', self.min_attempts)
        self.storage = storage_from_string(app.config.get('RATELIMIT_STORAGE_URI', 'memory://'))
        self.ledger = StrikeLedger()
        app.extensions['progressive_limiter'] = self

    def allowed_attempts(self, strikes: int) -> int:
        return max(self.base_attempts - strikes, self.min_attempts)

    def _window_key(self, address: str) -> str:
        return f"progressive-login/{address}"

    def attempts_in_window(self, address: str) -> int:
        return self.storage.get(self._window_key(address))

    def next_attempt_in(self, record: StrikeRecord) -> str:
        """Minutes left, counted from the rejection that earned the last strike."""
        elapsed_minutes = (self.clock() - (record.last_attempt_at or self.clock())) / 60
        minutes = math.ceil(self.window_seconds / 60 - elapsed_minutes)
        return f"{max(minutes, 1)} minutes"

    def hit(self, address: str, key: str) -> StrikeRecord:
        """
        Count one attempt from `address` on behalf of session `key`.

        Raises RateLimitException once the attempts in the address's current
        window exceed the allowance for the session's strike count.
        """
        now = self.clock()
        count = self.storage.incr(self._window_key(address), self.window_seconds)
        if count == 1:
            self.ledger.open_window(address, now)

        record = self.ledger.get(key)
        if count <= self.allowed_attempts(record.strikes):
            return record

        record = self.ledger.strike(key, self.ledger.window_started(address, now), now)
        SecurityLogger.log_security_event(
            'login_rate_limited',
            severity='medium',
            details={'strikes': record.strikes, 'attempts_in_window': count,
                     'allowed_attempts': self.allowed_attempts(record.strikes)}
        )
        raise RateLimitException(
            LOGIN_LIMIT_MESSAGE,
            error_code=ErrorCodes.RATE_LIMIT_EXCEEDED,
            next_attempt_in=self.next_attempt_in(record),
            strikes=record.strikes
        )

    def reset(self, key: str) -> None:
        """Clear the session's strikes and last-attempt time; the address window keeps counting."""
        self.ledger.reset(key)


login_limiter = ProgressiveRateLimiter()


def limiter_key() -> str:
    """Per-session key; assigned the first time a session reaches the limiter."""
    key = session.get(SESSION_KEY)
    if not key:
        key = generate_secure_session_id()
        session[SESSION_KEY] = key
    return key


def _is_authenticated() -> bool:
    try:
        verify_jwt_in_request(optional=True)
    except (JWTExtendedException, PyJWTError):
        return False
    return get_jwt_identity() is not None


def progressive_rate_limit(f):
    """Apply the progressive login limiter; authenticated requests pass through."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            current_app.extensions['progressive_limiter'].hit(get_remote_address(), limiter_key())
        return f(*args, **kwargs)
    return decorated_function


def reset_login_strikes():
    """Forget the current session's strikes; call after a successful login."""
    key = session.get(SESSION_KEY)
    if key:
        current_app.extensions['progressive_limiter'].reset(key)
        current_app.logger.debug(f"Login strikes reset for {request.remote_addr}")
