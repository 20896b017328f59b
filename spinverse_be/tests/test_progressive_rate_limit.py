import pytest
from flask import Flask
from limits.storage import storage_from_string

from spinverse_be.error_codes import ErrorCodes
from spinverse_be.exceptions import RateLimitException
from spinverse_be.tests.test_api import BaseTestCase, TEST_PASSWORD
from spinverse_be.utils.progressive_rate_limit import ProgressiveRateLimiter, StrikeLedger


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def app_context():
    app = Flask(__name__)
    with app.app_context():
        yield app


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def limiter(app_context, clock):
    limiter = ProgressiveRateLimiter(clock=clock)
    limiter.storage = storage_from_string('memory://')
    return limiter


ADDRESS = '10.0.0.1'


def start_new_window(limiter, address=ADDRESS):
    # The memory store expires on wall-clock time; dropping the counter opens the next window
    limiter.storage.clear(limiter._window_key(address))


def exhaust(limiter, key, allowed, address=ADDRESS):
    for _ in range(allowed):
        limiter.hit(address, key)
    with pytest.raises(RateLimitException) as excinfo:
        limiter.hit(address, key)
    return excinfo.value


@pytest.mark.parametrize("strikes, expected", [(0, 5), (1, 4), (2, 3), (3, 2), (4, 1), (5, 1), (20, 1)])
def test_allowed_attempts_shrink_to_floor(strikes, expected):
    assert ProgressiveRateLimiter().allowed_attempts(strikes) == expected


def test_sixth_attempt_is_rejected_with_first_strike(limiter):
    exc = exhaust(limiter, 'session-a', 5)

    assert exc.status_code == 429
    assert exc.to_payload() == {
        'error': {
            'message': 'Too many login attempts, try again later',
            'code': ErrorCodes.RATE_LIMIT_EXCEEDED,
            'nextAttemptIn': '15 minutes',
            'strikes': 1,
        }
    }


def test_strike_counted_once_per_window(limiter):
    exhaust(limiter, 'session-a', 5)
    with pytest.raises(RateLimitException) as excinfo:
        limiter.hit(ADDRESS, 'session-a')
    assert excinfo.value.strikes == 1


def test_countdown_runs_from_the_striking_rejection(limiter, clock):
    exhaust(limiter, 'session-a', 5)
    clock.advance(5 * 60)
    with pytest.raises(RateLimitException) as excinfo:
        limiter.hit(ADDRESS, 'session-a')
    assert excinfo.value.next_attempt_in == '10 minutes'

    clock.advance(10 * 60 + 30)
    with pytest.raises(RateLimitException) as excinfo:
        limiter.hit(ADDRESS, 'session-a')
    assert excinfo.value.next_attempt_in == '1 minutes'


def test_allowance_shrinks_each_penalised_window(limiter, clock):
    for expected_strikes, allowed in enumerate([5, 4, 3, 2, 1, 1], start=1):
        exc = exhaust(limiter, 'session-a', allowed)
        assert exc.strikes == expected_strikes
        clock.advance(15 * 60)
        start_new_window(limiter)


def test_window_without_rejection_keeps_strikes(limiter, clock):
    exhaust(limiter, 'session-a', 5)
    clock.advance(15 * 60)
    start_new_window(limiter)

    for _ in range(2):
        limiter.hit(ADDRESS, 'session-a')
    clock.advance(15 * 60)
    start_new_window(limiter)

    exc = exhaust(limiter, 'session-a', 4)
    assert exc.strikes == 2


def test_new_session_shares_the_address_window(limiter):
    exhaust(limiter, 'session-a', 5)

    with pytest.raises(RateLimitException) as excinfo:
        limiter.hit(ADDRESS, 'session-b')
    assert excinfo.value.strikes == 1
    assert limiter.attempts_in_window(ADDRESS) == 7


def test_addresses_are_independent(limiter):
    exhaust(limiter, 'session-a', 5)
    for _ in range(5):
        limiter.hit('10.0.0.2', 'session-b')
    assert limiter.ledger.get('session-b').strikes == 0


def test_reset_clears_strikes_but_not_the_window(limiter, clock):
    exhaust(limiter, 'session-a', 5)
    clock.advance(15 * 60)
    start_new_window(limiter)
    exhaust(limiter, 'session-a', 4)

    limiter.reset('session-a')

    assert limiter.ledger.get('session-a').strikes == 0
    assert limiter.attempts_in_window(ADDRESS) == 5

    clock.advance(15 * 60)
    start_new_window(limiter)
    exc = exhaust(limiter, 'session-a', 5)
    assert exc.strikes == 1


def test_ledger_get_returns_a_copy():
    ledger = StrikeLedger()
    ledger.open_window(ADDRESS, 10.0)
    ledger.strike('k', ledger.window_started(ADDRESS, 11.0), 11.0)

    record = ledger.get('k')
    record.strikes = 99
    assert ledger.get('k').strikes == 1
    assert ledger.get('k').last_attempt_at == 11.0
    assert ledger.get('k').struck_window == 10.0


class ProgressiveLoginApiTests(BaseTestCase):

    def setUp(self):
        super().setUp()
        self._create_user()

    def _attempt(self, client, password="WrongPass99"):
        return client.post('/api/login', json={"email": "test@example.com", "password": password})

    def test_sixth_and_seventh_attempts_are_rejected_with_one_strike(self):
        for _ in range(5):
            self.assertEqual(self._attempt(self.client).status_code, 401)

        for _ in range(2):
            response = self._attempt(self.client)
            self.assertEqual(response.status_code, 429)
            error = response.get_json()['error']
            self.assertEqual(error['code'], ErrorCodes.RATE_LIMIT_EXCEEDED)
            self.assertEqual(error['message'], 'Too many login attempts, try again later')
            self.assertEqual(error['strikes'], 1)
            self.assertTrue(error['nextAttemptIn'].endswith('minutes'))

    def test_correct_password_is_blocked_while_limited(self):
        for _ in range(5):
            self._attempt(self.client)
        response = self._attempt(self.client, password=TEST_PASSWORD)
        self.assertEqual(response.status_code, 429)

    def test_new_session_from_the_same_address_is_still_limited(self):
        for _ in range(6):
            self._attempt(self.client)

        other_client = self.app.test_client()
        response = self._attempt(other_client)
        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.get_json()['error']['strikes'], 1)

    def test_client_without_cookies_is_limited(self):
        cookieless = self.app.test_client(use_cookies=False)
        statuses = [self._attempt(cookieless).status_code for _ in range(8)]
        self.assertEqual(statuses, [401] * 5 + [429] * 3)

    def test_successful_login_resets_strikes(self):
        for _ in range(6):
            self._attempt(self.client)
        with self.client.session_transaction() as sess:
            key = sess['limiter_id']
        limiter = self.app.extensions['progressive_limiter']
        self.assertEqual(limiter.ledger.get(key).strikes, 1)

        # Next window for this address
        limiter.storage.clear(limiter._window_key('127.0.0.1'))
        self.assertEqual(self._attempt(self.client, password=TEST_PASSWORD).status_code, 200)

        self.assertEqual(limiter.ledger.get(key).strikes, 0)
        self.assertEqual(limiter.attempts_in_window('127.0.0.1'), 1)

    def test_authenticated_requests_bypass_the_limiter(self):
        self._login()
        for _ in range(8):
            self.assertEqual(self._attempt(self.client).status_code, 401)

    def test_admin_login_shares_the_limiter(self):
        self._create_user(username="boss", email="boss@example.com", is_admin=True)
        for _ in range(5):
            response = self.client.post('/api/admin/login', json={"username": "boss", "password": "WrongPass99"})
            self.assertEqual(response.status_code, 401)

        response = self.client.post('/api/admin/login', json={"username": "boss", "password": TEST_PASSWORD})
        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.get_json()['error']['strikes'], 1)
