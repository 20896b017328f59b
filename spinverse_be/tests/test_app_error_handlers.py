import uuid
from unittest.mock import patch

from sqlalchemy.exc import SQLAlchemyError

from spinverse_be.models import Transaction, UserBalance
from spinverse_be.error_codes import ErrorCodes
from spinverse_be.tests.test_api import BaseTestCase, TEST_PASSWORD


class ErrorEnvelopeTests(BaseTestCase):
    """Every failing API call answers with the same envelope; limiter rejections use the error payload."""

    def setUp(self):
        super().setUp()
        self.user = self._create_user(balance=5)
        self.token = self._login()
        self.headers = self._auth_headers(self.token)

    def assertEnvelope(self, response, status_code, error_code):
        data = response.get_json()
        self.assertEqual(response.status_code, status_code, data)
        self.assertIs(data['status'], False)
        self.assertEqual(data['error_code'], error_code)
        self.assertIn('request_id', data)
        self.assertIn('details', data)
        return data

    def test_bet_over_balance_is_insufficient_funds(self):
        with self.assertLogs(self.app.logger, level='ERROR') as logs:
            response = self.client.post('/api/balance', json={"amount": 10, "action": "bet"}, headers=self.headers)

        data = self.assertEnvelope(response, 400, ErrorCodes.INSUFFICIENT_FUNDS)
        self.assertEqual(data['status_message'], 'Insufficient balance')
        self.assertEqual(data['details'], {'balance': 5.0, 'amount': 10.0})
        self.assertTrue(any(ErrorCodes.INSUFFICIENT_FUNDS in line for line in logs.output))
        self.assertEqual(Transaction.query.count(), 0)

    def test_withdraw_above_maximum_is_invalid_amount(self):
        response = self.client.post('/api/withdraw', json={"amount": 60000}, headers=self.headers)
        data = self.assertEnvelope(response, 422, ErrorCodes.INVALID_AMOUNT)
        self.assertEqual(data['status_message'], 'Maximum withdrawal amount is 50000.')
        self.assertEqual(UserBalance.query.filter_by(user_id=self.user.id).one().balance, 5)

    def test_balance_update_schema_rejections(self):
        with self.assertLogs(self.app.logger, level='WARNING') as logs:
            response = self.client.post('/api/balance', json={"amount": "lots"}, headers=self.headers)

        data = self.assertEnvelope(response, 422, ErrorCodes.VALIDATION_ERROR)
        self.assertEqual(data['status_message'], 'Input validation failed.')
        errors = data['details']['errors']
        self.assertEqual(set(errors), {'amount', 'action'})
        self.assertEqual(errors['action'], ['Missing data for required field.'])
        self.assertTrue(any(ErrorCodes.VALIDATION_ERROR in line for line in logs.output))

    def test_negative_win_rejected_by_schema(self):
        response = self.client.post('/api/balance', json={"amount": -3, "action": "win"}, headers=self.headers)
        data = self.assertEnvelope(response, 422, ErrorCodes.VALIDATION_ERROR)
        self.assertEqual(data['details']['errors']['amount'], ['Amount must be positive'])

    def test_missing_token(self):
        anonymous = self.app.test_client()
        response = anonymous.get('/api/transactions')
        self.assertEnvelope(response, 401, ErrorCodes.UNAUTHENTICATED)

    def test_player_on_admin_route(self):
        response = self.client.get('/api/admin/stats', headers=self.headers)
        data = self.assertEnvelope(response, 403, ErrorCodes.ADMIN_REQUIRED)
        self.assertEqual(data['status_message'], 'Admin privileges required')

    def test_unknown_route(self):
        with self.assertLogs(self.app.logger, level='WARNING') as logs:
            response = self.client.get('/api/jackpot-history')

        data = self.assertEnvelope(response, 404, ErrorCodes.NOT_FOUND)
        self.assertEqual(data['status_message'], 'The requested resource was not found.')
        self.assertEqual(data['details'], {'path': '/api/jackpot-history'})
        self.assertTrue(any(ErrorCodes.NOT_FOUND in line for line in logs.output))

    def test_wrong_method_on_login(self):
        response = self.client.get('/api/login')
        data = self.assertEnvelope(response, 405, ErrorCodes.METHOD_NOT_ALLOWED)
        self.assertEqual(data['status_message'], 'Method Not Allowed')

    def test_database_failure_during_bet(self):
        with patch('spinverse_be.routes.balance.apply_balance_change', side_effect=SQLAlchemyError("disk I/O error")):
            response = self.client.post('/api/balance', json={"amount": 1, "action": "bet"}, headers=self.headers)

        data = self.assertEnvelope(response, 500, ErrorCodes.INTERNAL_SERVER_ERROR)
        self.assertEqual(data['status_message'], 'A database error occurred. Please try again later.')
        self.assertNotIn('disk', str(data))

    def test_unexpected_failure_is_logged_as_critical(self):
        with patch('spinverse_be.routes.balance.apply_balance_change', side_effect=ValueError("bad row")):
            with self.assertLogs(self.app.logger, level='CRITICAL') as logs:
                response = self.client.post('/api/balance', json={"amount": 1, "action": "bet"}, headers=self.headers)

        data = self.assertEnvelope(response, 500, ErrorCodes.INTERNAL_SERVER_ERROR)
        self.assertEqual(data['status_message'], 'An unexpected internal server error occurred. Please try again later.')
        self.assertIs(logs.records[0].exc_info[0], ValueError)

    def test_login_limiter_rejection_uses_error_payload(self):
        stranger = self.app.test_client()
        for _ in range(4):
            stranger.post('/api/login', json={"email": "test@example.com", "password": "WrongPass99"})

        with self.assertLogs(self.app.logger, level='WARNING') as logs:
            response = stranger.post('/api/login', json={"email": "test@example.com", "password": TEST_PASSWORD})

        self.assertEqual(response.status_code, 429)
        self.assertEqual(set(response.get_json()), {'error'})
        self.assertEqual(response.get_json()['error']['code'], ErrorCodes.RATE_LIMIT_EXCEEDED)
        self.assertTrue(any(ErrorCodes.RATE_LIMIT_EXCEEDED in line for line in logs.output))

    def test_registration_ceiling_uses_generic_limit_message(self):
        visitor = self.app.test_client(use_cookies=False)
        for n in range(10):
            response = visitor.post('/api/register', json={"email": f"new{n}@example.com", "password": TEST_PASSWORD})
            self.assertEqual(response.status_code, 201, response.get_json())

        response = visitor.post('/api/register', json={"email": "new10@example.com", "password": TEST_PASSWORD})
        self.assertEqual(response.status_code, 429)
        error = response.get_json()['error']
        self.assertEqual(error['code'], ErrorCodes.RATE_LIMIT_EXCEEDED)
        self.assertEqual(error['message'], 'Too many requests, please try again later')
        self.assertIn('hour', error['nextAttemptIn'])

    def test_request_id_is_echoed_and_logged(self):
        with self.assertLogs(self.app.logger, level='ERROR') as logs:
            response = self.client.post('/api/balance', json={"amount": 10, "action": "bet"},
                                        headers={**self.headers, 'X-Request-ID': 'spin-42'})

        self.assertEqual(response.headers['X-Request-ID'], 'spin-42')
        self.assertEqual(response.get_json()['request_id'], 'spin-42')
        self.assertTrue(any('Request ID: spin-42' in line for line in logs.output))

    def test_request_id_generated_when_absent(self):
        response = self.client.get('/api/balance', headers=self.headers)
        self.assertEqual(response.status_code, 200)
        uuid.UUID(response.headers['X-Request-ID'])
