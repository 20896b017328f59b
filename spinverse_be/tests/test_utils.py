import unittest

from flask import Flask, jsonify
from flask_jwt_extended import create_access_token, decode_token

from spinverse_be.utils.security import (
    sanitize_input, secure_headers, validate_password_strength, generate_secure_session_id
)
from spinverse_be.utils.decorators import admin_required
from spinverse_be.utils.auth import user_id_from_token, revoke_token
from spinverse_be.error_codes import ErrorCodes
from spinverse_be.tests.test_api import BaseTestCase


class TestSanitizeInput(unittest.TestCase):

    def test_escapes_markup(self):
        self.assertEqual(sanitize_input("<b>hi</b>"), "&lt;b&gt;hi&lt;/b&gt;")

    def test_strips_sql_keywords(self):
        self.assertEqual(sanitize_input("name; DROP table--"), "name  table")

    def test_recurses_into_containers(self):
        data = {"a": ["<x>", 3], "b": {"c": "ok"}}
        self.assertEqual(sanitize_input(data), {"a": ["&lt;x&gt;", 3], "b": {"c": "ok"}})

    def test_non_strings_untouched(self):
        self.assertEqual(sanitize_input(42), 42)
        self.assertIsNone(sanitize_input(None))


class TestPasswordStrength(unittest.TestCase):

    def test_strong_password(self):
        self.assertEqual(validate_password_strength("SpinVerse42"), [])

    def test_each_rule_reported(self):
        self.assertIn("Password must be at least 8 characters long", validate_password_strength("Ab1"))
        self.assertTrue(any("uppercase" in e for e in validate_password_strength("spinverse42")))
        self.assertTrue(any("lowercase" in e for e in validate_password_strength("SPINVERSE42")))
        self.assertTrue(any("digit" in e for e in validate_password_strength("SpinVerseX")))

    def test_common_password(self):
        self.assertIn("Password is too common", validate_password_strength("Password123"))


class TestSecurityHelpers(unittest.TestCase):

    def test_session_ids_are_unique(self):
        ids = {generate_secure_session_id() for _ in range(50)}
        self.assertEqual(len(ids), 50)
        self.assertTrue(all(len(i) >= 40 for i in ids))

    def test_secure_headers(self):
        app = Flask(__name__)
        with app.test_request_context():
            response = secure_headers(jsonify(status=True))
        self.assertEqual(response.headers['X-Content-Type-Options'], 'nosniff')
        self.assertEqual(response.headers['X-Frame-Options'], 'DENY')
        self.assertEqual(response.headers['Cache-Control'], 'no-store')


class TestAdminRequired(BaseTestCase):

    def setUp(self):
        super().setUp()

        @self.app.route('/test/admin-only')
        @admin_required
        def admin_only():
            return jsonify(status=True)

        self.admin = self._create_user(username="admin", email="admin@example.com", is_admin=True)
        self.player = self._create_user()

    def _get(self, token):
        return self.client.get('/test/admin-only', headers=self._auth_headers(token))

    def test_admin_with_claim(self):
        token = create_access_token(identity=self.admin, additional_claims={'is_admin': True})
        self.assertEqual(self._get(token).status_code, 200)

    def test_admin_without_claim(self):
        token = create_access_token(identity=self.admin)
        response = self._get(token)
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.get_json()['error_code'], ErrorCodes.ADMIN_REQUIRED)

    def test_player_with_forged_claim(self):
        token = create_access_token(identity=self.player, additional_claims={'is_admin': True})
        self.assertEqual(self._get(token).status_code, 403)

    def test_missing_token(self):
        response = self.client.get('/test/admin-only')
        self.assertEqual(response.status_code, 401)


class TestTokenHelpers(BaseTestCase):

    def test_user_id_from_valid_token(self):
        user = self._create_user()
        token = create_access_token(identity=user)
        self.assertEqual(user_id_from_token(token), user.id)

    def test_user_id_from_garbage(self):
        self.assertIsNone(user_id_from_token("not-a-jwt"))

    def test_revoked_token_is_rejected(self):
        user = self._create_user()
        token = create_access_token(identity=user)
        revoke_token(decode_token(token))
        self.assertIsNone(user_id_from_token(token))
