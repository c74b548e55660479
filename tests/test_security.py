import unittest
from datetime import timedelta
from unittest import mock

import jwt
from fastapi import HTTPException

from app.config import Settings
from app.core.dates import utcnow
from app.core.security import (
    Principal,
    authenticate_request,
    decode_token,
    issue_token,
)

SECRET = "unit-test-signing-secret-0123456789"


def _settings(**overrides):
    values = {"JWT_SECRET": SECRET, "API_KEYS": None, "OWNER_API_KEY": None}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TokenTest(unittest.TestCase):
    def setUp(self):
        patcher = mock.patch("app.core.security.get_settings", return_value=_settings())
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_issued_token_round_trips_to_principal(self):
        token = issue_token(user_id=7, store_id=3, role="MANAGER")

        principal = decode_token(token)

        self.assertEqual(principal.kind, "user")
        self.assertEqual((principal.user_id, principal.store_id, principal.role), (7, 3, "MANAGER"))
        self.assertTrue(principal.can_act_for(3))
        self.assertFalse(principal.can_act_for(4))
        self.assertTrue(principal.has_role(("OWNER", "MANAGER")))
        self.assertFalse(principal.has_role(("OWNER",)))

    def test_expired_token_is_rejected(self):
        past = utcnow() - timedelta(days=1)
        token = jwt.encode(
            {"sub": "7", "store_id": 3, "role": "OWNER", "exp": past}, SECRET, algorithm="HS256"
        )

        with self.assertRaises(HTTPException) as ctx:
            decode_token(token)
        self.assertEqual(ctx.exception.status_code, 401)

    def test_token_without_store_is_rejected(self):
        token = jwt.encode(
            {"sub": "7", "role": "OWNER", "exp": utcnow() + timedelta(hours=1)},
            SECRET,
            algorithm="HS256",
        )

        with self.assertRaises(HTTPException) as ctx:
            decode_token(token)
        self.assertEqual(ctx.exception.status_code, 401)

    def test_service_principal_is_not_store_bound(self):
        principal = Principal(kind="api_key")
        self.assertTrue(principal.can_act_for(99))
        self.assertTrue(principal.has_role(("OWNER",)))


class AuthenticateRequestTest(unittest.TestCase):
    def _authenticate(self, settings, **kwargs):
        with mock.patch("app.core.security.get_settings", return_value=settings):
            return authenticate_request(
                kwargs.get("api_key"), kwargs.get("authorization"), require_auth=True
            )

    def test_anonymous_allowed_when_nothing_configured(self):
        self.assertIsNone(self._authenticate(_settings(JWT_SECRET=None)))

    def test_anonymous_rejected_once_configured(self):
        with self.assertRaises(HTTPException) as ctx:
            self._authenticate(_settings())
        self.assertEqual(ctx.exception.status_code, 401)

    def test_api_key(self):
        principal = self._authenticate(_settings(API_KEYS="one, two"), api_key="two")
        self.assertTrue(principal.is_service)

        with self.assertRaises(HTTPException):
            self._authenticate(_settings(API_KEYS="one, two"), api_key="three")

    def test_bearer_token(self):
        settings = _settings()
        with mock.patch("app.core.security.get_settings", return_value=settings):
            token = issue_token(user_id=1, store_id=2, role="STAFF")

        principal = self._authenticate(settings, authorization=f"Bearer {token}")

        self.assertEqual(principal.store_id, 2)
        self.assertEqual(principal.role, "STAFF")



if __name__ == "__main__":
    unittest.main()
