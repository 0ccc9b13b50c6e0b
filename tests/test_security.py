import unittest
from types import SimpleNamespace
from unittest.mock import patch

import jwt

from app.config import Settings
from app.core import security, session_auth
from app.core.errors import InventoryError, Unauthorized
from app.core.security import Principal
from app.core.session_auth import hash_password

JWT_SECRET = "s3cret-s3cret-s3cret-s3cret-s3cret"


def _settings(**values):
    return Settings(**values)


class AuthenticateRequestTest(unittest.TestCase):
    def test_open_when_nothing_configured(self):
        with patch.object(security, "get_settings", return_value=_settings()):
            self.assertEqual(security.authenticate_request(None, None), Principal(method="open"))

    def test_open_access_still_names_the_session_user(self):
        with patch.object(security, "get_settings", return_value=_settings()):
            principal = security.authenticate_request(None, None, session_user="owner")
        self.assertEqual(principal, Principal(method="open", actor="owner"))

    def test_api_key_resolves_to_its_label(self):
        settings = _settings(API_KEYS="till-1=alpha, till-2=beta, gamma", FOUNDER_API_KEY="root-key")
        with patch.object(security, "get_settings", return_value=settings):
            self.assertEqual(security.authenticate_request("beta", None), Principal("api_key", "till-2"))
            self.assertEqual(security.authenticate_request(" gamma ", None).actor, "api-key")
            self.assertEqual(security.authenticate_request("root-key", None).actor, "founder")

    def test_wrong_api_key_rejected(self):
        settings = _settings(FOUNDER_API_KEY="founder")
        with patch.object(security, "get_settings", return_value=settings):
            with self.assertRaises(Unauthorized) as ctx:
                security.authenticate_request("guess", None)
        self.assertEqual(ctx.exception.status_code, 401)
        self.assertEqual(ctx.exception.to_payload(), {"detail": "Unknown API key."})

    def test_bearer_jwt_subject_is_the_actor(self):
        settings = _settings(JWT_SECRET=JWT_SECRET)
        token = jwt.encode({"sub": "till-1"}, JWT_SECRET, algorithm="HS256")
        with patch.object(security, "get_settings", return_value=settings):
            principal = security.authenticate_request(None, "Bearer {}".format(token))
        self.assertEqual(principal, Principal(method="jwt", actor="till-1"))

    def test_tampered_jwt_rejected(self):
        settings = _settings(JWT_SECRET=JWT_SECRET)
        token = jwt.encode({"sub": "till-1"}, "other-secret-other-secret-other", algorithm="HS256")
        with patch.object(security, "get_settings", return_value=settings):
            with self.assertRaises(Unauthorized):
                security.authenticate_request(None, "Bearer {}".format(token))

    def test_bearer_without_jwt_secret_rejected(self):
        settings = _settings(API_KEYS="alpha")
        with patch.object(security, "get_settings", return_value=settings):
            with self.assertRaises(Unauthorized):
                security.authenticate_request(None, "Bearer abc.def.ghi")

    def test_jwt_required_ignores_api_keys(self):
        settings = _settings(API_KEYS="alpha", JWT_SECRET=JWT_SECRET, JWT_REQUIRED=True)
        with patch.object(security, "get_settings", return_value=settings):
            with self.assertRaises(Unauthorized):
                security.authenticate_request("alpha", None)

    def test_session_user_accepted(self):
        settings = _settings(API_KEYS="alpha")
        with patch.object(security, "get_settings", return_value=settings):
            principal = security.authenticate_request(None, None, session_user="owner")
        self.assertEqual(principal, Principal(method="session", actor="owner"))

    def test_nothing_presented_rejected(self):
        settings = _settings(API_KEYS="alpha")
        with patch.object(security, "get_settings", return_value=settings):
            with self.assertRaises(Unauthorized):
                security.authenticate_request(None, None)


class SessionLoginTest(unittest.TestCase):
    def _request(self):
        return SimpleNamespace(session={"stale": True}, scope={})

    def test_login_stores_configured_username(self):
        request = self._request()
        settings = _settings(DASHBOARD_USERNAME="Owner", DASHBOARD_PASSWORD="secret")
        with patch.object(session_auth, "get_settings", return_value=settings):
            user = session_auth.login(request, " owner ", "secret")
        self.assertEqual(user, "Owner")
        self.assertEqual(request.session, {"user": "Owner"})

    def test_login_with_password_hash(self):
        request = self._request()
        settings = _settings(
            DASHBOARD_USERNAME="owner",
            DASHBOARD_PASSWORD_HASH=hash_password("secret", "salt", 1000),
            DASHBOARD_PASSWORD_SALT="salt",
            DASHBOARD_PBKDF2_ROUNDS=1000,
        )
        with patch.object(session_auth, "get_settings", return_value=settings):
            self.assertEqual(session_auth.login(request, "owner", "secret"), "owner")
            with self.assertRaises(Unauthorized):
                session_auth.login(request, "owner", "guess")

    def test_login_not_configured(self):
        with patch.object(session_auth, "get_settings", return_value=_settings()):
            with self.assertRaises(InventoryError) as ctx:
                session_auth.login(self._request(), "owner", "secret")
        self.assertEqual(ctx.exception.status_code, 400)

    def test_hash_without_salt_is_a_server_error(self):
        settings = _settings(DASHBOARD_USERNAME="owner", DASHBOARD_PASSWORD_HASH="abc")
        with patch.object(session_auth, "get_settings", return_value=settings):
            with self.assertRaises(InventoryError) as ctx:
                session_auth.login(self._request(), "owner", "secret")
        self.assertEqual(ctx.exception.status_code, 500)


class PasswordHashTest(unittest.TestCase):
    def test_hash_is_deterministic_per_salt(self):
        first = hash_password("secret", "salt", 1000)
        self.assertEqual(first, hash_password("secret", "salt", 1000))
        self.assertNotEqual(first, hash_password("secret", "pepper", 1000))


if __name__ == "__main__":
    unittest.main()
