from __future__ import annotations

import unittest
from datetime import datetime, timedelta, timezone

from jose import jwt

from tests.support import DatabaseTestCase, seed_user

from site_tracker.errors import ApiError
from site_tracker.models import User, UserRole, UserStatus
from site_tracker.repositories.users import authenticate_user
from site_tracker.security import (
    create_access_token,
    decode_token,
    ensure_login_attempt_allowed,
    hash_password,
    register_login_failure,
    register_login_success,
    reset_login_attempts,
    verify_password,
)
from site_tracker.settings import get_settings


class PasswordHashingTests(unittest.TestCase):
    def test_hash_and_verify(self) -> None:
        hashed = hash_password("StrongPass123!")

        self.assertNotEqual(hashed, "StrongPass123!")
        self.assertTrue(hashed.startswith("$2"))
        self.assertTrue(verify_password("StrongPass123!", hashed))
        self.assertFalse(verify_password("wrong", hashed))

    def test_malformed_hash_does_not_raise(self) -> None:
        self.assertFalse(verify_password("anything", "not-a-bcrypt-hash"))
        self.assertFalse(verify_password("anything", ""))


class TokenTests(unittest.TestCase):
    def _user(self) -> User:
        return User(id=7, username="nomsa", name="Nomsa", role=UserRole.PROJECT_MANAGER, status=UserStatus.ACTIVE)

    def test_token_carries_identity_claims(self) -> None:
        token, expires_in, claims = create_access_token(self._user())

        payload = decode_token(token)

        self.assertEqual(expires_in, 24 * 3600)
        self.assertEqual(payload["sub"], "7")
        self.assertEqual(payload["username"], "nomsa")
        self.assertEqual(payload["role"], "Project Manager")
        self.assertEqual(payload["jti"], claims["jti"])
        self.assertEqual(payload["exp"] - payload["iat"], expires_in)

    def test_expired_token_is_reported_as_expired(self) -> None:
        settings = get_settings()
        issued = datetime.now(timezone.utc) - timedelta(hours=25)
        token = jwt.encode(
            {
                "sub": "7",
                "iss": settings.jwt_issuer,
                "aud": settings.jwt_audience,
                "iat": int(issued.timestamp()),
                "exp": int((issued + timedelta(hours=24)).timestamp()),
            },
            settings.jwt_secret,
            algorithm="HS256",
        )

        with self.assertRaises(ApiError) as ctx:
            decode_token(token)

        self.assertEqual(ctx.exception.status_code, 401)
        self.assertEqual(ctx.exception.code, "TOKEN_EXPIRED")

    def test_token_signed_with_other_secret_is_invalid(self) -> None:
        settings = get_settings()
        now = datetime.now(timezone.utc)
        token = jwt.encode(
            {
                "sub": "7",
                "iss": settings.jwt_issuer,
                "aud": settings.jwt_audience,
                "iat": int(now.timestamp()),
                "exp": int((now + timedelta(hours=1)).timestamp()),
            },
            "some-other-secret",
            algorithm="HS256",
        )

        with self.assertRaises(ApiError) as ctx:
            decode_token(token)

        self.assertEqual(ctx.exception.code, "INVALID_TOKEN")

    def test_garbage_token_is_invalid(self) -> None:
        with self.assertRaises(ApiError) as ctx:
            decode_token("not.a.token")
        self.assertEqual(ctx.exception.code, "INVALID_TOKEN")


class LoginThrottleTests(unittest.TestCase):
    def setUp(self) -> None:
        reset_login_attempts()

    def tearDown(self) -> None:
        reset_login_attempts()

    def test_ten_failures_block_further_attempts(self) -> None:
        for _ in range(10):
            ensure_login_attempt_allowed("10.0.0.1")
            register_login_failure("10.0.0.1")

        with self.assertRaises(ApiError) as ctx:
            ensure_login_attempt_allowed("10.0.0.1")
        self.assertEqual(ctx.exception.status_code, 429)

        ensure_login_attempt_allowed("10.0.0.2")

    def test_success_clears_failures(self) -> None:
        for _ in range(9):
            register_login_failure("10.0.0.3")
        register_login_success("10.0.0.3")
        register_login_failure("10.0.0.3")

        ensure_login_attempt_allowed("10.0.0.3")


class AuthenticateUserTests(DatabaseTestCase):
    def test_unknown_user_and_wrong_password_fail_identically(self) -> None:
        seed_user(self.db, "lerato", role=UserRole.VIEWER, password="correct-horse")

        with self.assertRaises(ApiError) as unknown:
            authenticate_user(self.db, "nobody", "correct-horse")
        with self.assertRaises(ApiError) as wrong:
            authenticate_user(self.db, "lerato", "battery-staple")

        self.assertEqual(unknown.exception.status_code, wrong.exception.status_code)
        self.assertEqual(unknown.exception.code, wrong.exception.code)
        self.assertEqual(unknown.exception.message, wrong.exception.message)

    def test_status_checked_after_credentials(self) -> None:
        seed_user(self.db, "suspended", status=UserStatus.SUSPENDED, password="correct-horse")
        seed_user(self.db, "inactive", status=UserStatus.INACTIVE, password="correct-horse")

        with self.assertRaises(ApiError) as bad_password:
            authenticate_user(self.db, "suspended", "nope-nope")
        self.assertEqual(bad_password.exception.code, "INVALID_CREDENTIALS")

        with self.assertRaises(ApiError) as suspended:
            authenticate_user(self.db, "suspended", "correct-horse")
        self.assertEqual(suspended.exception.status_code, 403)
        self.assertEqual(suspended.exception.code, "ACCOUNT_SUSPENDED")

        with self.assertRaises(ApiError) as inactive:
            authenticate_user(self.db, "inactive", "correct-horse")
        self.assertEqual(inactive.exception.code, "ACCOUNT_INACTIVE")

    def test_successful_login_stamps_last_login(self) -> None:
        user = seed_user(self.db, "lerato", password="correct-horse")
        self.assertIsNone(user.last_login)

        authenticated = authenticate_user(self.db, "lerato", "correct-horse")

        self.assertEqual(authenticated.id, user.id)
        self.assertIsNotNone(authenticated.last_login)


if __name__ == "__main__":
    unittest.main()
