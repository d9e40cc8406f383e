"""
Unit tests for core.security module.
Tests password hashing, session token signing and verification code helpers.
"""
import datetime as dt

import jwt
import pytest

from app.config import settings
from app.core.security import (
    JWT_ALG,
    NUMERIC_ALPHABET,
    code_matches,
    create_session_token,
    decode_session_token,
    generate_code,
    hash_code,
    hash_password,
    verify_password,
)


class TestPasswordHashing:
    """Tests for password hashing and verification."""

    def test_hash_password_returns_different_hash_each_time(self):
        """Password hashing should produce different hashes (salt included)."""
        password = "TestPassword123"
        assert hash_password(password) != hash_password(password)

    def test_hash_is_argon2_and_not_plain_text(self):
        hashed = hash_password("TestPassword123")
        assert hashed.startswith("$argon2")
        assert "TestPassword123" not in hashed

    def test_verify_password_correct_and_incorrect(self):
        hashed = hash_password("TestPassword123")
        assert verify_password("TestPassword123", hashed) is True
        assert verify_password("WrongPassword456", hashed) is False

    def test_verify_password_without_hash_never_matches(self):
        """OAuth accounts have no hash; no password may log them in."""
        assert verify_password("anything", None) is False
        assert verify_password("", "") is False


class TestSessionTokens:
    """Tests for the signed token that points at a server-side session."""

    def _token(self, days: int = 1) -> str:
        expires = dt.datetime.now(dt.timezone.utc) + dt.timedelta(days=days)
        return create_session_token("3f0c-session", 42, expires)

    def test_token_carries_session_id_and_account(self):
        payload = decode_session_token(self._token())
        assert payload["sid"] == "3f0c-session"
        assert payload["sub"] == "42"
        assert payload["exp"] > payload["iat"]

    def test_expired_token_is_rejected(self):
        with pytest.raises(jwt.ExpiredSignatureError):
            decode_session_token(self._token(days=-1))

    def test_wrong_secret_is_rejected(self):
        with pytest.raises(jwt.InvalidSignatureError):
            jwt.decode(self._token(), settings.session_secret + "x", algorithms=[JWT_ALG])

    def test_garbage_token_is_rejected(self):
        with pytest.raises(jwt.InvalidTokenError):
            decode_session_token("invalid.token.here")


class TestVerificationCodes:
    """Tests for code generation and constant-time comparison."""

    def test_generate_code_is_fixed_length_numeric(self):
        for _ in range(50):
            code = generate_code(6)
            assert len(code) == 6
            assert set(code) <= set(NUMERIC_ALPHABET)

    def test_generate_code_custom_alphabet(self):
        code = generate_code(8, alphabet="AB")
        assert len(code) == 8
        assert set(code) <= {"A", "B"}

    def test_hash_code_is_deterministic_sha256(self):
        assert hash_code("123456") == hash_code("123456")
        assert len(hash_code("123456")) == 64
        assert hash_code("123456") != hash_code("123457")

    def test_code_matches_exactly(self):
        stored = hash_code("048213")
        assert code_matches("048213", stored) is True
        assert code_matches("48213", stored) is False
        assert code_matches(" 048213", stored) is False
        assert code_matches("048214", stored) is False

    def test_code_comparison_is_case_sensitive(self):
        stored = hash_code("abC123")
        assert code_matches("abC123", stored) is True
        assert code_matches("ABC123", stored) is False
