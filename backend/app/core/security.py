# app/core/security.py
"""
Security module for authentication primitives.
Handles password hashing, session token signing/validation, and the
generation and comparison of one-time verification codes.
"""
import datetime as dt
import hashlib
import hmac
import secrets

import jwt  # PyJWT
from passlib.context import CryptContext

from app.config import settings

# Password hashing context
# Argon2 is a modern, salted, memory-hard password hashing algorithm
pwd_context = CryptContext(
    schemes=["argon2"],  # Use Argon2 for password hashing
    deprecated="auto",   # Automatically handle deprecated schemes
)

JWT_ALG = "HS256"  # JWT signing algorithm (HMAC SHA-256)

# Alphabet for verification codes (6-digit numeric)
NUMERIC_ALPHABET = "0123456789"


def hash_password(plain: str) -> str:
    """
    Hash a plain text password using Argon2.

    Args:
        plain: Plain text password to hash

    Returns:
        Hashed password string (safe to store in database)
    """
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str | None) -> bool:
    """
    Verify a plain text password against a hashed password.

    Accounts provisioned through OAuth have no hash at all; those never match.
    """
    if not hashed:
        return False
    return pwd_context.verify(plain, hashed)


def create_session_token(session_id: str, account_id: int, expires_at: dt.datetime) -> str:
    """
    Sign a token that points at a server-side session row.

    The token carries no authority on its own: the session row must still
    exist and be unexpired when the token is presented, so logout and
    suspension take effect immediately.

    Token payload includes:
        - sid: Server-side session id
        - sub: Account id (diagnostics only, never trusted without the row)
        - iat: Issued at timestamp
        - exp: Hard upper bound of the token lifetime
    """
    now = dt.datetime.now(dt.timezone.utc)
    payload = {
        "sid": session_id,
        "sub": str(account_id),
        "iat": now,
        "exp": expires_at,
    }
    return jwt.encode(payload, settings.session_secret, algorithm=JWT_ALG)


def decode_session_token(token: str) -> dict:
    """
    Decode and validate a session token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or malformed
    """
    return jwt.decode(token, settings.session_secret, algorithms=[JWT_ALG])


def generate_code(length: int, alphabet: str = NUMERIC_ALPHABET) -> str:
    """Draw a fixed-length code from `alphabet` using a CSPRNG."""
    return "".join(secrets.choice(alphabet) for _ in range(length))


def hash_code(code: str) -> str:
    """sha256 hex digest of the exact code (case-sensitive, no trimming)."""
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


def code_matches(submitted: str, code_hash: str) -> bool:
    """Constant-time comparison of a submitted code against a stored digest."""
    return hmac.compare_digest(hash_code(submitted), code_hash)
