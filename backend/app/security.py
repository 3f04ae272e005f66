"""
Password hashing and JWT helpers for cookie based sessions.
"""
import hashlib
import hmac
import secrets
import time
from typing import Any

from authlib.jose import JoseError, jwt
from authlib.jose.errors import ExpiredTokenError

from app.config import Config

PBKDF2_ALGORITHM = "pbkdf2_sha256"
PBKDF2_ITERATIONS = 390_000

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


class TokenError(Exception):
    """Token is missing, malformed, badly signed or of the wrong type."""


class TokenExpiredError(TokenError):
    """Token signature is fine but it is past its `exp`."""


def hash_password(password: str, iterations: int = PBKDF2_ITERATIONS) -> str:
    """Return `pbkdf2_sha256$<iterations>$<salt>$<hex digest>`."""
    salt = secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return f"{PBKDF2_ALGORITHM}${iterations}${salt}${digest.hex()}"


def verify_password(password: str, password_hash: str) -> bool:
    try:
        algorithm, iterations, salt, expected = password_hash.split("$", 3)
        iterations = int(iterations)
    except ValueError:
        return False
    if algorithm != PBKDF2_ALGORITHM:
        return False

    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return hmac.compare_digest(digest.hex(), expected)


def _secret_for(token_type: str) -> str:
    if token_type == ACCESS_TOKEN:
        return Config.ACCESS_TOKEN_SECRET
    if token_type == REFRESH_TOKEN:
        return Config.REFRESH_TOKEN_SECRET
    raise ValueError(f"Unknown token type: {token_type}")


def create_token(user_id: int, email: str, token_type: str, expires_in: int) -> str:
    """Sign an HS256 token for the given user."""
    now = int(time.time())
    payload = {
        "sub": str(user_id),
        "email": email,
        "typ": token_type,
        "iat": now,
        "exp": now + expires_in,
    }
    token = jwt.encode({"alg": "HS256"}, payload, _secret_for(token_type))
    return token.decode("utf-8")


def create_access_token(user_id: int, email: str) -> str:
    return create_token(user_id, email, ACCESS_TOKEN, Config.ACCESS_TOKEN_LIFE)


def create_refresh_token(user_id: int, email: str) -> str:
    return create_token(user_id, email, REFRESH_TOKEN, Config.REFRESH_TOKEN_LIFE)


def decode_token(token: str, token_type: str) -> dict[str, Any]:
    """Verify signature, expiry and type, and return the claims.

    Raises:
        TokenExpiredError: the token is expired
        TokenError: any other problem with the token
    """
    if not token:
        raise TokenError("Token not found")

    try:
        claims = jwt.decode(token, _secret_for(token_type))
        claims.validate()
    except ExpiredTokenError as e:
        raise TokenExpiredError("Token has expired") from e
    except (JoseError, ValueError) as e:
        raise TokenError(f"Invalid token: {e}") from e

    if claims.get("typ") != token_type or not claims.get("sub"):
        raise TokenError("Invalid token: unexpected claims")
    return dict(claims)
