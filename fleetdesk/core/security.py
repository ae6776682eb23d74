"""Token signing and password hashing for the local platform's auth and storage."""
from datetime import datetime, timedelta, timezone
import hashlib
import hmac
import secrets
from typing import Dict, Optional

import jwt

from fleetdesk.config import settings

SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES
REFRESH_TOKEN_EXPIRE_DAYS = 7
PASSWORD_ITERATIONS = 120_000


def create_access_token(
    user_id: str,
    email: Optional[str] = None,
    custom_claims: Optional[Dict] = None,
    expires_delta: Optional[timedelta] = None,
    secret_key: Optional[str] = None,
) -> str:
    to_encode = {
        "sub": user_id,
        "email": email,
        "token_type": "access",
        "role": "authenticated",
        "jti": secrets.token_hex(8),
    }

    if custom_claims:
        to_encode.update(custom_claims)

    # drop unset claims
    to_encode = {k: v for k, v in to_encode.items() if v is not None}

    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "iat": now})

    return jwt.encode(to_encode, secret_key or SECRET_KEY, algorithm=ALGORITHM)


def create_refresh_token(user_id: str, secret_key: Optional[str] = None) -> str:
    now = datetime.now(timezone.utc)
    to_encode = {
        "sub": user_id,
        "token_type": "refresh",
        "exp": now + timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS),
        "iat": now,
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(to_encode, secret_key or SECRET_KEY, algorithm=ALGORITHM)


def create_signed_token(claims: Dict, expires_in: int, secret_key: Optional[str] = None) -> str:
    """Short-lived token for signed storage URLs."""
    now = datetime.now(timezone.utc)
    payload = dict(claims)
    payload.update({"exp": now + timedelta(seconds=expires_in), "iat": now})
    return jwt.encode(payload, secret_key or SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str, secret_key: Optional[str] = None) -> Dict:
    """Decode and verify a token. Raises ``jwt.InvalidTokenError`` (incl. expiry) on failure."""
    return jwt.decode(token, secret_key or SECRET_KEY, algorithms=[ALGORITHM])


def hash_password(password: str, salt: Optional[str] = None) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), PASSWORD_ITERATIONS)
    return f"{salt}${digest.hex()}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    salt, _, expected = hashed_password.partition("$")
    if not expected:
        return False
    candidate = hash_password(plain_password, salt).partition("$")[2]
    return hmac.compare_digest(candidate, expected)
