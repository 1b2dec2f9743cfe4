"""Low-level auth helpers: password hashing + JWT encode/decode."""

from datetime import datetime, timedelta, timezone

from passlib.context import CryptContext
from jose import jwt

from dashboard.config import settings

ACCESS_TOKEN_TYPE = "access"

# ── Password hashing ────────────────────────────────────────────
_pwd_ctx = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(plain: str) -> str:
    return _pwd_ctx.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    if not hashed:
        return False
    return _pwd_ctx.verify(plain, hashed)


# ── JWT ──────────────────────────────────────────────────────────
def create_access_token(
    user_id: str,
    token_version: int = 0,
    expires_delta: timedelta | None = None,
) -> str:
    """
    Issue an access token.

    Payload: sub (user id), token_version (must match the user document,
    bumped on logout to revoke), type ("access"), iat, exp.
    """
    now = datetime.now(timezone.utc)
    expire = now + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {
        "sub": user_id,
        "token_version": token_version,
        "type": ACCESS_TOKEN_TYPE,
        "iat": int(now.timestamp()),
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str) -> dict:
    """Decode and verify a JWT. Raises jose.JWTError (or ExpiredSignatureError)."""
    return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
