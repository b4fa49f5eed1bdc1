"""
Credentials and tokens: bcrypt password hashes, JWT access tokens and
share-link tokens.
"""
import re
import secrets
import string
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from fitsnap.config import get_settings
from fitsnap.schemas.user import TokenPayload

settings = get_settings()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

SHARE_TOKEN_LENGTH = 24
SHARE_TOKEN_ALPHABET = string.ascii_letters + string.digits
_SHARE_TOKEN_RE = re.compile(rf"^[A-Za-z0-9]{{{SHARE_TOKEN_LENGTH}}}$")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    user_id: int,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Issue a signed access token for ``user_id``.

    Lifetime defaults to ``ACCESS_TOKEN_EXPIRE_MINUTES`` (one day).
    """
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

    claims = {
        "sub": str(user_id),  # JWT subject must be a string
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[TokenPayload]:
    """
    Verify signature and expiry.

    Returns:
        TokenPayload if valid, None if invalid or expired
    """
    try:
        claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None

    subject = claims.get("sub")
    exp = claims.get("exp")
    if subject is None or exp is None:
        return None

    try:
        return TokenPayload(sub=int(subject), exp=datetime.fromtimestamp(exp, tz=timezone.utc))
    except (TypeError, ValueError):
        return None


def generate_share_token(length: int = SHARE_TOKEN_LENGTH) -> str:
    """
    Random share-link token drawn from ``[A-Za-z0-9]`` with the ``secrets``
    CSPRNG, so it can be used in a URL path as is.
    """
    return "".join(secrets.choice(SHARE_TOKEN_ALPHABET) for _ in range(length))


def is_well_formed_share_token(token: str) -> bool:
    """True if ``token`` could have come from ``generate_share_token``."""
    return bool(_SHARE_TOKEN_RE.match(token or ""))
