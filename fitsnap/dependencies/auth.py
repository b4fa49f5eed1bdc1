"""
Bearer-token dependencies resolving the current FitSnap user.
"""
import logging
from typing import Any, NoReturn, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from fitsnap.database import get_db
from fitsnap.models.user import User
from fitsnap.services.auth import AuthService
from fitsnap.utils.prometheus_metrics import jwt_token_validation_total
from fitsnap.utils.security import decode_access_token

logger = logging.getLogger("fitsnap.auth")

# auto_error=False: 토큰 누락도 403이 아닌 401로 응답
bearer_scheme = HTTPBearer(auto_error=False)


def _reject(reason: str, count_validation: bool = True, **context: Any) -> NoReturn:
    if count_validation:
        jwt_token_validation_total.labels(result="failure").inc()
    logger.warning("Auth failed", extra={"event": "auth", "reason": reason, **context})
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the user from ``Authorization: Bearer <jwt>``.

    Raises:
        HTTPException: 401 when the token is missing, invalid, expired, or
            names an unknown user
    """
    if not credentials:
        _reject("no_token", count_validation=False)

    token_payload = decode_access_token(credentials.credentials)
    if token_payload is None:
        _reject("invalid_or_expired_token")

    user = await AuthService(db).get_user_by_id(token_payload.sub)
    if user is None:
        _reject("user_not_found", user_id=token_payload.sub)

    jwt_token_validation_total.labels(result="success").inc()
    return user


async def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """Same as ``get_current_user`` but deactivated accounts get 403."""
    if not current_user.is_active:
        logger.warning(
            "Inactive user rejected",
            extra={"event": "auth", "reason": "inactive", "user_id": current_user.id},
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user",
        )
    return current_user
