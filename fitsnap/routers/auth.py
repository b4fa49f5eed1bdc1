"""
Accounts: sign-up, login, profile and the photo blur preference.
"""
import time

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from fitsnap.database import get_db
from fitsnap.dependencies.auth import get_current_active_user
from fitsnap.models.user import User
from fitsnap.schemas.user import PrivacySettings, Token, UserCreate, UserLogin, UserResponse
from fitsnap.services.auth import AuthService
from fitsnap.utils.logger import log_info, log_warning
from fitsnap.utils.prometheus_metrics import (
    login_duration_seconds,
    user_login_total,
    user_registration_total,
)

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an account",
)
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    """
    Email and username must both be unique. The response does not say which
    one collided.
    """
    try:
        user = await AuthService(db).register(user_data)
    except ValueError as e:
        user_registration_total.labels(result="failure").inc()
        log_warning("Registration rejected", event="auth", reason=str(e))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Registration failed")

    user_registration_total.labels(result="success").inc()
    return UserResponse.model_validate(user)


@router.post("/login", response_model=Token, summary="Exchange credentials for a JWT")
async def login(
    login_data: UserLogin,
    db: AsyncSession = Depends(get_db),
) -> Token:
    start = time.perf_counter()
    token = await AuthService(db).login(login_data.email, login_data.password)

    result = "success" if token is not None else "failure"
    user_login_total.labels(result=result).inc()
    login_duration_seconds.labels(result=result).observe(time.perf_counter() - start)

    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    log_info("Login succeeded", event="auth")
    return token


@router.get("/me", response_model=UserResponse, summary="Current user")
async def get_me(current_user: User = Depends(get_current_active_user)) -> UserResponse:
    return UserResponse.model_validate(current_user)


@router.get("/me/privacy", response_model=PrivacySettings, summary="Blur preference")
async def get_privacy(current_user: User = Depends(get_current_active_user)) -> PrivacySettings:
    return PrivacySettings.model_validate(current_user)


@router.put("/me/privacy", response_model=PrivacySettings, summary="Set blur preference")
async def set_privacy(
    settings: PrivacySettings,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> PrivacySettings:
    user = await AuthService(db).set_blur_enabled(current_user, settings.blur_enabled)
    return PrivacySettings.model_validate(user)


@router.post("/me/privacy/toggle", response_model=PrivacySettings, summary="Flip blur preference")
async def toggle_privacy(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> PrivacySettings:
    user = await AuthService(db).toggle_blur(current_user)
    return PrivacySettings.model_validate(user)
