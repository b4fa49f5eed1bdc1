"""
Accounts: registration, password login and the per-user blur preference.
"""
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fitsnap.models.user import User
from fitsnap.schemas.user import Token, UserCreate
from fitsnap.utils.logger import log_info, log_warning
from fitsnap.utils.security import create_access_token, hash_password, verify_password


class AuthService:
    """Account operations on top of a request-scoped session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _find_user(self, **filters: Any) -> Optional[User]:
        result = await self.db.execute(select(User).filter_by(**filters))
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: int) -> Optional[User]:
        return await self._find_user(id=user_id)

    async def get_user_by_email(self, email: str) -> Optional[User]:
        return await self._find_user(email=email)

    async def register(self, user_data: UserCreate) -> User:
        """
        Create an account. New users start with blur disabled.

        Raises:
            ValueError: If the email or username is already in use
        """
        if await self.get_user_by_email(user_data.email):
            log_warning("Registration failed", event="auth", reason="email_exists")
            raise ValueError("Email already registered")
        if await self._find_user(username=user_data.username):
            log_warning("Registration failed", event="auth", reason="username_exists")
            raise ValueError("Username already taken")

        user = User(
            email=user_data.email,
            username=user_data.username,
            hashed_password=hash_password(user_data.password),
            blur_enabled=False,
        )
        self.db.add(user)
        await self.db.flush()
        await self.db.refresh(user)
        log_info("User registered", event="auth", user_id=user.id)
        return user

    async def authenticate(self, email: str, password: str) -> Optional[User]:
        """The matching active user, or None. Failure reasons are only logged."""
        user = await self.get_user_by_email(email)

        if user is None:
            reason = "user_not_found"
        elif not user.is_active:
            reason = "inactive"
        elif not verify_password(password, user.hashed_password):
            reason = "invalid_password"
        else:
            return user

        log_warning("Login failed", event="auth", reason=reason)
        return None

    async def login(self, email: str, password: str) -> Optional[Token]:
        user = await self.authenticate(email, password)
        if user is None:
            return None
        return Token(access_token=create_access_token(user.id))

    async def set_blur_enabled(self, user: User, enabled: bool) -> User:
        """Persist whether photos should be shown blurred to this user."""
        user.blur_enabled = enabled
        await self.db.flush()
        await self.db.refresh(user)
        log_info("Blur preference updated", event="privacy", user_id=user.id, blur_enabled=enabled)
        return user

    async def toggle_blur(self, user: User) -> User:
        return await self.set_blur_enabled(user, not user.blur_enabled)
