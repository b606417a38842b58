"""
Login Service.

Stateless login in two modes. Email mode checks the bcrypt hash of the
submitted password. GitHub mode accepts any registered GitHub account for the
email; no OAuth token is verified. No session or token is issued, and a
successful login only refreshes the user's `lastLogin`.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import PasswordManager
from core.exceptions import AuthenticationError, NotFoundError
from core.logging_config import get_logger, log_function_call
from core.models import LoginMode, User
from core.schemas import LoginRequest
from services.user_service import UserService

logger = get_logger(__name__)

# Compared against when the email is unknown, so both failure paths hash once
_DUMMY_HASH = PasswordManager.hash_password("sapien-dummy-password")


class AuthService:
    """Email and GitHub login"""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.users = UserService(session)

    async def _find(self, email: str, mode: LoginMode):
        return await self.session.scalar(
            select(User).where(User.email == email, User.login_mode == mode.value)
        )

    @log_function_call(logger)
    async def login(self, request: LoginRequest) -> User:
        mode = LoginMode(request.login_mode)
        user = await self._find(request.email, mode)

        if mode is LoginMode.EMAIL:
            if user is None:
                PasswordManager.verify_password(request.password or "", _DUMMY_HASH)
                logger.info("Login rejected: unknown email", extra={"mode": mode.value})
                raise AuthenticationError("Invalid email or password")
            if not request.password or not PasswordManager.verify_password(
                request.password, user.password_hash
            ):
                logger.info("Login rejected: bad password", extra={"mode": mode.value})
                raise AuthenticationError("Invalid email or password")
        elif user is None:
            raise NotFoundError("User", "GitHub user not found")

        logger.info(f"Login successful: {user.id}", extra={"mode": mode.value})
        return await self.users.touch_last_login(user)
