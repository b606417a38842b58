"""
User Service.

`UserService` manages user accounts: paginated listing, lookup by id, email
or username, creation with uniqueness checks, profile updates, deletion and
case-insensitive search on name or username.

Passwords are hashed with bcrypt on creation and are never changed through
the update path. Callers receive `User` table objects; the API layer turns
them into `UserRead`, which has no password field.
"""

from typing import List, Optional, Tuple

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import PasswordManager
from core.exceptions import ConflictError, NotFoundError
from core.logging_config import get_logger, log_function_call
from core.models import User, utcnow
from core.schemas import Pagination, UserCreate, UserUpdate
from core.validation import InputValidator
from services.query_utils import DEFAULT_LIMIT, DEFAULT_PAGE, count_rows, page_window

logger = get_logger(__name__)

SORTABLE_FIELDS = {
    "createdAt": User.created_at,
    "updatedAt": User.updated_at,
    "lastLogin": User.last_login,
    "name": User.name,
    "username": User.username,
}

DUPLICATE_MESSAGE = "User with this email or username already exists"


class UserService:
    """Queries and mutations for users"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _find_taken(
        self, email: Optional[str], username: Optional[str], exclude_id: Optional[str] = None
    ) -> List[str]:
        """Names of the unique fields already held by another user"""
        checks = []
        if email:
            checks.append(User.email == email)
        if username:
            checks.append(User.username == username)
        if not checks:
            return []

        stmt = select(User).where(or_(*checks))
        if exclude_id:
            stmt = stmt.where(User.id != exclude_id)
        taken = []
        for user in (await self.session.scalars(stmt)).all():
            if email and user.email == email and "email" not in taken:
                taken.append("email")
            if username and user.username == username and "username" not in taken:
                taken.append("username")
        return taken

    @log_function_call(logger)
    async def list_users(
        self, page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT, sort: str = "createdAt"
    ) -> Tuple[List[User], Pagination]:
        column, _ = InputValidator.resolve_sort(sort, "desc", SORTABLE_FIELDS)
        stmt = select(User).order_by(column.desc(), User.id)
        users = (await self.session.scalars(page_window(stmt, page, limit))).all()
        total = await count_rows(self.session, User)
        return list(users), Pagination.build(page, limit, total)

    @log_function_call(logger)
    async def get_user(self, user_id: str) -> User:
        user_id = InputValidator.validate_identifier(user_id, "user")
        user = await self.session.get(User, user_id, populate_existing=True)
        if user is None:
            raise NotFoundError("User")
        return user

    async def get_by_email(self, email: str) -> User:
        user = await self.session.scalar(
            select(User).where(User.email == email.strip().lower())
        )
        if user is None:
            raise NotFoundError("User")
        return user

    async def get_by_username(self, username: str) -> User:
        user = await self.session.scalar(
            select(User).where(User.username == username.strip())
        )
        if user is None:
            raise NotFoundError("User")
        return user

    @log_function_call(logger)
    async def create_user(self, data: UserCreate) -> User:
        taken = await self._find_taken(data.email, data.username)
        if taken:
            logger.info(
                "Rejected duplicate user", extra={"conflicting_fields": taken}
            )
            raise ConflictError(DUPLICATE_MESSAGE, taken)

        values = data.model_dump(exclude={"password"})
        user = User(
            **values,
            password_hash=PasswordManager.hash_password(data.password),
            last_login=utcnow(),
        )
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError as e:
            # A concurrent request claimed the email or username
            await self.session.rollback()
            raise ConflictError(DUPLICATE_MESSAGE) from e
        await self.session.refresh(user)
        logger.info(f"User created: {user.id}", extra={"user_id": user.id})
        return user

    @log_function_call(logger)
    async def update_user(self, user_id: str, data: UserUpdate) -> User:
        user = await self.get_user(user_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        taken = await self._find_taken(
            changes.get("email"), changes.get("username"), exclude_id=user.id
        )
        if taken:
            raise ConflictError(DUPLICATE_MESSAGE, taken)

        for field, value in changes.items():
            setattr(user, field, value)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise ConflictError(DUPLICATE_MESSAGE) from e
        await self.session.refresh(user)
        return user

    @log_function_call(logger)
    async def delete_user(self, user_id: str) -> str:
        user = await self.get_user(user_id)
        await self.session.delete(user)
        await self.session.commit()
        logger.info(f"User deleted: {user.id}")
        return user.id

    async def touch_last_login(self, user: User) -> User:
        user.last_login = utcnow()
        await self.session.commit()
        await self.session.refresh(user)
        return user

    @log_function_call(logger)
    async def search_users(
        self, query: str, page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT
    ) -> Tuple[List[User], Pagination]:
        query = InputValidator.validate_search_query(query)
        condition = or_(
            User.name.icontains(query, autoescape=True),
            User.username.icontains(query, autoescape=True),
        )
        stmt = select(User).where(condition).order_by(User.created_at.desc(), User.id)
        users = (await self.session.scalars(page_window(stmt, page, limit))).all()
        total = await count_rows(self.session, User, condition)
        return list(users), Pagination.build(page, limit, total)
