from typing import AsyncIterator

from fastapi import Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from core.database import Database
from services.auth_service import AuthService
from services.comment_service import CommentService
from services.home_service import HomeService
from services.prompt_service import PromptService
from services.query_utils import DEFAULT_LIMIT, DEFAULT_PAGE, MAX_LIMIT
from services.upload_service import UploadService
from services.user_service import UserService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_database(request: Request) -> Database:
    return request.app.state.db


async def get_session(db: Database = Depends(get_database)) -> AsyncIterator[AsyncSession]:
    async with db.session() as session:
        yield session


class PageParams:
    """Shared ``page``/``limit`` query parameters"""

    def __init__(
        self,
        page: int = Query(DEFAULT_PAGE, ge=1),
        limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    ):
        self.page = page
        self.limit = limit


def get_prompt_service(session: AsyncSession = Depends(get_session)) -> PromptService:
    return PromptService(session)


def get_comment_service(session: AsyncSession = Depends(get_session)) -> CommentService:
    return CommentService(session)


def get_user_service(session: AsyncSession = Depends(get_session)) -> UserService:
    return UserService(session)


def get_auth_service(session: AsyncSession = Depends(get_session)) -> AuthService:
    return AuthService(session)


def get_home_service(db: Database = Depends(get_database)) -> HomeService:
    return HomeService(db)


def get_upload_service(settings: Settings = Depends(get_app_settings)) -> UploadService:
    return UploadService(settings.cover_image_dir, settings.max_upload_bytes)
