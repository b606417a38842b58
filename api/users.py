"""
User Endpoints.

Profile management for creators. Responses never include the password hash;
every user is serialized through `UserRead`.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from core.logging_config import get_logger
from core.schemas import UserCreate, UserRead, UserUpdate
from services.user_service import UserService

from .dependencies import PageParams, get_user_service
from .responses import created, envelope

logger = get_logger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def _user(user) -> dict:
    return UserRead.from_model(user).to_json()


@router.get("")
async def list_users(
    pages: PageParams = Depends(),
    sort: str = Query("createdAt"),
    users: UserService = Depends(get_user_service),
):
    items, pagination = await users.list_users(page=pages.page, limit=pages.limit, sort=sort)
    return envelope([_user(u) for u in items], pagination=pagination)


@router.post("", status_code=201)
async def create_user(data: UserCreate, users: UserService = Depends(get_user_service)):
    user = await users.create_user(data)
    return created(_user(user), "User created successfully")


@router.get("/search")
async def search_users(
    q: Optional[str] = None,
    pages: PageParams = Depends(),
    users: UserService = Depends(get_user_service),
):
    items, pagination = await users.search_users(q, page=pages.page, limit=pages.limit)
    return envelope([_user(u) for u in items], pagination=pagination)


@router.get("/email/{email}")
async def get_user_by_email(email: str, users: UserService = Depends(get_user_service)):
    return envelope(_user(await users.get_by_email(email)))


@router.get("/username/{username}")
async def get_user_by_username(username: str, users: UserService = Depends(get_user_service)):
    return envelope(_user(await users.get_by_username(username)))


@router.get("/{user_id}")
async def get_user(user_id: str, users: UserService = Depends(get_user_service)):
    return envelope(_user(await users.get_user(user_id)))


@router.put("/{user_id}")
async def update_user(
    user_id: str, data: UserUpdate, users: UserService = Depends(get_user_service)
):
    user = await users.update_user(user_id, data)
    return envelope(_user(user), message="User updated successfully")


@router.delete("/{user_id}")
async def delete_user(user_id: str, users: UserService = Depends(get_user_service)):
    deleted_id = await users.delete_user(user_id)
    return envelope({"id": deleted_id}, message="User deleted successfully")
