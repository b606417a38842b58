"""
Core data models for the Sapien API

Defines the User, Prompt and Comment tables. Storage constraints (lengths,
uniqueness, nullability) live here; input rules live in `core.schemas`.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from sqlalchemy import JSON, Column, DateTime
from sqlalchemy.types import TypeDecorator
from sqlmodel import SQLModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class UTCDateTime(TypeDecorator):
    """Timezone-aware timestamp that always loads as UTC.

    SQLite keeps no offset, so naive values read back are tagged as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class ResultType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    VIDEO = "video"


class LoginMode(str, Enum):
    EMAIL = "email"
    GITHUB = "github"


SUPPORTED_MODELS = (
    "GPT-4",
    "GPT-3.5",
    "Claude-3",
    "Claude-2",
    "Gemini Pro",
    "DALL-E 3",
    "Midjourney",
    "Stable Diffusion",
    "RunwayML",
    "Pika Labs",
)


class TimestampMixin(SQLModel):
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,  # type: ignore
        index=True,
    )
    updated_at: datetime = Field(
        default_factory=utcnow,
        sa_type=UTCDateTime,  # type: ignore
        sa_column_kwargs={"onupdate": utcnow},
    )


class User(TimestampMixin, table=True):
    """
    Registered user. `password_hash` never leaves the service layer.
    """

    id: str = Field(default_factory=new_id, primary_key=True, max_length=36)
    name: str = Field(max_length=50)
    username: str = Field(unique=True, index=True, max_length=30)
    email: str = Field(unique=True, index=True, max_length=254)
    password_hash: str = Field(max_length=255)
    avatar: Optional[str] = Field(default=None, max_length=2048)
    bio: str = Field(default="", max_length=300)
    last_login: datetime = Field(
        default_factory=utcnow, sa_type=UTCDateTime  # type: ignore
    )
    login_mode: str = Field(default=LoginMode.EMAIL.value, max_length=10)


class Prompt(TimestampMixin, table=True):
    """
    Published prompt. `version` starts at 1 and is bumped by the prompt service
    whenever `content` changes.
    """

    id: str = Field(default_factory=new_id, primary_key=True, max_length=36)
    title: str = Field(max_length=200)
    description: str = Field(max_length=1000)
    content: str
    category: str = Field(index=True, max_length=100)
    tags: List[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
    cover_image: Optional[str] = Field(default=None, max_length=512)
    result_type: str = Field(default=ResultType.TEXT.value, max_length=10)
    sample_output: Optional[str] = Field(default=None, max_length=2000)
    works_best_with: List[str] = Field(
        default_factory=list, sa_column=Column(JSON, nullable=False)
    )
    version: int = Field(default=1, ge=1)
    is_active: bool = Field(default=True, index=True)
    created_by: Optional[str] = Field(default=None, max_length=100)
    updated_by: Optional[str] = Field(default=None, max_length=100)
    views: int = Field(default=0, ge=0)
    likes: int = Field(default=0, ge=0, index=True)
    uses: int = Field(default=0, ge=0)


class Comment(TimestampMixin, table=True):
    """
    Comment on a prompt. `user_id` and `prompt_id` are plain identifiers; the
    comment service checks they exist on create.
    """

    id: str = Field(default_factory=new_id, primary_key=True, max_length=36)
    user_id: str = Field(index=True, max_length=36)
    prompt_id: str = Field(index=True, max_length=36)
    content: str = Field(max_length=1000)
    is_edited: bool = Field(default=False)
    edited_at: Optional[datetime] = Field(
        default=None, sa_type=UTCDateTime  # type: ignore
    )
