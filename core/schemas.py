"""
Request and Response Schemas for the Sapien API.

Every request body is parsed into one of the typed models below before it
reaches a service, so services never see raw JSON. Validation authority for
input rules (required fields, lengths, enums, formats) lives here; the table
models in `core.models` only carry storage constraints.

The API speaks camelCase JSON. All schemas use a camelCase alias generator and
also accept snake_case names.

Key Components:
- Prompt inputs: `PromptCreate`, `PromptUpdate`, `PromptPatch`
- Comment inputs: `CommentCreate`, `CommentUpdate`
- User inputs: `UserCreate`, `UserUpdate`, `LoginRequest`
- Outputs: `UserRead`, `PromptRead`, `CommentRead`, `Pagination`
"""

from datetime import datetime
from typing import Annotated, List, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    computed_field,
    field_validator,
)
from pydantic.alias_generators import to_camel

from core.models import SUPPORTED_MODELS, Comment, LoginMode, Prompt, ResultType, User
from core.validation import InputValidator, page_count

Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=200)]
Description = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=1000)
]
NonEmpty = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
Category = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
SampleOutput = Annotated[str, StringConstraints(strip_whitespace=True, max_length=2000)]
Attribution = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)
]
CommentText = Annotated[
    str, StringConstraints(strip_whitespace=True, min_length=1, max_length=1000)
]
Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=2, max_length=50)]
Username = Annotated[
    str,
    StringConstraints(
        strip_whitespace=True,
        min_length=3,
        max_length=30,
        pattern=InputValidator.USERNAME_PATTERN.pattern,
    ),
]
AvatarUrl = Annotated[
    str,
    StringConstraints(
        strip_whitespace=True, max_length=2048, pattern=InputValidator.URL_PATTERN.pattern
    ),
]
Bio = Annotated[str, StringConstraints(strip_whitespace=True, max_length=300)]
Password = Annotated[str, StringConstraints(min_length=6, max_length=128)]


class APIModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, use_enum_values=True
    )


class ReadModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    def to_json(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


def _tags(value):
    return InputValidator.split_list(value, lowercase=True)


def _models(value):
    models = InputValidator.split_list(value)
    unknown = [model for model in models if model not in SUPPORTED_MODELS]
    if unknown:
        raise ValueError(f"Invalid model in worksBestWith field: {', '.join(unknown)}")
    return models


# Prompt inputs


class PromptCreate(APIModel):
    title: Title
    description: Description
    content: NonEmpty
    category: Category
    result_type: ResultType
    tags: List[str] = Field(default_factory=list)
    sample_output: Optional[SampleOutput] = None
    works_best_with: List[str] = Field(default_factory=list)
    created_by: Attribution = "system"

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, value):
        return _tags(value)

    @field_validator("works_best_with", mode="before")
    @classmethod
    def normalize_models(cls, value):
        return _models(value)


class PromptUpdate(APIModel):
    title: Optional[Title] = None
    description: Optional[Description] = None
    content: Optional[NonEmpty] = None
    category: Optional[Category] = None
    result_type: Optional[ResultType] = None
    tags: Optional[List[str]] = None
    sample_output: Optional[SampleOutput] = None
    works_best_with: Optional[List[str]] = None
    is_active: Optional[bool] = None
    updated_by: Attribution = "system"

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, value):
        return None if value is None else _tags(value)

    @field_validator("works_best_with", mode="before")
    @classmethod
    def normalize_models(cls, value):
        return None if value is None else _models(value)


class PromptPatch(APIModel):
    """Fields that may be changed through PATCH; anything else is ignored"""

    is_active: Optional[bool] = None
    tags: Optional[List[str]] = None
    updated_by: Optional[Attribution] = None
    likes: Optional[int] = Field(default=None, ge=0)
    uses: Optional[int] = Field(default=None, ge=0)

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, value):
        return None if value is None else _tags(value)


# Comment inputs


class CommentCreate(APIModel):
    user: str
    prompt: str
    content: CommentText

    @field_validator("user", "prompt")
    @classmethod
    def check_identifier(cls, value: str, info):
        if not InputValidator.is_identifier(value):
            raise ValueError(f"{info.field_name.capitalize()} ID must be a valid identifier")
        return value


class CommentUpdate(APIModel):
    content: CommentText


# User inputs


class UserCreate(APIModel):
    name: Name
    username: Username
    email: EmailStr
    password: Password
    avatar: Optional[AvatarUrl] = None
    bio: Bio = ""
    login_mode: LoginMode = Field(default=LoginMode.EMAIL, validate_default=True)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return value.lower()


class UserUpdate(APIModel):
    """Profile changes. Passwords cannot be changed through this path."""

    name: Optional[Name] = None
    username: Optional[Username] = None
    email: Optional[EmailStr] = None
    avatar: Optional[AvatarUrl] = None
    bio: Optional[Bio] = None
    login_mode: Optional[LoginMode] = None

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: Optional[str]) -> Optional[str]:
        return value.lower() if value else value


class LoginRequest(APIModel):
    email: Annotated[str, StringConstraints(strip_whitespace=True, to_lower=True, min_length=1)]
    login_mode: LoginMode
    password: Optional[str] = None


# Outputs


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, pages=page_count(total, limit))


class UserRead(ReadModel):
    id: str
    name: str
    username: str
    email: str
    avatar: Optional[str] = None
    bio: str = ""
    last_login: datetime
    login_mode: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_model(cls, user: User) -> "UserRead":
        return cls.model_validate(user)


class PromptRead(ReadModel):
    id: str
    title: str
    description: str
    content: str
    category: str
    tags: List[str]
    cover_image: Optional[str] = None
    result_type: str
    sample_output: Optional[str] = None
    works_best_with: List[str]
    version: int
    is_active: bool
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    views: int
    likes: int
    uses: int
    created_at: datetime
    updated_at: datetime

    @computed_field(alias="versionString")
    @property
    def version_string(self) -> str:
        return f"v{self.version}"

    @classmethod
    def from_model(cls, prompt: Prompt) -> "PromptRead":
        return cls.model_validate(prompt)


class AuthorSummary(ReadModel):
    id: str
    name: str
    username: str
    avatar: Optional[str] = None


class PromptSummary(ReadModel):
    id: str
    title: str


class CommentRead(ReadModel):
    id: str
    user: Union[AuthorSummary, str]
    prompt: Union[PromptSummary, str]
    content: str
    is_edited: bool
    edited_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(
        cls,
        comment: Comment,
        author: Optional[User] = None,
        prompt: Optional[Prompt] = None,
    ) -> "CommentRead":
        """Build a comment, embedding author/prompt summaries when they were joined"""
        return cls(
            id=comment.id,
            user=AuthorSummary.model_validate(author) if author else comment.user_id,
            prompt=PromptSummary.model_validate(prompt) if prompt else comment.prompt_id,
            content=comment.content,
            is_edited=comment.is_edited,
            edited_at=comment.edited_at,
            created_at=comment.created_at,
            updated_at=comment.updated_at,
        )
