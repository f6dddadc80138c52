"""Validated record types, one per resource."""
import re
from typing import Annotated, Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, PlainValidator, ValidationInfo, field_validator, model_validator

Resource = Literal["users", "articles", "comments"]
RESOURCES: tuple[str, ...] = ("users", "articles", "comments")

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
COMMENT_BODY_MAX = 2500
DEFAULT_ARTICLE_STATUS = "published"


def _check_reference(value: Any) -> int | str:
    # bool is an int subclass; True is never a meaningful id
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError("must be an integer id or an external identifier string")
    if isinstance(value, str) and not value.strip():
        raise ValueError("must not be empty")
    return value


Reference = Annotated[int | str, PlainValidator(_check_reference)]


class _Record(BaseModel):
    model_config = ConfigDict(strict=True, extra="ignore")

    resource: ClassVar[str]


class UserRecord(_Record):
    """A user row from an import source."""

    resource: ClassVar[str] = "users"

    id: Reference | None = None
    email: str
    name: str = Field(min_length=1)
    role: str | None = None
    active: bool = True
    created_at: str | None = None
    updated_at: str | None = None

    @field_validator("email")
    @classmethod
    def _email_format(cls, v: str) -> str:
        if not EMAIL_RE.match(v):
            raise ValueError("Invalid email format")
        return v


class ArticleRecord(_Record):
    """An article row from an import source."""

    resource: ClassVar[str] = "articles"

    id: Reference | None = None
    slug: str
    title: str = Field(min_length=1)
    description: str | None = Field(default=None, min_length=1)
    body: str = Field(min_length=1)
    author_id: Reference
    tags: list[str] | None = None
    status: Literal["draft", "published"] | None = None
    published_at: str | None = None

    @field_validator("slug")
    @classmethod
    def _kebab_case(cls, v: str) -> str:
        if not SLUG_RE.match(v):
            raise ValueError("Must be lowercase kebab-case")
        return v

    @field_validator("published_at")
    @classmethod
    def _draft_not_published(cls, v: str | None, info: ValidationInfo) -> str | None:
        if v is not None and info.data.get("status") == "draft":
            raise ValueError("Draft articles must not have published_at")
        return v

    @model_validator(mode="after")
    def _default_description(self) -> "ArticleRecord":
        if self.description is None:
            self.description = self.title
        return self


class CommentRecord(_Record):
    """A comment row from an import source."""

    resource: ClassVar[str] = "comments"

    id: Reference | None = None
    article_id: Reference
    user_id: Reference
    body: str = Field(min_length=1, max_length=COMMENT_BODY_MAX)
    created_at: str | None = None


DomainRecord = UserRecord | ArticleRecord | CommentRecord

RECORD_MODELS: dict[str, type[_Record]] = {
    "users": UserRecord,
    "articles": ArticleRecord,
    "comments": CommentRecord,
}
