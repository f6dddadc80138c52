"""Export filters, translated into store predicates."""
from typing import Any

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from bulk_transfer_core.store.base import Predicate

# created_* bounds are exclusive and apply to every resource
RANGE_FILTERS = {"created_after": ">", "created_before": "<"}


class _Filters(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    created_after: str | None = None
    created_before: str | None = None


class UserFilters(_Filters):
    active: bool | None = None
    role: str | None = None


class ArticleFilters(_Filters):
    status: str | None = None
    author_id: int | None = Field(default=None, alias="authorId")


class CommentFilters(_Filters):
    article_id: int | None = Field(default=None, alias="articleId")
    author_id: int | None = Field(default=None, alias="authorId")


FILTER_MODELS: dict[str, type[_Filters]] = {
    "users": UserFilters,
    "articles": ArticleFilters,
    "comments": CommentFilters,
}


def parse_filters(resource: str, filters: dict[str, Any] | None) -> _Filters:
    """Validate a filter payload. Unknown keys are ignored."""
    model = FILTER_MODELS.get(resource)
    if model is None:
        raise ValueError(f"Unknown resource: {resource}")
    try:
        return model.model_validate(filters or {})
    except pydantic.ValidationError as e:
        raise ValueError(f"Invalid filters: {e.errors()[0]['msg']}") from e


def build_predicates(resource: str, filters: dict[str, Any] | None) -> list[Predicate]:
    """Store predicates for the filters that are set."""
    parsed = parse_filters(resource, filters)
    predicates = []
    for name, value in parsed.model_dump(exclude_none=True).items():
        if name in RANGE_FILTERS:
            predicates.append(Predicate("created_at", RANGE_FILTERS[name], value))
        elif name == "active":
            predicates.append(Predicate("active", "=", int(value)))
        else:
            predicates.append(Predicate(name, "=", value))
    return predicates
