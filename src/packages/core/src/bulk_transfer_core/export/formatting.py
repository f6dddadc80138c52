"""Shaping of stored rows into export records."""
from typing import Any

from bulk_transfer_core.records.identity import to_external
from bulk_transfer_core.records.models import DEFAULT_ARTICLE_STATUS

EXPORT_FIELDS: dict[str, tuple[str, ...]] = {
    "users": ("id", "email", "name", "role", "active", "created_at", "updated_at"),
    "articles": ("id", "slug", "title", "description", "body", "author_id", "tags", "status", "published_at"),
    "comments": ("id", "article_id", "user_id", "body", "created_at"),
}


def _format_user(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": to_external(row["id"], row.get("external_id")),
        "email": row["email"],
        "name": row["name"],
        "role": row.get("role"),
        "active": bool(row.get("active", True)),
        "created_at": row.get("created_at"),
        "updated_at": row.get("updated_at"),
    }


def _format_article(row: dict[str, Any]) -> dict[str, Any]:
    record = {
        "id": to_external(row["id"], row.get("external_id")),
        "slug": row["slug"],
        "title": row["title"],
        "description": row.get("description"),
        "body": row["body"],
        "author_id": to_external(row["author_id"], row.get("author_external_id")),
        "tags": row.get("tags") or [],
        "status": row.get("status") or DEFAULT_ARTICLE_STATUS,
    }
    if row.get("published_at"):
        record["published_at"] = row["published_at"]
    return record


def _format_comment(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": to_external(row["id"], row.get("external_id")),
        "article_id": to_external(row["article_id"], row.get("article_external_id")),
        "user_id": to_external(row["author_id"], row.get("author_external_id")),
        "body": row["body"],
        "created_at": row.get("created_at"),
    }


FORMATTERS = {
    "users": _format_user,
    "articles": _format_article,
    "comments": _format_comment,
}


def project(record: dict[str, Any], fields: list[str] | None) -> dict[str, Any]:
    """Keep only the listed keys that exist in the record, in the order given."""
    if not fields:
        return record
    return {name: record[name] for name in fields if name in record}


def format_record(resource: str, row: dict[str, Any], fields: list[str] | None = None) -> dict[str, Any]:
    """Export shape of a stored row, with external ids preferred."""
    try:
        formatter = FORMATTERS[resource]
    except KeyError:
        raise ValueError(f"Unknown resource: {resource}") from None
    return project(formatter(row), fields)
