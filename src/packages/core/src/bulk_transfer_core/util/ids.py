"""Unique names for staged and uploaded files."""
import uuid


def unique_filename(suffix: str, prefix: str | None = None) -> str:
    """File name that will not collide with other staged files."""
    name = uuid.uuid4().hex
    return f"{prefix}-{name}{suffix}" if prefix else f"{name}{suffix}"
