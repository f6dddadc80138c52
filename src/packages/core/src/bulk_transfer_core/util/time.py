"""Timestamps for job rows and generated files."""
from datetime import datetime, timezone


def utc_now_iso() -> str:
    """Current UTC time in ISO format with a Z suffix."""
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat() + "Z"


def utc_file_stamp() -> str:
    """Compact UTC timestamp for file names, e.g. 20240101T120000Z."""
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
