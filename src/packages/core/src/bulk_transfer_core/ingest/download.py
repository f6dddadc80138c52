"""Staging of remote import sources."""
import os
from pathlib import Path
from urllib.parse import urlparse

import httpx
import structlog

from bulk_transfer_core.util.errors import SourceError
from bulk_transfer_core.util.ids import unique_filename

logger = structlog.get_logger()

REMOTE_SCHEMES = ("http", "https")
STAGED_SUFFIXES = (".ndjson", ".jsonl", ".csv")
DEFAULT_SUFFIX = ".json"


def is_remote_source(location: str) -> bool:
    """Whether an import source is a URL to download."""
    return urlparse(location).scheme.lower() in REMOTE_SCHEMES


def staged_suffix(url: str) -> str:
    """File suffix for a downloaded source, taken from the URL path."""
    suffix = Path(urlparse(url).path).suffix.lower()
    return suffix if suffix in STAGED_SUFFIXES else DEFAULT_SUFFIX


async def download_source(
    url: str,
    staging_dir: str,
    timeout: float = 300.0,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Path:
    """Download ``url`` into the staging directory and return the file path.

    Any non-200 response or transport failure raises SourceError and leaves
    no partial file behind.
    """
    os.makedirs(staging_dir, exist_ok=True)
    dest = Path(staging_dir) / unique_filename(staged_suffix(url), prefix="download")
    logger.info("source_download_started", url=url, dest=str(dest))
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True) as client:
            async with client.stream("GET", url) as response:
                if response.status_code != 200:
                    raise SourceError(f"Failed to download {url}: HTTP {response.status_code}")
                with open(dest, "wb") as f:
                    async for chunk in response.aiter_bytes():
                        f.write(chunk)
    except httpx.HTTPError as e:
        dest.unlink(missing_ok=True)
        raise SourceError(f"Failed to download {url}: {e}") from e
    except BaseException:
        dest.unlink(missing_ok=True)
        raise
    logger.info("source_download_finished", url=url, bytes=dest.stat().st_size)
    return dest
