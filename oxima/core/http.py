import asyncio
import logging
from pathlib import Path
from urllib.parse import urlparse
from urllib.request import url2pathname, urlopen

from .config import Config


logger = logging.getLogger(__name__)


def read_bytes_from_source(source: str, timeout_seconds: int = 30) -> bytes:
    """Read a document from an http(s) URL or a local file path."""
    scheme = urlparse(source).scheme.lower()
    if scheme in ("http", "https"):
        with urlopen(source, timeout=timeout_seconds) as resp:
            return resp.read()
    if scheme == "file":
        return Path(url2pathname(urlparse(source).path)).read_bytes()
    return Path(source).read_bytes()


async def fetch_document(source: str, timeout_seconds: int | None = None) -> bytes:
    """Async variant that offloads the blocking read to the default thread pool."""
    if timeout_seconds is None:
        timeout_seconds = Config.PROPERTIES_TIMEOUT_SECONDS
    logger.debug(f"Fetching document from {source}")
    return await asyncio.to_thread(read_bytes_from_source, source, timeout_seconds)
