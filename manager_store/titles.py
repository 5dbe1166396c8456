"""
Best-effort lookup of a web page's <title> for new bookmarks.
"""
import asyncio
import html
import logging
import re
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0
# Titles live in <head>; nothing past this many bytes is read.
MAX_BODY_BYTES = 256 * 1024

_TITLE_RE = re.compile(r"<title[^>]*>(.*?)</title\s*>", re.IGNORECASE | re.DOTALL)
_WHITESPACE_RE = re.compile(r"\s+")


# PUBLIC_INTERFACE
def extract_title(markup: str) -> str:
    """Return the text of the first <title> tag in markup, or ''."""
    match = _TITLE_RE.search(markup or "")
    if not match:
        return ""
    return _WHITESPACE_RE.sub(" ", html.unescape(match.group(1))).strip()


# PUBLIC_INTERFACE
class BookmarkTitleResolver:
    """
    Fetches a URL and returns its page title.

    Never raises: every failure, including running out of time, is logged
    and reported as ''.

    Args:
        timeout: Deadline in seconds for the whole lookup, from connect to
            the last byte read.
        max_bytes: Most of the response body that is read before giving up
            on finding a title.
        transport: Optional httpx transport, used by tests to avoid the network.
    """

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, max_bytes: int = MAX_BODY_BYTES,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self.max_bytes = max_bytes
        self._transport = transport

    async def __call__(self, url: str) -> str:
        return await self.resolve(url)

    async def resolve(self, url: str) -> str:
        try:
            return await asyncio.wait_for(self._fetch_title(url), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.debug("Title lookup for %s timed out after %ss", url, self.timeout)
            return ""
        except Exception as exc:
            logger.debug("Title lookup failed for %s: %s", url, exc)
            return ""

    async def _fetch_title(self, url: str) -> str:
        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            async with client.stream("GET", url) as response:
                response.raise_for_status()
                body = bytearray()
                async for chunk in response.aiter_bytes():
                    body.extend(chunk)
                    if len(body) >= self.max_bytes:
                        del body[self.max_bytes:]
                        break
                encoding = response.encoding or "utf-8"
        return extract_title(body.decode(encoding, errors="replace"))
