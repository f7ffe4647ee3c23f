"""Page Fetcher — downloads a candidate tool's landing page as visible text.

Invariants:
    - Browser-like User-Agent (many SaaS sites reject default client agents)
    - Redirects followed; non-2xx and transport failures raise PageFetchError
    - Body is streamed and read up to max_bytes; the rest is never downloaded
    - Returned text is stripped of markup and truncated (core/extract_page_text.py)
"""

import logging

import httpx

from toolfinder.core.errors import PageFetchError
from toolfinder.core.extract_page_text import PAGE_TEXT_LIMIT, html_to_text

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

# Raw HTML read cap; the character cut applies after markup is stripped
MAX_PAGE_BYTES = 1_000_000


class HttpPageFetcher:
    def __init__(
        self,
        timeout_seconds: float = 10.0,
        text_limit: int = PAGE_TEXT_LIMIT,
        max_bytes: int = MAX_PAGE_BYTES,
        client: httpx.AsyncClient | None = None,
    ):
        self._client = client or httpx.AsyncClient(
            timeout=timeout_seconds, follow_redirects=True, headers=BROWSER_HEADERS,
        )
        self._text_limit = text_limit
        self._max_bytes = max_bytes

    async def fetch_text(self, url: str) -> str:
        try:
            async with self._client.stream("GET", url, headers=BROWSER_HEADERS) as response:
                if not response.is_success:
                    logger.warning(f"Page fetch for {url} returned {response.status_code}")
                    raise PageFetchError(url, f"HTTP {response.status_code}")
                body = bytearray()
                async for chunk in response.aiter_bytes():
                    body.extend(chunk)
                    if len(body) >= self._max_bytes:
                        break
                encoding = response.encoding or "utf-8"
        except httpx.HTTPError as e:
            logger.warning(f"Page fetch failed for {url}: {e}")
            raise PageFetchError(url, type(e).__name__)
        html = bytes(body[: self._max_bytes]).decode(encoding, errors="replace")
        return html_to_text(html, self._text_limit)

    async def aclose(self) -> None:
        await self._client.aclose()
