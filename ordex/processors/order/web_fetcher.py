"""
Web Page Fetcher

Retrieves a referenced URL for order extraction. HTML pages are reduced to
their visible text; PDF and image responses are returned as bytes so they
can take the vision path.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; ordex/1.0)"
MAX_TEXT_CHARS = 10000


@dataclass
class FetchedPage:
    url: str
    media_type: str
    text: Optional[str] = None
    content: Optional[bytes] = None

    @property
    def is_pdf(self) -> bool:
        return 'pdf' in self.media_type

    @property
    def is_image(self) -> bool:
        return self.media_type.startswith('image/')


def html_to_text(html: str) -> str:
    """Visible text of an HTML document, scripts and styles removed"""
    soup = BeautifulSoup(html, "lxml")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    text = soup.get_text(separator="\n")
    lines = (re.sub(r'[ \t]+', ' ', line).strip() for line in text.splitlines())
    return "\n".join(line for line in lines if line)


class WebPageFetcher:
    """httpx-based page fetcher"""

    def __init__(self, timeout: float = 30.0, max_text_chars: int = MAX_TEXT_CHARS,
                 client: Optional[httpx.AsyncClient] = None):
        self.timeout = timeout
        self.max_text_chars = max_text_chars
        self._client = client

    async def fetch(self, url: str) -> FetchedPage:
        """
        Fetch a URL

        Raises:
            httpx.HTTPError: On connection failures, timeouts and error statuses
        """
        logger.info(f"🌐 Fetching {url}")
        if self._client is not None:
            response = await self._client.get(url, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(follow_redirects=True, headers={"User-Agent": USER_AGENT}) as client:
                response = await client.get(url, timeout=self.timeout)
        response.raise_for_status()

        media_type = response.headers.get('content-type', '').split(';')[0].strip().lower()
        if 'pdf' in media_type or media_type.startswith('image/'):
            return FetchedPage(url=url, media_type=media_type, content=response.content)

        text = html_to_text(response.text) if 'html' in media_type or not media_type else response.text
        return FetchedPage(url=url, media_type=media_type or 'text/html',
                           text=text[:self.max_text_chars])
