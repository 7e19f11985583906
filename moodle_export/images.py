"""
Inline remote quiz images as base64 data URIs.

Every fetch is best-effort: a timeout, HTTP error or empty body leaves the
original src in place. blob: and data: sources are never fetched.
"""
import asyncio
import base64
import logging
import re
from typing import Iterable, List, Optional
from urllib.parse import urljoin

import httpx

from moodle_export.config import DEFAULT_IMAGE_TIMEOUT, USER_AGENT

logger = logging.getLogger(__name__)

MAX_CONCURRENT_IMAGES = 10
INSECURE_SCHEME_RE = re.compile(r"^http:", re.I)
DEFAULT_MEDIA_TYPE = "application/octet-stream"


def is_embeddable(src: str) -> bool:
    """True for network URLs; data: and blob: references are left alone."""
    lowered = (src or "").strip().lower()
    if not lowered:
        return False
    if lowered.startswith("data:"):
        return False
    if lowered.startswith("blob:"):
        logger.debug("Skipping blob URL - can't embed outside the page that created it")
        return False
    return True


def secure_url(url: str) -> str:
    if url.startswith("//"):
        return f"https:{url}"
    return INSECURE_SCHEME_RE.sub("https:", url)


def to_data_uri(content: bytes, content_type: Optional[str]) -> str:
    media_type = (content_type or "").split(";")[0].strip() or DEFAULT_MEDIA_TYPE
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{media_type};base64,{encoded}"


class ImageEmbedder:
    def __init__(
        self,
        timeout: float = DEFAULT_IMAGE_TIMEOUT,
        cookies: Optional[dict] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            timeout: Deadline in seconds for each image (connect + download)
            cookies: Session cookies sent with every image request
            base_url: Page URL used to resolve relative src values
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self.timeout = timeout
        self.cookies = cookies or {}
        self.base_url = base_url
        self.transport = transport

    def _resolve(self, src: str) -> str:
        src = src.strip()
        if src.startswith("//") or re.match(r"^https?://", src, re.I):
            return src
        if self.base_url:
            return urljoin(self.base_url, src)
        return src

    async def fetch_data_uri(self, client: httpx.AsyncClient, src: str) -> Optional[str]:
        """Return a data URI for src, or None when the image could not be embedded."""
        url = secure_url(self._resolve(src))
        try:
            response = await asyncio.wait_for(client.get(url), timeout=self.timeout)
            response.raise_for_status()
        except asyncio.TimeoutError:
            logger.warning("Couldn't embed image (%s), using original URL: timed out after %.1fs", url, self.timeout)
            return None
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("Couldn't embed image (%r), using original URL: %s", url, e)
            return None
        except Exception as e:
            logger.warning("Image processing error (%r), using original URL: %s", url, e)
            return None
        if not response.content:
            logger.warning("Couldn't embed image (%s), using original URL: empty body", url)
            return None
        return to_data_uri(response.content, response.headers.get("content-type"))

    async def _embed(self, tags: List) -> None:
        semaphore = asyncio.Semaphore(MAX_CONCURRENT_IMAGES)

        async def embed_one(client, tag):
            async with semaphore:
                data_uri = await self.fetch_data_uri(client, tag["src"])
            if data_uri:
                tag["src"] = data_uri

        async with httpx.AsyncClient(
            cookies=self.cookies,
            headers={"User-Agent": USER_AGENT},
            follow_redirects=True,
            transport=self.transport,
        ) as client:
            await asyncio.gather(*(embed_one(client, tag) for tag in tags))

    def embed_all(self, img_tags: Iterable) -> int:
        """Rewrite src of each embeddable <img> tag in place. Returns number of candidates."""
        candidates = [tag for tag in img_tags if is_embeddable(tag.get("src", ""))]
        if not candidates:
            return 0
        asyncio.run(self._embed(candidates))
        return len(candidates)
