"""
Live status detection by fetching a stream's public page.

The detector never raises: network errors, timeouts, non-200 responses
and anti-bot challenge pages all come back as None, which callers treat
as "no information" rather than "offline".
"""

from typing import Any

import httpx
import structlog

from livesheet.detection.patterns import DEFAULT_HEADERS, is_challenge_page, page_shows_live
from livesheet.streams.schemas import DetectionResult, Platform, StreamStatus
from livesheet.streams.urls import clean_url, get_platform

logger = structlog.get_logger(__name__)


class StatusDetector:
    """
    Async callable that reports whether a stream URL is live.

    Usage:
        async with StatusDetector() as detect:
            result = await detect("https://www.twitch.tv/somechannel")
            if result and result.status == StreamStatus.LIVE:
                ...
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = 15.0,
    ):
        """
        Initialize the detector.

        Args:
            client: Pre-built httpx client (tests inject one)
            timeout: Request timeout in seconds when creating our own client
        """
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers=DEFAULT_HEADERS,
        )

    async def __aenter__(self) -> "StatusDetector":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __call__(self, url: str) -> DetectionResult | None:
        return await self.detect(url)

    async def detect(self, url: str) -> DetectionResult | None:
        """
        Fetch the page for a URL and classify it.

        Args:
            url: Stream URL (cleaned here as well)

        Returns:
            DetectionResult, or None when the page gave no usable answer
        """
        cleaned = clean_url(url)
        platform = get_platform(cleaned)
        # YouTube needs its ?v= parameter; other platforms are fetched bare
        fetch_url = cleaned if platform == Platform.YOUTUBE else cleaned.split("?")[0]

        try:
            response = await self._client.get(
                fetch_url,
                headers=DEFAULT_HEADERS,
                follow_redirects=True,
            )
        except httpx.TimeoutException as e:
            logger.info("Timeout fetching stream page", url=fetch_url, error=str(e))
            return None
        except httpx.HTTPError as e:
            logger.info("Network error fetching stream page", url=fetch_url, error=str(e))
            return None

        if response.status_code != 200:
            logger.debug("Non-200 stream page", url=fetch_url, status_code=response.status_code)
            return None

        html = response.text
        if is_challenge_page(html):
            logger.debug("Challenge page detected", url=fetch_url)
            return None

        status = StreamStatus.LIVE if page_shows_live(platform, html) else StreamStatus.OFFLINE
        logger.debug("Stream status detected", url=fetch_url, platform=platform.value, status=status.value)
        return DetectionResult(status=status, platform=platform)
