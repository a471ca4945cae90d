"""URL cleaning, validation, and platform detection for stream links."""

import re

from livesheet.streams.schemas import Platform

# Anything outside printable ASCII, then zero-width and bidi marks
_NON_PRINTABLE = re.compile(r"[^\x20-\x7E]")
_ZERO_WIDTH = re.compile(r"[\u200B-\u200F\u202A-\u202E\u2060-\u206F\uFEFF]")

LIVE_URL_PATTERNS: dict[str, re.Pattern[str]] = {
    "tiktok": re.compile(r"^https://.*\.tiktok\.com/.+/live(\?.*)?$"),
    "youtube_watch": re.compile(r"^https://(www\.)?youtube\.com/watch\?v=.+"),
    "youtube_live": re.compile(r"^https://(www\.)?youtube\.com/live/.+"),
    "youtube_shorts": re.compile(r"^https://(www\.)?youtube\.com/shorts/.+"),
    "youtube_short": re.compile(r"^https://youtu\.be/.+"),
    "twitch": re.compile(r"^https://(www\.)?twitch\.tv/[^/]+/?$"),
}


def clean_url(url: str | None) -> str:
    """Normalize a URL into the canonical lookup key.

    Trims whitespace and strips non-printable and zero-width characters
    that tend to sneak in from copy-pasted spreadsheet cells.
    """
    if not url:
        return ""
    cleaned = _NON_PRINTABLE.sub("", url.strip())
    return _ZERO_WIDTH.sub("", cleaned)


def is_valid_live_url(url: str | None) -> bool:
    """Check whether a cleaned URL has one of the supported live-page shapes."""
    if not url:
        return False
    return any(pattern.match(url) for pattern in LIVE_URL_PATTERNS.values())


def get_platform(url: str) -> Platform:
    """Detect the platform from the URL's domain."""
    if "tiktok.com" in url:
        return Platform.TIKTOK
    if "youtube.com" in url or "youtu.be" in url:
        return Platform.YOUTUBE
    if "twitch.tv" in url:
        return Platform.TWITCH
    return Platform.UNKNOWN
