"""Markers used to decide whether a fetched page is live."""

from livesheet.streams.schemas import Platform

USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/137.0.0.0 Safari/537.36"
)

DEFAULT_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,image/apng,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate, br",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}

# Anti-bot interstitials; a page containing any of these says nothing about live state
CHALLENGE_MARKERS = ("_cf_chl_opt", "_jschl_answer", "_wafchallengeid")

TIKTOK_LIVE_MARKERS = ('"isLiveBroadcast":true',)

TWITCH_LIVE_MARKERS = (
    '"isLiveBroadcast":true',
    "tw-channel-status-text-indicator",
    '"stream":{',
    "viewers</p>",
    'data-a-target="tw-indicator"',
)

# Only count as live when the page has no endDate (finished broadcasts keep the flag)
YOUTUBE_BROADCAST_MARKER = '"isLiveBroadcast":"True"'
YOUTUBE_ENDED_MARKER = "endDate"

YOUTUBE_LIVE_MARKERS = (
    '"isLiveBroadcast" content="True"',
    '"liveBroadcastDetails":{"isLiveNow":true}',
    '"isLive":true',
    '\\"isLive\\":true',
    '"videoDetails":{"isLiveContent":true,"isLive":true}',
)


def is_challenge_page(html: str) -> bool:
    return any(marker in html for marker in CHALLENGE_MARKERS)


def page_shows_live(platform: Platform, html: str) -> bool:
    """Apply the platform's live markers to a page body."""
    if platform == Platform.TIKTOK:
        return any(marker in html for marker in TIKTOK_LIVE_MARKERS)

    if platform == Platform.YOUTUBE:
        if YOUTUBE_BROADCAST_MARKER in html and YOUTUBE_ENDED_MARKER not in html:
            return True
        return any(marker in html for marker in YOUTUBE_LIVE_MARKERS)

    if platform == Platform.TWITCH:
        return any(marker in html for marker in TWITCH_LIVE_MARKERS)

    return False
