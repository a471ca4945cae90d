"""
HTTP client for the StreamSource REST API.

Provides:
- StreamSourceError / AuthenticationError / RateLimitError: typed failures
  carrying the HTTP status and body
- StreamSourceClient: async client with JWT login, proactive token refresh,
  a shared inter-request delay, and a single re-auth retry on 401

Request pacing: every request waits until ``request_delay`` has passed
since the previous one. A 429 doubles that delay; the next successful
response resets it to the base value. The delay has no ceiling.
"""

import asyncio
import json
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from livesheet.observability.metrics import get_metrics

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.streamsource.com"
BASE_REQUEST_DELAY = 0.1  # seconds between requests
TOKEN_LIFETIME_SECONDS = 23 * 60 * 60  # JWTs expire after 24h
PAGE_SIZE = 100


class StreamSourceError(Exception):
    """Base exception for StreamSource API errors."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class AuthenticationError(StreamSourceError):
    """Raised when login fails or a request is still unauthorized after re-auth."""

    pass


class RateLimitError(StreamSourceError):
    """Raised when the API answers 429."""

    pass


def _parse_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except (json.JSONDecodeError, ValueError):
        return {"error": response.text}


def _error_message(body: Any, status_code: int) -> str:
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return f"HTTP {status_code}"


class StreamSourceClient:
    """
    Async StreamSource API client.

    Example:
        async with StreamSourceClient(api_url, email, password) as client:
            await client.authenticate()
            page = await client.get_streams({"page": 1, "per_page": 100})
    """

    def __init__(
        self,
        api_url: str = DEFAULT_API_URL,
        email: str | None = None,
        password: str | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the client.

        Args:
            api_url: Base URL of the StreamSource API
            email: Login email
            password: Login password
            timeout: Request timeout in seconds (ignored if client is given)
            client: Pre-built httpx client (tests inject one)
            sleep: Awaitable sleep used for request pacing
        """
        self.api_url = api_url.rstrip("/")
        self.email = email
        self.password = password
        self.token: str | None = None
        self.token_expires_at: float = 0.0

        self.request_delay = BASE_REQUEST_DELAY
        self._last_request_at: float | None = None
        self._sleep = sleep

        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> "StreamSourceClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ── Authentication ──────────────────────────────────────────

    async def authenticate(self) -> None:
        """Log in and store a fresh token.

        Raises:
            AuthenticationError: If the login request fails
        """
        logger.info("Authenticating with StreamSource API")
        try:
            data = await self.request(
                "POST",
                "/api/v1/users/login",
                json_body={"email": self.email, "password": self.password},
                skip_auth=True,
            )
        except StreamSourceError as e:
            logger.error("Failed to authenticate with StreamSource: %s", e)
            raise AuthenticationError(
                str(e),
                status_code=e.status_code,
                response_body=e.response_body,
            ) from e

        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            raise AuthenticationError("Login response did not include a token")

        self.token = token
        self.token_expires_at = time.monotonic() + TOKEN_LIFETIME_SECONDS
        logger.info("Successfully authenticated with StreamSource")

    async def ensure_authenticated(self) -> None:
        if not self.token or time.monotonic() >= self.token_expires_at:
            await self.authenticate()

    # ── Transport ───────────────────────────────────────────────

    async def _pace(self) -> None:
        if self._last_request_at is not None:
            elapsed = time.monotonic() - self._last_request_at
            if elapsed < self.request_delay:
                await self._sleep(self.request_delay - elapsed)
        self._last_request_at = time.monotonic()

    async def request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
        skip_auth: bool = False,
        _reauthed: bool = False,
    ) -> Any:
        """
        Perform one API request and return the decoded JSON body.

        On 401 the client logs in again and retries this request once.

        Raises:
            AuthenticationError: Still unauthorized after re-auth
            RateLimitError: On 429 (the shared delay is doubled first)
            StreamSourceError: On any other non-2xx status or transport error
        """
        await self._pace()

        headers = {"Content-Type": "application/json"}
        if not skip_auth:
            await self.ensure_authenticated()
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = await self._client.request(
                method,
                f"{self.api_url}{endpoint}",
                params=params,
                json=json_body,
                headers=headers,
            )
        except httpx.HTTPError as e:
            logger.error("StreamSource request %s %s failed: %s", method, endpoint, e)
            raise StreamSourceError(f"Request to {endpoint} failed: {e}") from e

        body = _parse_body(response)

        if response.status_code == 429:
            self.request_delay *= 2
            get_metrics().set_store_request_delay(self.request_delay)
            logger.warning(
                "Rate limited by StreamSource, increasing delay to %.0fms",
                self.request_delay * 1000,
            )
            raise RateLimitError(
                _error_message(body, 429),
                status_code=429,
                response_body=response.text,
            )

        if response.status_code == 401 and not skip_auth:
            if _reauthed:
                raise AuthenticationError(
                    _error_message(body, 401),
                    status_code=401,
                    response_body=response.text,
                )
            logger.info("Token rejected, re-authenticating")
            self.token = None
            await self.authenticate()
            return await self.request(
                method,
                endpoint,
                params=params,
                json_body=json_body,
                skip_auth=skip_auth,
                _reauthed=True,
            )

        if response.status_code >= 400:
            raise StreamSourceError(
                _error_message(body, response.status_code),
                status_code=response.status_code,
                response_body=response.text,
            )

        if self.request_delay != BASE_REQUEST_DELAY:
            self.request_delay = BASE_REQUEST_DELAY
            get_metrics().set_store_request_delay(self.request_delay)
        return body

    # ── Streams ─────────────────────────────────────────────────

    async def get_streams(self, params: dict[str, Any] | None = None) -> dict[str, Any]:
        return await self.request("GET", "/api/v1/streams", params=params)

    async def list_all_streams(self, is_archived: bool = False) -> list[dict[str, Any]]:
        """Fetch every page of streams with the given archive flag."""
        streams: list[dict[str, Any]] = []
        page = 1
        while True:
            data = await self.get_streams(
                {
                    "page": page,
                    "per_page": PAGE_SIZE,
                    "is_archived": str(is_archived).lower(),
                }
            )
            streams.extend(data.get("streams") or [])
            total_pages = (data.get("meta") or {}).get("total_pages") or 1
            if page >= total_pages:
                break
            page += 1
        return streams

    async def get_stream(self, stream_id: str) -> dict[str, Any] | None:
        """Fetch a single stream; returns None if it was deleted."""
        try:
            data = await self.request("GET", f"/api/v1/streams/{stream_id}")
        except StreamSourceError as e:
            if e.status_code == 404:
                return None
            raise
        if isinstance(data, dict) and isinstance(data.get("stream"), dict):
            return data["stream"]
        return data

    async def update_stream(self, stream_id: str, updates: dict[str, Any]) -> Any:
        return await self.request("PATCH", f"/api/v1/streams/{stream_id}", json_body=updates)

    async def create_stream(self, stream: dict[str, Any]) -> dict[str, Any]:
        data = await self.request("POST", "/api/v1/streams", json_body=stream)
        if isinstance(data, dict) and isinstance(data.get("stream"), dict):
            return data["stream"]
        return data

    async def archive_stream(self, stream_id: str) -> Any:
        return await self.update_stream(stream_id, {"is_archived": True})
