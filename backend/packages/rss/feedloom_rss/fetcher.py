"""
Feed retrieval.

Downloads feed documents over HTTP with conditional request support.
"""

from dataclasses import dataclass

import httpx

DEFAULT_TIMEOUT = 30
DEFAULT_USER_AGENT = "Feedloom/0.1"


@dataclass
class FetchResult:
    """Downloaded feed document plus the cache headers to persist."""

    content: str
    etag: str | None = None
    last_modified: str | None = None


async def fetch_feed(
    url: str,
    etag: str | None = None,
    last_modified: str | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    user_agent: str = DEFAULT_USER_AGENT,
) -> FetchResult | None:
    """
    Fetch feed content with conditional request support.

    Args:
        url: Feed URL.
        etag: Optional ETag for conditional request.
        last_modified: Optional Last-Modified for conditional request.
        timeout: Network timeout in seconds.
        user_agent: User-Agent header value.

    Returns:
        FetchResult if modified, None if the server answered 304.

    Raises:
        ValueError: If the request fails or times out.
    """
    headers = {"User-Agent": user_agent}
    if etag:
        headers["If-None-Match"] = etag
    if last_modified:
        headers["If-Modified-Since"] = last_modified

    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True, headers=headers) as client:
        try:
            response = await client.get(url)

            if response.status_code == 304:
                return None

            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise ValueError(f"Timed out fetching feed after {timeout}s: {e}")
        except httpx.HTTPError as e:
            raise ValueError(f"Failed to fetch feed: {e}")

        return FetchResult(
            content=response.text,
            etag=response.headers.get("etag"),
            last_modified=response.headers.get("last-modified"),
        )
