"""Resolve stories and posts to downloadable media through Instagram's web API."""

import random
from typing import Any, Dict, List, Optional

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from instasaver.core.exceptions import FetchError, NoMediaError, NotFoundError
from instasaver.core.rate_limiter import RateLimiter, get_rate_limiter
from instasaver.core.shortcode import shortcode_to_media_id
from instasaver.models.data_models import AuthContext, MediaDescriptor
from instasaver.utils.config import (
    CONNECT_TIMEOUT,
    INSTAGRAM_APP_ID,
    INSTAGRAM_BASE_URL,
    MAX_RETRIES,
    MEDIA_INFO_URL,
    PROFILE_INFO_URL,
    READ_TIMEOUT,
    REELS_MEDIA_URL,
    RETRY_INITIAL_WAIT,
    RETRY_MAX_WAIT,
    RETRY_MULTIPLIER,
    USER_AGENTS,
)
from instasaver.utils.logging import get_logger

logger = get_logger(__name__)


def extract_media(item: Optional[Dict[str, Any]], owner_username: str = "") -> Optional[MediaDescriptor]:
    """
    Pick the best rendition of a story or post item.

    ``video_versions`` is sorted best-first and wins over any image.
    """
    if not item:
        return None

    videos = item.get("video_versions") or []
    if videos and videos[0].get("url"):
        return MediaDescriptor(url=videos[0]["url"], is_video=True, owner_username=owner_username)

    candidates = (item.get("image_versions2") or {}).get("candidates") or []
    if candidates and candidates[0].get("url"):
        return MediaDescriptor(url=candidates[0]["url"], is_video=False, owner_username=owner_username)

    return None


def extract_post_media(item: Optional[Dict[str, Any]]) -> List[MediaDescriptor]:
    """All media of a post in display order; carousel children lacking media are skipped."""
    if not item:
        return []

    username = (item.get("user") or {}).get("username") or ""
    children = item.get("carousel_media") or []
    if children:
        results = []
        for child in children:
            media = extract_media(child, username)
            if media:
                results.append(media)
        return results

    media = extract_media(item, username)
    return [media] if media else []


def select_story_item(items: List[Dict[str, Any]], story_id: str) -> Optional[Dict[str, Any]]:
    """
    Find the story matching ``story_id``.

    Items carry a numeric ``pk`` and a compound ``id`` (``<pk>_<user id>``).
    Without an id or a match, the first item is returned.
    """
    if not items:
        return None
    if story_id:
        for item in items:
            pk = str(item.get("pk") or "")
            compound_id = str(item.get("id") or "")
            if pk == story_id or compound_id.split("_")[0] == story_id:
                return item
        logger.debug(f"Story {story_id} not in collection, using first item")
    return items[0]


class MediaResolver:
    """Looks up stories and posts via Instagram's private JSON endpoints."""

    def __init__(
        self,
        rate_limiter: Optional[RateLimiter] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize resolver.

        Args:
            rate_limiter: Request pacing (default: the shared limiter)
            transport: Optional httpx transport, e.g. a mock in tests
        """
        self.rate_limiter = rate_limiter or get_rate_limiter()
        self.transport = transport
        self.client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        """Create HTTP client on context entry."""
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(READ_TIMEOUT, connect=CONNECT_TIMEOUT),
            follow_redirects=True,
            transport=self.transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Close HTTP client on context exit."""
        if self.client:
            await self.client.aclose()

    def _get_headers(self, auth: AuthContext) -> dict:
        """Headers of an in-page API call, with the session's cookies and CSRF token."""
        headers = {
            "User-Agent": random.choice(USER_AGENTS),
            "Accept": "*/*",
            "Accept-Language": "en-US,en;q=0.9",
            "X-Requested-With": "XMLHttpRequest",
            "X-IG-App-ID": INSTAGRAM_APP_ID,
            "Origin": INSTAGRAM_BASE_URL,
            "Referer": f"{INSTAGRAM_BASE_URL}/",
        }
        if auth.csrftoken:
            headers["X-CSRFToken"] = auth.csrftoken
        if auth.cookies:
            headers["Cookie"] = "; ".join(f"{name}={value}" for name, value in auth.cookies.items())
        return headers

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(MAX_RETRIES),
        wait=wait_exponential(
            multiplier=RETRY_MULTIPLIER,
            min=RETRY_INITIAL_WAIT,
            max=RETRY_MAX_WAIT,
        ),
        reraise=True,
    )
    async def _send(self, url: str, params: Optional[dict], headers: dict) -> httpx.Response:
        await self.rate_limiter.wait()
        return await self.client.get(url, params=params, headers=headers)

    async def _get_json(self, url: str, auth: AuthContext, params: Optional[dict] = None) -> Dict[str, Any]:
        """
        GET a JSON document.

        Raises:
            FetchError: On network errors, non-2xx status or an unparsable body
        """
        if not self.client:
            raise FetchError("MediaResolver must be used as context manager")

        try:
            response = await self._send(url, params, self._get_headers(auth))
        except httpx.HTTPError as e:
            logger.error(f"Network error requesting {url}: {e}")
            raise FetchError(f"Network error: {e}") from e

        if not response.is_success:
            logger.warning(f"Unexpected status code {response.status_code} for {url}")
            logger.debug(f"Response preview: {response.text[:500]}")
            raise FetchError(f"Fetch failed: HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            logger.debug(f"Response content: {response.text[:500]}")
            raise FetchError("Invalid JSON response from Instagram") from e

        if not isinstance(data, dict):
            raise FetchError("Unexpected JSON shape from Instagram")
        return data

    async def get_user_id(self, username: str, auth: AuthContext) -> str:
        """Numeric user id for a username."""
        data = await self._get_json(PROFILE_INFO_URL, auth, params={"username": username})
        user_id = ((data.get("data") or {}).get("user") or {}).get("id")
        if not user_id:
            raise NotFoundError(f"Could not find user ID for {username}")
        return str(user_id)

    async def get_story_item(self, user_id: str, story_id: str, auth: AuthContext) -> Dict[str, Any]:
        """The matching item of a user's active stories."""
        data = await self._get_json(REELS_MEDIA_URL, auth, params={"reel_ids": user_id})

        # { reels: { "<user id>": { items: [...] } } }
        reels = data.get("reels") or {}
        reel = reels.get(user_id) or next(iter(reels.values()), None)
        item = select_story_item((reel or {}).get("items") or [], story_id)
        if item is None:
            raise NotFoundError("Story not found or expired")
        return item

    async def get_media_item(self, media_id: int, auth: AuthContext) -> Dict[str, Any]:
        """First item of the media-info response for a numeric media id."""
        data = await self._get_json(MEDIA_INFO_URL.format(media_id=media_id), auth)
        items = data.get("items") or []
        if not items:
            raise NotFoundError("Post not found")
        return items[0]

    async def resolve_story(self, username: str, story_id: str, auth: AuthContext) -> MediaDescriptor:
        """
        Resolve the story being viewed.

        Args:
            username: Story owner
            story_id: Story pk from the URL, may be empty
            auth: Session credentials

        Returns:
            MediaDescriptor of the best rendition

        Raises:
            FetchError: If a request fails
            NotFoundError: If the user or story is absent
            NoMediaError: If the story has no rendition
        """
        logger.info(f"Resolving story of {username} (id={story_id or '-'})")
        user_id = await self.get_user_id(username, auth)
        item = await self.get_story_item(user_id, story_id or "", auth)

        media = extract_media(item, username)
        if media is None:
            raise NoMediaError("No media in story item")
        return media

    async def resolve_post(self, shortcode: str, item_type: str, auth: AuthContext) -> List[MediaDescriptor]:
        """
        Resolve every media item of a post or reel, in display order.

        Raises:
            FetchError: If a request fails
            NotFoundError: If the shortcode is invalid or the post is absent
            NoMediaError: If no item has a rendition
        """
        try:
            media_id = shortcode_to_media_id(shortcode)
        except ValueError as e:
            raise NotFoundError(str(e)) from e

        logger.info(f"Resolving {item_type} {shortcode} (media id {media_id})")
        item = await self.get_media_item(media_id, auth)

        media_list = extract_post_media(item)
        if not media_list:
            raise NoMediaError(f"No media in {item_type}")
        logger.debug(f"{shortcode}: {len(media_list)} media item(s)")
        return media_list
