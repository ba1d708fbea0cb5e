"""Privileged side: resolve requested media and download it."""

from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from instasaver.core.exceptions import InstaSaverError
from instasaver.core.orchestrator import DownloadOrchestrator
from instasaver.core.resolver import MediaResolver
from instasaver.models.data_models import Action, AuthContext, MediaContext, MediaDescriptor
from instasaver.utils.logging import get_logger

logger = get_logger(__name__)

Response = Dict[str, Any]


def failure(error: str) -> Response:
    return {"success": False, "error": error}


class InstaSaverService:
    """
    Handles bridge messages.

    Every handler returns ``{"success": bool, ...}``; errors are translated
    here and never raised back across the bridge.
    """

    def __init__(
        self,
        resolver_factory: Callable[[], MediaResolver] = MediaResolver,
        orchestrator: Optional[DownloadOrchestrator] = None,
    ):
        """
        Initialize service.

        Args:
            resolver_factory: Builds a fresh resolver per request
            orchestrator: Download orchestrator (default: writes to DOWNLOAD_DIR)
        """
        self.resolver_factory = resolver_factory
        self.orchestrator = orchestrator or DownloadOrchestrator()
        self._handlers: Dict[str, Callable[[Mapping[str, Any]], Awaitable[Response]]] = {
            Action.DOWNLOAD_STORY.value: self.download_story,
            Action.DOWNLOAD_POST.value: self.download_post,
            Action.DOWNLOAD_POST_SINGLE.value: self.download_post_single,
            Action.DOWNLOAD_URL.value: self.download_url,
        }

    async def handle(self, message: Mapping[str, Any]) -> Response:
        """Dispatch a message by its ``action`` tag."""
        action = message.get("action")
        handler = self._handlers.get(action)
        if handler is None:
            logger.warning(f"Unknown action: {action!r}")
            return failure(f"Unknown action: {action}")

        try:
            return await handler(message)
        except InstaSaverError as e:
            logger.warning(f"{action} failed: {e}")
            return failure(str(e))
        except Exception as e:
            logger.exception(f"Unexpected error handling {action}")
            return failure(str(e))

    async def download_story(self, message: Mapping[str, Any]) -> Response:
        context = MediaContext.for_story(message.get("username") or "", message.get("storyId") or "")
        auth = AuthContext.from_message(message)

        async with self.resolver_factory() as resolver:
            media = await resolver.resolve_story(context.username, context.story_id, auth)

        download_id = await self.orchestrator.download_one(media, "story", username=context.username)
        return {"success": True, "downloadId": download_id}

    async def download_post(self, message: Mapping[str, Any]) -> Response:
        """Every item of a post or reel; partial batches still count as success."""
        context = MediaContext.for_post(message.get("shortcode") or "", message.get("type") or "post")
        auth = AuthContext.from_message(message)

        async with self.resolver_factory() as resolver:
            media_list = await resolver.resolve_post(context.shortcode, context.item_type, auth)

        result = await self.orchestrator.download_all(media_list, context.item_type)
        response = {
            "success": result.success,
            "downloaded": result.downloaded,
            "total": result.total,
        }
        if not result.success:
            response["error"] = "No downloads were accepted"
        return response

    async def download_post_single(self, message: Mapping[str, Any]) -> Response:
        context = MediaContext.for_post(
            message.get("shortcode") or "",
            message.get("type") or "post",
            carousel_index=message.get("index"),
        )
        auth = AuthContext.from_message(message)

        async with self.resolver_factory() as resolver:
            media_list = await resolver.resolve_post(context.shortcode, context.item_type, auth)

        download_id, used_index = await self.orchestrator.download_index(
            media_list, context.carousel_index, context.item_type
        )
        return {"success": True, "downloadId": download_id, "index": used_index}

    async def download_url(self, message: Mapping[str, Any]) -> Response:
        """Fallback: save a media URL read directly from the page."""
        if not message.get("url"):
            return failure("No media URL")
        media = MediaDescriptor(
            url=message.get("url") or "",
            is_video=bool(message.get("isVideo")),
            owner_username=message.get("username") or "",
        )
        download_id = await self.orchestrator.download_one(media, "post", username=media.owner_username or "user")
        return {"success": True, "downloadId": download_id}
