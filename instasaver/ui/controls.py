"""Which controls a classified menu gets, what they send and how they read."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Tuple

from instasaver.core import carousel
from instasaver.core.exceptions import ContextUnresolvedError
from instasaver.core.page_context import find_post_shortcode, find_reel_shortcode, parse_story_route
from instasaver.models.data_models import Action, AuthContext, MediaContext, MenuKind
from instasaver.models.dom import DomNode, PageState
from instasaver.ui import styles
from instasaver.utils.config import (
    POST_ALL_LABEL,
    POST_CURRENT_LABEL,
    POST_SINGLE_LABEL,
    REEL_LABEL,
    STORY_LABEL,
)


class ControlRole(str, Enum):
    STORY = "story"
    POST_CURRENT = "post-current"
    POST_ALL = "post-all"
    POST_SINGLE = "post-single"
    REEL = "reel"


@dataclass(frozen=True)
class ControlSpec:
    role: ControlRole
    label: str


def plan_controls(kind: MenuKind, media_count: int = 1) -> List[ControlSpec]:
    """
    Controls to inject for a menu, in display order.

    Carousel posts get "Download Current" followed by "Download All Media";
    every other menu gets a single control.
    """
    if kind == MenuKind.STORY:
        return [ControlSpec(ControlRole.STORY, STORY_LABEL)]
    if kind == MenuKind.REEL:
        return [ControlSpec(ControlRole.REEL, REEL_LABEL)]
    if kind == MenuKind.POST:
        if media_count <= 1:
            return [ControlSpec(ControlRole.POST_SINGLE, POST_SINGLE_LABEL)]
        return [
            ControlSpec(ControlRole.POST_CURRENT, POST_CURRENT_LABEL),
            ControlSpec(ControlRole.POST_ALL, POST_ALL_LABEL),
        ]
    return []


def build_message(action: Action, context: MediaContext, auth: AuthContext) -> Dict[str, Any]:
    message: Dict[str, Any] = {"action": action.value}
    if context.is_story:
        message.update(username=context.username, storyId=context.story_id)
    else:
        message.update(shortcode=context.shortcode, type=context.item_type)
        if action == Action.DOWNLOAD_POST_SINGLE:
            message["index"] = context.carousel_index or 0
    message.update(auth.to_message())
    return message


def build_request(role: ControlRole, menu: DomNode, page: PageState, auth: AuthContext) -> Dict[str, Any]:
    """
    Read the media context from the page at click time and build the message.

    Raises:
        ContextUnresolvedError: If the story or post cannot be identified
    """
    if role == ControlRole.STORY:
        route = parse_story_route(page.url)
        if route is None:
            raise ContextUnresolvedError("Not on a story page")
        return build_message(Action.DOWNLOAD_STORY, MediaContext.for_story(*route), auth)

    if role == ControlRole.REEL:
        shortcode = find_reel_shortcode(menu, page.url)
        if not shortcode:
            raise ContextUnresolvedError("Reel not found")
        return build_message(Action.DOWNLOAD_POST, MediaContext.for_post(shortcode, "reel"), auth)

    shortcode = find_post_shortcode(page)
    if not shortcode:
        raise ContextUnresolvedError("Post not found")

    if role == ControlRole.POST_ALL:
        return build_message(Action.DOWNLOAD_POST, MediaContext.for_post(shortcode, "post"), auth)

    context = MediaContext.for_post(shortcode, "post", carousel_index=carousel.active_index(page))
    return build_message(Action.DOWNLOAD_POST_SINGLE, context, auth)


def result_label(response: Mapping[str, Any]) -> Tuple[str, str]:
    """``(label, colour)`` shown after a request finishes."""
    if response and response.get("success"):
        downloaded = response.get("downloaded") or 1
        total = response.get("total") or 1
        if total > 1:
            return styles.LABEL_DONE_COUNT.format(downloaded=downloaded, total=total), styles.COLOR_SUCCESS
        return styles.LABEL_DONE, styles.COLOR_SUCCESS
    return styles.LABEL_FAILED, styles.COLOR_ERROR
