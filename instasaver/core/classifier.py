"""
Menu classification.

Instagram exposes no stable selectors for its overflow menus, so a newly
inserted element is recognised purely by its button labels and ARIA roles.
Each rule is a pure function ``(element, page_url) -> MenuKind | None``; rules
run in order against every candidate container and the first hit wins.
"""

from typing import Callable, List, Optional, Sequence

from instasaver.core.page_context import parse_story_route
from instasaver.models.data_models import MenuKind, MenuMatch
from instasaver.models.dom import DomNode
from instasaver.utils.config import MARKER_ATTRIBUTE
from instasaver.utils.logging import get_logger

logger = get_logger(__name__)

# Phrases that appear in story menus
STORY_MARKER_TEXTS = (
    "report inappropriate",
    "report",
    "about this account",
)

# Phrases that appear in feed post/reel menus
POST_MARKER_TEXTS = (
    "report",
    "go to post",
    "about this account",
    "not interested",
    "share to",
    "copy link",
    "embed",
    "unfollow",
    "add to favorites",
    "remove from favorites",
)

MenuRule = Callable[[DomNode, str], Optional[MenuKind]]


def _labels(items: Sequence[DomNode]) -> List[str]:
    return [item.label for item in items]


def _matches_any(labels: Sequence[str], phrases: Sequence[str]) -> bool:
    return any(phrase in label for label in labels for phrase in phrases)


def match_button_menu(element: DomNode, page_url: str) -> Optional[MenuKind]:
    """Story and post menus: direct ``<button>`` children ending in Cancel."""
    buttons = element.child_elements("button")
    if len(buttons) < 2:
        return None

    labels = _labels(buttons)
    if "cancel" not in labels:
        return None

    is_story = _matches_any(labels, STORY_MARKER_TEXTS)
    is_post = _matches_any(labels, POST_MARKER_TEXTS)
    if is_story and parse_story_route(page_url):
        return MenuKind.STORY
    if is_post:
        return MenuKind.POST
    if is_story:
        return MenuKind.STORY
    return None


def match_role_menu(element: DomNode, page_url: str) -> Optional[MenuKind]:
    """Reel menus: ``role="button"``/``role="link"`` children instead of buttons."""
    items = [c for c in element.children if c.role in ("button", "link")]
    if len(items) < 3:
        return None

    labels = _labels(items)
    has_report = _matches_any(labels, ("report",))
    has_go_to_post = _matches_any(labels, ("go to post",))
    has_copy_link = _matches_any(labels, ("copy link",))
    if has_report and (has_go_to_post or has_copy_link):
        return MenuKind.REEL
    return None


MENU_RULES: Sequence[MenuRule] = (
    match_button_menu,
    match_role_menu,
)


def is_injected(element: DomNode) -> bool:
    """True if a control was already injected into this element."""
    return any(node.has_attr(MARKER_ATTRIBUTE) for node in element.iter())


def iter_candidates(node: DomNode):
    yield node
    yield from node.descendants("div")


def classify_menu(node: DomNode, page_url: str, rules: Sequence[MenuRule] = MENU_RULES) -> Optional[MenuMatch]:
    """
    Classify a newly inserted node.

    Args:
        node: Snapshot of the inserted element
        page_url: URL of the page at insertion time
        rules: Ordered rule functions

    Returns:
        MenuMatch for the first matching candidate, or None. ``None`` is the
        normal outcome for unrelated UI churn.
    """
    for element in iter_candidates(node):
        if is_injected(element):
            continue
        for rule in rules:
            kind = rule(element, page_url)
            if kind is not None and kind != MenuKind.NONE:
                logger.debug(f"Classified <{element.tag}> as {kind.value} via {rule.__name__}")
                return MenuMatch(kind=kind, element=element)
    return None
