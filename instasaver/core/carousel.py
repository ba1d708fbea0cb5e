"""
Carousel locator.

Instagram does not expose how many slides a post has or which one is on
screen. These helpers approximate both from layout: indicator dots, slide
transforms and navigation buttons. Each signal is unreliable on its own, so
they are tried in a fixed order and the first usable answer wins.
"""

from collections import Counter
from typing import List, Optional, Tuple
from urllib.parse import parse_qs, urlparse

from instasaver.core.page_context import find_best_visible_article
from instasaver.models.dom import DomNode, PageState
from instasaver.utils.logging import get_logger

logger = get_logger(__name__)

MIN_DOTS = 2
MAX_DOTS = 20
MAX_DOT_SIZE = 14
MIN_DOT_SIZE = 2

NEXT_LABELS = ("next", "go forward")
PREVIOUS_LABELS = ("go back", "previous", "back")


# ----------------------------------------------------------------------
# Indicator dots
# ----------------------------------------------------------------------

def _is_dot(node: DomNode) -> bool:
    rect = node.rect
    if rect is None:
        return False
    return (
        MIN_DOT_SIZE <= rect.width <= MAX_DOT_SIZE
        and MIN_DOT_SIZE <= rect.height <= MAX_DOT_SIZE
    )


def find_indicator_dots(root: Optional[DomNode]) -> Optional[Tuple[int, int]]:
    """
    Locate a row of indicator dots under ``root``.

    A row is a container of 2-20 small children styled with exactly two
    class lists, one of which is used by a single (the active) dot.

    Returns:
        ``(dot_count, active_position)`` or None
    """
    if root is None:
        return None

    for container in root.descendants("div"):
        kids = container.children
        if not MIN_DOTS <= len(kids) <= MAX_DOTS:
            continue
        if not all(_is_dot(kid) for kid in kids):
            continue

        signatures = Counter(kid.class_name for kid in kids)
        if len(signatures) != 2:
            continue

        # Counter keeps first-seen order
        active_class = next((cls for cls, count in signatures.items() if count == 1), None)
        if active_class is None:
            continue

        position = next(i for i, kid in enumerate(kids) if kid.class_name == active_class)
        return len(kids), position

    return None


# ----------------------------------------------------------------------
# Slide lists
# ----------------------------------------------------------------------

def _has_media(node: DomNode) -> bool:
    return node.contains_any("img", "video")


def _slide_lists(root: DomNode) -> List[List[DomNode]]:
    """Direct ``<li>`` children of each ``<ul>`` with at least two items."""
    lists = []
    for ul in root.descendants("ul"):
        items = ul.child_elements("li")
        if len(items) >= 2:
            lists.append(items)
    return lists


def count_translated_slides(root: Optional[DomNode]) -> int:
    """Number of media slides positioned with ``translateX`` in the first qualifying list."""
    if root is None:
        return 0
    for items in _slide_lists(root):
        media_count = sum(1 for li in items if li.has_translate_x() and _has_media(li))
        if media_count >= 2:
            return media_count
    return 0


def index_from_transforms(root: Optional[DomNode]) -> Optional[int]:
    """The media slide whose ``translateX`` offset is closest to zero."""
    if root is None:
        return None
    for items in _slide_lists(root):
        media_items = [li for li in items if _has_media(li)]
        if len(media_items) < 2:
            continue

        best_idx = 0
        best_dist = float("inf")
        for idx, li in enumerate(media_items):
            offset = li.translate_x_px()
            if offset is not None and abs(offset) < best_dist:
                best_dist = abs(offset)
                best_idx = idx
        return best_idx
    return None


# ----------------------------------------------------------------------
# Navigation buttons
# ----------------------------------------------------------------------

def has_navigation_buttons(root: Optional[DomNode]) -> bool:
    """Both a forward and a backward control; one alone is not enough."""
    if root is None:
        return False
    has_next = False
    has_prev = False
    for button in root.descendants("button"):
        label = button.aria_label.strip().lower()
        if not label:
            continue
        if label in NEXT_LABELS:
            has_next = True
        if label in PREVIOUS_LABELS:
            has_prev = True
    return has_next and has_prev


# ----------------------------------------------------------------------
# Public API
# ----------------------------------------------------------------------

def index_from_query(url: str) -> Optional[int]:
    """0-based index from the 1-based ``img_index`` query parameter."""
    values = parse_qs(urlparse(url).query).get("img_index")
    if not values:
        return None
    try:
        return max(0, int(values[0]) - 1)
    except ValueError:
        return None


def media_count(page: PageState) -> int:
    """Number of items in the post nearest the viewport centre (1 if not a carousel)."""
    article = find_best_visible_article(page)

    dots = find_indicator_dots(article)
    if dots and dots[0] > 1:
        return dots[0]

    slides = count_translated_slides(article)
    if slides > 1:
        return slides

    if article is not None and has_navigation_buttons(article):
        return 2

    # Dedicated post pages have no <article>
    if article is None:
        slides = count_translated_slides(page.root)
        if slides > 1:
            return slides
        if has_navigation_buttons(page.root):
            return 2

    return 1


def active_index(page: PageState) -> int:
    """0-based index of the slide currently on screen."""
    from_query = index_from_query(page.url)
    if from_query is not None:
        return from_query

    article = find_best_visible_article(page)
    dots = find_indicator_dots(article)
    if dots is not None:
        return dots[1]

    from_transforms = index_from_transforms(article or page.root)
    if from_transforms is not None:
        return from_transforms

    return 0
