"""Read story, post and reel identifiers from the page URL and layout."""

import re
from typing import Optional, Tuple
from urllib.parse import urlparse

from instasaver.models.dom import DomNode, PageState

# /stories/USERNAME/STORY_PK/
STORY_ROUTE_RE = re.compile(r"/stories/([^/]+)(?:/(\d+))?")
# /p/SHORTCODE/, /reel/SHORTCODE/, /reels/SHORTCODE/
POST_ROUTE_RE = re.compile(r"/(?:p|reel|reels)/([A-Za-z0-9_-]+)")


def _path(url: str) -> str:
    return urlparse(url).path if "://" in url else url.split("?", 1)[0]


def parse_story_route(url: str) -> Optional[Tuple[str, str]]:
    """Return ``(username, story_id)`` for a story URL; ``story_id`` may be empty."""
    match = STORY_ROUTE_RE.search(_path(url))
    if not match:
        return None
    return match.group(1), match.group(2) or ""


def shortcode_from_url(url: str) -> Optional[str]:
    match = POST_ROUTE_RE.search(_path(url))
    return match.group(1) if match else None


def _shortcode_from_href(href: str) -> Optional[str]:
    match = POST_ROUTE_RE.search(href)
    return match.group(1) if match else None


def _post_links(root: DomNode):
    return [
        node for node in root.iter()
        if node.tag == "a" and ("/p/" in node.href or "/reel/" in node.href)
    ]


def find_post_shortcode(page: PageState) -> Optional[str]:
    """
    Shortcode of the post a feed menu belongs to.

    The URL wins on dedicated post pages; on the feed the post link whose
    vertical centre is nearest the viewport centre is taken.
    """
    from_url = shortcode_from_url(page.url)
    if from_url:
        return from_url

    best_link = None
    best_dist = float("inf")
    for link in _post_links(page.root):
        if link.rect is None:
            continue
        dist = abs(link.rect.center_y - page.viewport_center)
        if dist < best_dist:
            best_dist = dist
            best_link = link

    if best_link is not None:
        return _shortcode_from_href(best_link.href)
    return None


def find_reel_shortcode(menu: DomNode, url: str) -> Optional[str]:
    """Reel menus carry a "Go to post" link; the URL follows the reel otherwise."""
    for link in menu.iter():
        if link.tag != "a" or not ("/reel/" in link.href or "/p/" in link.href):
            continue
        shortcode = _shortcode_from_href(link.href)
        if shortcode:
            return shortcode
    return shortcode_from_url(url)


def find_best_visible_article(page: PageState) -> Optional[DomNode]:
    """The ``<article>`` whose vertical centre is nearest the viewport centre."""
    best_article = None
    best_dist = float("inf")
    for article in page.root.iter():
        if article.tag != "article" or article.rect is None:
            continue
        dist = abs(article.rect.center_y - page.viewport_center)
        if dist < best_dist:
            best_dist = dist
            best_article = article
    return best_article
