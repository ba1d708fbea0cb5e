"""Element snapshots of the host page used by the classifier and locators."""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

TRANSLATE_X_RE = re.compile(r"translateX\(\s*([^)]+?)\s*\)")
TRANSLATE_X_PX_RE = re.compile(r"translateX\(\s*([-+]?[\d.]+)px\s*\)")


@dataclass(frozen=True)
class Rect:
    """Bounding client rect of an element, in CSS pixels."""
    x: float
    y: float
    width: float
    height: float

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2


@dataclass(eq=False)
class DomNode:
    """
    Snapshot of one element and its subtree.

    ``text`` holds only the element's own text nodes; ``text_content``
    concatenates the whole subtree like the DOM property of that name.
    ``node_id`` addresses the live element when the snapshot came from the
    browser; it is ``None`` for nodes parsed from static HTML.
    """
    tag: str
    attrs: Dict[str, str] = field(default_factory=dict)
    text: str = ""
    rect: Optional[Rect] = None
    node_id: Optional[str] = None
    children: List["DomNode"] = field(default_factory=list)
    parent: Optional["DomNode"] = field(default=None, repr=False)

    def __post_init__(self):
        self.tag = self.tag.lower()
        for child in self.children:
            child.parent = self

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_snapshot(cls, data: Dict[str, Any]) -> "DomNode":
        """Build a tree from the dict produced by the in-page snapshot script."""
        rect = data.get("rect")
        return cls(
            tag=data.get("tag", "div"),
            attrs={str(k): str(v) for k, v in (data.get("attrs") or {}).items()},
            text=data.get("text") or "",
            rect=Rect(rect["x"], rect["y"], rect["width"], rect["height"]) if rect else None,
            node_id=data.get("id"),
            children=[cls.from_snapshot(child) for child in data.get("children") or []],
        )

    @classmethod
    def from_html(cls, markup: str) -> "DomNode":
        """
        Parse static HTML into a tree rooted at ``<html>``.

        Static markup has no layout, so every ``rect`` is ``None``.
        """
        soup = BeautifulSoup(markup, "lxml")
        root = soup.find("html")
        if root is None:
            return cls(tag="html")
        return cls._from_tag(root)

    @classmethod
    def _from_tag(cls, tag: Tag) -> "DomNode":
        attrs = {}
        for name, value in tag.attrs.items():
            attrs[name] = " ".join(value) if isinstance(value, list) else str(value)
        own_text = "".join(
            str(c) for c in tag.children
            if isinstance(c, NavigableString) and not isinstance(c, Comment)
        )
        return cls(
            tag=tag.name,
            attrs=attrs,
            text=own_text,
            children=[cls._from_tag(c) for c in tag.children if isinstance(c, Tag)],
        )

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    def get(self, name: str, default: str = "") -> str:
        return self.attrs.get(name, default)

    def has_attr(self, name: str) -> bool:
        return name in self.attrs

    @property
    def class_name(self) -> str:
        return self.attrs.get("class", "")

    @property
    def role(self) -> str:
        return self.attrs.get("role", "")

    @property
    def aria_label(self) -> str:
        return self.attrs.get("aria-label", "")

    @property
    def href(self) -> str:
        return self.attrs.get("href", "")

    @property
    def style(self) -> Dict[str, str]:
        """Inline style declarations keyed by lowercase property name."""
        declarations = {}
        for part in self.attrs.get("style", "").split(";"):
            name, sep, value = part.partition(":")
            if sep:
                declarations[name.strip().lower()] = value.strip()
        return declarations

    @property
    def transform(self) -> str:
        return self.style.get("transform", "")

    def has_translate_x(self) -> bool:
        return bool(TRANSLATE_X_RE.search(self.transform))

    def translate_x_px(self) -> Optional[float]:
        """Horizontal offset of a ``translateX(<n>px)`` transform, if any."""
        match = TRANSLATE_X_PX_RE.search(self.transform)
        if not match:
            return None
        try:
            return float(match.group(1))
        except ValueError:
            return None

    @property
    def text_content(self) -> str:
        return self.text + "".join(child.text_content for child in self.children)

    @property
    def label(self) -> str:
        """Lowercase trimmed text, as compared against menu phrases."""
        return self.text_content.strip().lower()

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def iter(self) -> Iterator["DomNode"]:
        """Yield this node and all descendants in document order."""
        yield self
        for child in self.children:
            yield from child.iter()

    def descendants(self, *tags: str) -> List["DomNode"]:
        """Descendants (excluding self) in document order, optionally by tag."""
        wanted = {t.lower() for t in tags}
        return [n for n in self.iter() if n is not self and (not wanted or n.tag in wanted)]

    def child_elements(self, *tags: str) -> List["DomNode"]:
        wanted = {t.lower() for t in tags}
        return [c for c in self.children if not wanted or c.tag in wanted]

    def contains_any(self, *tags: str) -> bool:
        return bool(self.descendants(*tags))

    def find_by_id(self, node_id: str) -> Optional["DomNode"]:
        for node in self.iter():
            if node.node_id == node_id:
                return node
        return None


@dataclass
class PageState:
    """The document as observed at one instant."""
    url: str
    root: DomNode
    viewport_height: float = 0.0

    @classmethod
    def from_snapshot(cls, data: Dict[str, Any]) -> "PageState":
        return cls(
            url=data.get("url", ""),
            root=DomNode.from_snapshot(data.get("root") or {"tag": "body"}),
            viewport_height=float(data.get("viewportHeight") or 0),
        )

    @property
    def viewport_center(self) -> float:
        return self.viewport_height / 2
