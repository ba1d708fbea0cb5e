"""Data models for menus, media addressing and downloads."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Mapping, Optional, Union

from instasaver.core.exceptions import ContextUnresolvedError
from instasaver.models.dom import DomNode
from instasaver.utils.config import COOKIE_DOMAIN


class MenuKind(str, Enum):
    """Semantic type of a classified menu."""
    STORY = "story"
    POST = "post"
    REEL = "reel"
    NONE = "none"


class Action(str, Enum):
    """Message actions understood by the privileged service."""
    DOWNLOAD_STORY = "downloadStory"
    DOWNLOAD_POST = "downloadPost"
    DOWNLOAD_POST_SINGLE = "downloadPostSingle"
    DOWNLOAD_URL = "download"


@dataclass(frozen=True)
class MenuMatch:
    """A classified menu element."""
    kind: MenuKind
    element: DomNode


@dataclass(frozen=True)
class AuthContext:
    """Session credentials read at request time. Never cached."""
    csrftoken: str = ""
    cookies: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_cookies(cls, cookies: Union[Mapping[str, str], Iterable[Mapping[str, Any]]]) -> "AuthContext":
        """
        Build from a ``{name: value}`` mapping or a browser cookie list.

        Browser cookie lists (as returned by Playwright) are filtered to the
        Instagram domain.
        """
        if isinstance(cookies, Mapping):
            jar = {str(k): str(v) for k, v in cookies.items()}
        else:
            jar = {
                c["name"]: c["value"]
                for c in cookies
                if COOKIE_DOMAIN in c.get("domain", COOKIE_DOMAIN)
            }
        return cls(csrftoken=jar.get("csrftoken", ""), cookies=jar)

    @classmethod
    def from_message(cls, message: Mapping[str, Any]) -> "AuthContext":
        return cls(
            csrftoken=message.get("csrftoken") or "",
            cookies=dict(message.get("cookies") or {}),
        )

    def to_message(self) -> Dict[str, Any]:
        return {"csrftoken": self.csrftoken, "cookies": dict(self.cookies)}


@dataclass(frozen=True)
class MediaContext:
    """
    Addressing information for one user interaction.

    Either ``username`` (+ optional ``story_id``) for a story, or
    ``shortcode`` + ``item_type`` for a post or reel.
    """
    kind: MenuKind
    username: str = ""
    story_id: str = ""
    shortcode: str = ""
    item_type: str = "post"
    carousel_index: Optional[int] = None

    def __post_init__(self):
        if self.kind == MenuKind.STORY and not self.username:
            raise ContextUnresolvedError("Not on a story page")
        if self.kind in (MenuKind.POST, MenuKind.REEL) and not self.shortcode:
            raise ContextUnresolvedError("Could not find post")
        if self.kind == MenuKind.NONE:
            raise ContextUnresolvedError("No media context for an unclassified menu")

    @classmethod
    def for_story(cls, username: str, story_id: str = "") -> "MediaContext":
        return cls(kind=MenuKind.STORY, username=username, story_id=story_id or "")

    @classmethod
    def for_post(cls, shortcode: str, item_type: str = "post", carousel_index: Optional[int] = None) -> "MediaContext":
        kind = MenuKind.REEL if item_type == "reel" else MenuKind.POST
        return cls(kind=kind, shortcode=shortcode or "", item_type=item_type, carousel_index=carousel_index)

    @property
    def is_story(self) -> bool:
        return self.kind == MenuKind.STORY


@dataclass(frozen=True)
class MediaDescriptor:
    """A single fetchable asset."""
    url: str
    is_video: bool = False
    owner_username: str = ""

    def __post_init__(self):
        if not self.url:
            raise ValueError("MediaDescriptor requires a url")

    @property
    def extension(self) -> str:
        return "mp4" if self.is_video else "jpg"


@dataclass(frozen=True)
class DownloadRequest:
    """A descriptor paired with the filename it should be saved under."""
    descriptor: MediaDescriptor
    suggested_filename: str


@dataclass
class BatchResult:
    """Outcome of a multi-item submission."""
    downloaded: int
    total: int

    @property
    def success(self) -> bool:
        return self.downloaded > 0
