import httpx
import pytest

from instasaver.core.exceptions import FetchError, NoMediaError, NotFoundError
from instasaver.core.rate_limiter import RateLimiter
from instasaver.core.resolver import MediaResolver, select_story_item
from instasaver.models.data_models import AuthContext

AUTH = AuthContext(csrftoken="tok", cookies={"csrftoken": "tok", "sessionid": "sess"})


def image(url):
    return {"image_versions2": {"candidates": [{"url": url}, {"url": url + "?small"}]}}


def video(url):
    return {"video_versions": [{"url": url}, {"url": url + "?low"}], **image(url + ".jpg")}


class FakeInstagram:
    """Answers the three API endpoints from canned JSON."""

    def __init__(self, stories=None, media=None, user_id="42", status=200):
        self.stories = stories if stories is not None else []
        self.media = media
        self.user_id = user_id
        self.status = status
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status != 200:
            return httpx.Response(self.status, text="nope")

        path = request.url.path
        if path == "/api/v1/users/web_profile_info/":
            user = {"id": self.user_id} if self.user_id else {}
            return httpx.Response(200, json={"data": {"user": user}})
        if path == "/api/v1/feed/reels_media/":
            reel_id = request.url.params["reel_ids"]
            return httpx.Response(200, json={"reels": {reel_id: {"items": self.stories}}})
        if path.startswith("/api/v1/media/"):
            return httpx.Response(200, json={"items": [self.media] if self.media else []})
        return httpx.Response(404)


def resolver(fake):
    return MediaResolver(rate_limiter=RateLimiter(delay=0, jitter=0), transport=httpx.MockTransport(fake))


async def test_story_matched_by_compound_id_prefix():
    fake = FakeInstagram(stories=[
        {"pk": 1, "id": "123_456", **image("https://cdn/first.jpg")},
        {"pk": 2, "id": "789_012", **image("https://cdn/second.jpg")},
    ])
    async with resolver(fake) as r:
        media = await r.resolve_story("alice", "123", AUTH)
    assert media.url == "https://cdn/first.jpg"
    assert media.owner_username == "alice"
    assert fake.requests[0].url.params["username"] == "alice"
    assert fake.requests[1].url.params["reel_ids"] == "42"


async def test_story_matched_by_pk():
    fake = FakeInstagram(stories=[
        {"pk": 1, "id": "1_42", **image("https://cdn/first.jpg")},
        {"pk": 789, "id": "789_42", **video("https://cdn/second.mp4")},
    ])
    async with resolver(fake) as r:
        media = await r.resolve_story("alice", "789", AUTH)
    assert media.url == "https://cdn/second.mp4"
    assert media.is_video


@pytest.mark.parametrize("story_id", ["", "555"])
async def test_story_falls_back_to_first_item(story_id):
    fake = FakeInstagram(stories=[
        {"pk": 1, "id": "1_42", **image("https://cdn/first.jpg")},
        {"pk": 2, "id": "2_42", **image("https://cdn/second.jpg")},
    ])
    async with resolver(fake) as r:
        media = await r.resolve_story("alice", story_id, AUTH)
    assert media.url == "https://cdn/first.jpg"


async def test_story_prefers_video_rendition():
    fake = FakeInstagram(stories=[{"pk": 1, "id": "1_42", **video("https://cdn/best.mp4")}])
    async with resolver(fake) as r:
        media = await r.resolve_story("alice", "1", AUTH)
    assert media.url == "https://cdn/best.mp4"
    assert media.is_video


async def test_story_without_renditions():
    fake = FakeInstagram(stories=[{"pk": 1, "id": "1_42"}])
    async with resolver(fake) as r:
        with pytest.raises(NoMediaError):
            await r.resolve_story("alice", "1", AUTH)


async def test_unknown_user():
    async with resolver(FakeInstagram(user_id=None)) as r:
        with pytest.raises(NotFoundError):
            await r.resolve_story("ghost", "", AUTH)


async def test_no_active_stories():
    async with resolver(FakeInstagram(stories=[])) as r:
        with pytest.raises(NotFoundError):
            await r.resolve_story("alice", "", AUTH)


async def test_carousel_children_in_source_order():
    media = {
        "user": {"username": "bob"},
        "carousel_media": [
            image("https://cdn/1.jpg"),
            video("https://cdn/2.mp4"),
            image("https://cdn/3.jpg"),
        ],
    }
    fake = FakeInstagram(media=media)
    async with resolver(fake) as r:
        items = await r.resolve_post("Cabc12", "post", AUTH)

    assert [m.url for m in items] == ["https://cdn/1.jpg", "https://cdn/2.mp4", "https://cdn/3.jpg"]
    assert [m.is_video for m in items] == [False, True, False]
    assert {m.owner_username for m in items} == {"bob"}
    assert fake.requests[0].url.path == "/api/v1/media/2590887286/info/"


async def test_single_post():
    fake = FakeInstagram(media={"user": {"username": "bob"}, **video("https://cdn/reel.mp4")})
    async with resolver(fake) as r:
        items = await r.resolve_post("Cabc12", "reel", AUTH)
    assert len(items) == 1
    assert items[0].is_video


async def test_post_not_found():
    async with resolver(FakeInstagram(media=None)) as r:
        with pytest.raises(NotFoundError):
            await r.resolve_post("Cabc12", "post", AUTH)


async def test_post_without_media():
    async with resolver(FakeInstagram(media={"user": {"username": "bob"}})) as r:
        with pytest.raises(NoMediaError):
            await r.resolve_post("Cabc12", "post", AUTH)


async def test_invalid_shortcode_is_not_found():
    async with resolver(FakeInstagram()) as r:
        with pytest.raises(NotFoundError):
            await r.resolve_post("bad!", "post", AUTH)


@pytest.mark.parametrize("status", [400, 404, 429, 500])
async def test_non_success_status_is_fetch_error(status):
    async with resolver(FakeInstagram(status=status)) as r:
        with pytest.raises(FetchError):
            await r.resolve_post("Cabc12", "post", AUTH)


async def test_invalid_json_is_fetch_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>login</html>"))
    async with MediaResolver(rate_limiter=RateLimiter(delay=0, jitter=0), transport=transport) as r:
        with pytest.raises(FetchError):
            await r.resolve_story("alice", "", AUTH)


async def test_api_headers_carry_session():
    fake = FakeInstagram(media=image("https://cdn/x.jpg"))
    async with resolver(fake) as r:
        await r.resolve_post("Cabc12", "post", AUTH)

    headers = fake.requests[0].headers
    assert headers["X-IG-App-ID"] == "936619743392459"
    assert headers["X-Requested-With"] == "XMLHttpRequest"
    assert headers["X-CSRFToken"] == "tok"
    assert "sessionid=sess" in headers["Cookie"]


async def test_csrf_header_omitted_without_token():
    fake = FakeInstagram(media=image("https://cdn/x.jpg"))
    async with resolver(fake) as r:
        await r.resolve_post("Cabc12", "post", AuthContext())
    assert "X-CSRFToken" not in fake.requests[0].headers


def test_select_story_item_empty():
    assert select_story_item([], "1") is None
