import httpx
import pytest

from instasaver.core.downloader import DownloadFacility, uniquify
from instasaver.core.exceptions import DownloadRejectedError, NoMediaError
from instasaver.core.orchestrator import DownloadOrchestrator, build_filename, clamp_index
from instasaver.models.data_models import MediaDescriptor

TIMESTAMP = 1700000000000


class FakeFacility:
    """Records submissions; URLs containing "reject" are refused."""

    def __init__(self):
        self.submitted = []

    async def download(self, url, filename, conflict_action="uniquify"):
        self.submitted.append((url, filename, conflict_action))
        if "reject" in url:
            raise DownloadRejectedError("refused")
        return len(self.submitted)


def media(n, is_video=False, owner="bob"):
    return [MediaDescriptor(url=f"https://cdn/{i}", is_video=is_video, owner_username=owner) for i in range(n)]


@pytest.fixture
def facility():
    return FakeFacility()


@pytest.fixture
def orchestrator(facility):
    return DownloadOrchestrator(facility, clock=lambda: TIMESTAMP)


def test_build_filename():
    assert build_filename("alice", "story", True, TIMESTAMP) == f"instaloader_alice_story_{TIMESTAMP}.mp4"
    assert build_filename("bob", "post", False, TIMESTAMP, index=3) == f"instaloader_bob_post_{TIMESTAMP}_3.jpg"


@pytest.mark.parametrize("index,total,expected", [
    (-5, 4, 0),
    (0, 4, 0),
    (2, 4, 2),
    (4, 4, 3),
    (99, 4, 3),
    (None, 4, 0),
    (7, 1, 0),
])
def test_clamp_index(index, total, expected):
    assert clamp_index(index, total) == expected
    if index is not None:
        assert clamp_index(index, total) == max(0, min(index, total - 1))


async def test_batch_is_sequential_and_suffixed_in_order(orchestrator, facility):
    result = await orchestrator.download_all(media(3), "post")

    assert (result.downloaded, result.total) == (3, 3)
    assert [url for url, _, _ in facility.submitted] == ["https://cdn/0", "https://cdn/1", "https://cdn/2"]
    assert [name for _, name, _ in facility.submitted] == [
        f"instaloader_bob_post_{TIMESTAMP}_1.jpg",
        f"instaloader_bob_post_{TIMESTAMP}_2.jpg",
        f"instaloader_bob_post_{TIMESTAMP}_3.jpg",
    ]
    assert {policy for _, _, policy in facility.submitted} == {"uniquify"}


async def test_single_item_batch_has_no_suffix(orchestrator, facility):
    await orchestrator.download_all(media(1, is_video=True), "reel")
    assert facility.submitted[0][1] == f"instaloader_bob_reel_{TIMESTAMP}.mp4"


async def test_partial_batch_is_still_a_success(orchestrator, facility):
    items = media(3)
    items[1] = MediaDescriptor(url="https://cdn/reject", owner_username="bob")

    result = await orchestrator.download_all(items, "post")

    assert (result.downloaded, result.total) == (2, 3)
    assert result.success
    assert len(facility.submitted) == 3


async def test_fully_rejected_batch(orchestrator):
    items = [MediaDescriptor(url="https://cdn/reject")]
    result = await orchestrator.download_all(items, "post")
    assert not result.success


async def test_owner_fallback_name(orchestrator, facility):
    await orchestrator.download_all(media(1, owner=""), "reel")
    assert facility.submitted[0][1].startswith("instaloader_post_reel_")


async def test_download_index_clamps(orchestrator, facility):
    download_id, used = await orchestrator.download_index(media(3), 10, "post")
    assert used == 2
    assert facility.submitted[-1][0] == "https://cdn/2"
    assert facility.submitted[-1][1] == f"instaloader_bob_post_{TIMESTAMP}.jpg"


async def test_download_index_rejected_propagates(orchestrator):
    with pytest.raises(DownloadRejectedError):
        await orchestrator.download_index([MediaDescriptor(url="https://cdn/reject")], 0, "post")


async def test_empty_batch(orchestrator):
    with pytest.raises(NoMediaError):
        await orchestrator.download_all([], "post")


def test_descriptor_requires_url():
    with pytest.raises(ValueError):
        MediaDescriptor(url="")


def test_uniquify(tmp_path):
    target = tmp_path / "a.jpg"
    assert uniquify(target) == target
    target.write_bytes(b"x")
    assert uniquify(target) == tmp_path / "a (1).jpg"
    (tmp_path / "a (1).jpg").write_bytes(b"x")
    assert uniquify(target) == tmp_path / "a (2).jpg"


async def test_facility_writes_file_and_uniquifies(tmp_path):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, content=b"media-bytes"))
    facility = DownloadFacility(download_dir=tmp_path, transport=transport)

    first = await facility.download("https://cdn/x.jpg", "pic.jpg")
    second = await facility.download("https://cdn/x.jpg", "pic.jpg")

    assert first != second
    assert (tmp_path / "pic.jpg").read_bytes() == b"media-bytes"
    assert (tmp_path / "pic (1).jpg").exists()
    assert not list(tmp_path.glob("*.part"))


async def test_facility_rejects_http_errors(tmp_path):
    transport = httpx.MockTransport(lambda request: httpx.Response(403))
    facility = DownloadFacility(download_dir=tmp_path, transport=transport)

    with pytest.raises(DownloadRejectedError):
        await facility.download("https://cdn/x.jpg", "pic.jpg")
    assert not list(tmp_path.iterdir())
