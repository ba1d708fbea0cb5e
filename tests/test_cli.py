import pytest

from instasaver import cli


@pytest.fixture
def service_calls(monkeypatch):
    calls = []

    async def run_message(message):
        calls.append(message)
        return {"success": True, "downloaded": 1, "total": 1}

    monkeypatch.setattr(cli, "run_message", run_message)
    return calls


@pytest.mark.parametrize("argv", [["story", ""], ["post", ""], ["post", "", "--index", "2"]])
def test_missing_context_exits_with_error(argv, service_calls):
    assert cli.main(argv) == 1
    assert service_calls == []


def test_story_command_builds_message(service_calls):
    assert cli.main(["story", "alice", "123"]) == 0
    assert service_calls[0]["action"] == "downloadStory"
    assert service_calls[0]["username"] == "alice"
    assert service_calls[0]["storyId"] == "123"


def test_post_index_command_builds_single_message():
    args = cli.build_parser().parse_args(["post", "Cabc12", "--index", "2", "--reel"])
    message = cli.build_cli_message(args)
    assert message["action"] == "downloadPostSingle"
    assert message["index"] == 2
    assert message["type"] == "reel"


def test_url_command_skips_context_checks():
    args = cli.build_parser().parse_args(["url", "https://cdn/v.mp4", "--video"])
    message = cli.build_cli_message(args)
    assert message == {"action": "download", "url": "https://cdn/v.mp4", "isVideo": True, "username": ""}


def test_inspect_classifies_saved_menus(tmp_path):
    saved = tmp_path / "page.html"
    saved.write_text(
        "<html><body><div><button>Report</button><button>Go to post</button>"
        "<button>Cancel</button></div></body></html>",
        encoding="utf-8",
    )
    assert cli.inspect_file(saved, "https://www.instagram.com/") == ["post: report, go to post, cancel"]
