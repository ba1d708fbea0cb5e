"""Command line entry point for InstaSaver."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from instasaver.core.classifier import classify_menu
from instasaver.core.exceptions import InstaSaverError
from instasaver.core.service import InstaSaverService
from instasaver.models.data_models import Action, AuthContext, MediaContext
from instasaver.models.dom import DomNode
from instasaver.ui.async_bridge import AsyncExecutor, MessageBridge
from instasaver.ui.controls import build_message
from instasaver.utils.config import APP_NAME, APP_VERSION, BROWSER_HEADLESS, BROWSER_PROFILE_DIR, INSTAGRAM_BASE_URL
from instasaver.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def load_auth(cookies_file: Optional[Path]) -> AuthContext:
    """
    Read session cookies from a JSON file.

    Accepts a ``{name: value}`` object, a list of browser cookies, or a
    Playwright storage state (``{"cookies": [...]}``).
    """
    if cookies_file is None:
        return AuthContext()
    data = json.loads(cookies_file.read_text(encoding="utf-8"))
    if isinstance(data, dict) and isinstance(data.get("cookies"), list):
        data = data["cookies"]
    return AuthContext.from_cookies(data)


async def run_watch(profile_dir: Path, headless: bool) -> None:
    from playwright.async_api import async_playwright

    from instasaver.ui.page_observer import watch

    executor = AsyncExecutor()
    executor.start()
    bridge = MessageBridge(executor, InstaSaverService().handle)
    try:
        async with async_playwright() as p:
            context = await p.chromium.launch_persistent_context(str(profile_dir), headless=headless)
            await watch(context, bridge, INSTAGRAM_BASE_URL)
    finally:
        executor.stop()


async def run_message(message: Dict[str, Any]) -> Dict[str, Any]:
    return await InstaSaverService().handle(message)


def inspect_file(path: Path, url: str) -> List[str]:
    """Classify each menu-like container of a saved page."""
    root = DomNode.from_html(path.read_text(encoding="utf-8"))
    found = []
    for container in root.descendants("div"):
        match = classify_menu(container, url)
        if match is not None and match.element is container:
            labels = [c.label for c in container.children if c.label]
            found.append(f"{match.kind.value}: {', '.join(labels)}")
    return found


def build_cli_message(args: argparse.Namespace) -> Dict[str, Any]:
    """Turn a story, post or url command into a service message."""
    if args.command == "url":
        return {
            "action": Action.DOWNLOAD_URL.value,
            "url": args.url,
            "isVideo": args.video,
            "username": args.username,
        }

    auth = load_auth(args.cookies)
    if args.command == "story":
        return build_message(Action.DOWNLOAD_STORY, MediaContext.for_story(args.username, args.story_id), auth)

    item_type = "reel" if args.reel else "post"
    if args.index is None:
        return build_message(Action.DOWNLOAD_POST, MediaContext.for_post(args.shortcode, item_type), auth)
    context = MediaContext.for_post(args.shortcode, item_type, carousel_index=args.index)
    return build_message(Action.DOWNLOAD_POST_SINGLE, context, auth)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="instasaver", description="Save Instagram stories, posts and reels.")
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {APP_VERSION}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output to the console")
    parser.add_argument("--cookies", type=Path, help="JSON file with the Instagram session cookies")
    sub = parser.add_subparsers(dest="command", required=True)

    watch = sub.add_parser("watch", help="Open Instagram and add download buttons to menus")
    watch.add_argument("--profile", type=Path, default=BROWSER_PROFILE_DIR, help="Browser profile directory")
    watch.add_argument("--headless", action="store_true", default=BROWSER_HEADLESS)

    story = sub.add_parser("story", help="Download a story")
    story.add_argument("username")
    story.add_argument("story_id", nargs="?", default="")

    post = sub.add_parser("post", help="Download a post or reel by shortcode")
    post.add_argument("shortcode")
    post.add_argument("--index", type=int, help="Only the item at this 0-based carousel index")
    post.add_argument("--reel", action="store_true", help="Name the file as a reel")

    url = sub.add_parser("url", help="Download a media URL directly")
    url.add_argument("url")
    url.add_argument("--video", action="store_true")
    url.add_argument("--username", default="")

    inspect = sub.add_parser("inspect", help="Classify the menus in a saved HTML page")
    inspect.add_argument("file", type=Path)
    inspect.add_argument("--url", default=INSTAGRAM_BASE_URL + "/", help="URL the page was saved from")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    if args.command == "inspect":
        for line in inspect_file(args.file, args.url):
            print(line)
        return 0

    if args.command == "watch":
        asyncio.run(run_watch(args.profile, args.headless))
        return 0

    try:
        message = build_cli_message(args)
    except InstaSaverError as e:
        logger.error(f"❌ {e}")
        return 1

    response = asyncio.run(run_message(message))
    if response.get("success"):
        total = response.get("total")
        if total:
            logger.info(f"✓ Downloaded {response.get('downloaded')}/{total}")
        else:
            logger.info("✓ Downloaded")
        return 0

    logger.error(f"❌ {response.get('error') or 'Download failed'}")
    return 1


if __name__ == "__main__":
    sys.exit(main())
