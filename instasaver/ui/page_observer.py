"""Page-side component: watch Instagram for menus and inject download controls."""

import asyncio
import itertools
from dataclasses import dataclass
from typing import Any, Dict, Mapping

from playwright.async_api import BrowserContext, Page

from instasaver.core import carousel
from instasaver.core.classifier import classify_menu
from instasaver.core.exceptions import ContextUnresolvedError
from instasaver.models.data_models import AuthContext, MenuKind
from instasaver.models.dom import DomNode, PageState
from instasaver.ui import styles
from instasaver.ui.async_bridge import MessageBridge
from instasaver.ui.controls import ControlRole, build_request, plan_controls, result_label
from instasaver.ui.scripts import (
    DOCUMENT_SNAPSHOT_JS,
    INJECT_JS,
    LIVE_CONTROLS_JS,
    OBSERVER_JS,
    SET_LABEL_INIT_JS,
    SET_LABEL_JS,
)
from instasaver.utils.config import INSTAGRAM_BASE_URL, LABEL_RESET_DELAY, MARKER_ATTRIBUTE
from instasaver.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class InjectedControl:
    """An injected control and the menu it lives in."""
    control_id: str
    role: ControlRole
    idle_label: str
    menu: DomNode


class PageObserver:
    """
    Subscribes to DOM insertions on an Instagram page.

    Classification runs on element snapshots and has no side effects;
    injecting the planned controls is the only change made to the page.
    ``controls`` only tracks controls still attached to the document:
    entries for closed menus are dropped on the next injection or as soon
    as a label update finds the element gone.
    """

    def __init__(self, page: Page, bridge: MessageBridge, reset_delay: float = LABEL_RESET_DELAY):
        self.page = page
        self.bridge = bridge
        self.reset_delay = reset_delay
        self.controls: Dict[str, InjectedControl] = {}
        self._ids = itertools.count(1)

    @property
    def context(self) -> BrowserContext:
        return self.page.context

    async def start(self) -> None:
        """Register the bindings and the mutation observer once per page."""
        await self.page.expose_binding("__instaSaverMutation", self._on_mutation)
        await self.page.expose_binding("__instaSaverActivate", self._on_activate)
        await self.page.add_init_script(SET_LABEL_INIT_JS)
        await self.page.add_init_script(OBSERVER_JS)

        # Already-loaded documents do not run init scripts
        await self.page.evaluate(SET_LABEL_INIT_JS)
        await self.page.evaluate(OBSERVER_JS)
        logger.info("Page observer installed")

    async def read_page(self) -> PageState:
        return PageState.from_snapshot(await self.page.evaluate(DOCUMENT_SNAPSHOT_JS))

    async def read_auth(self) -> AuthContext:
        """Cookies are read per request; the CSRF token may rotate."""
        return AuthContext.from_cookies(await self.context.cookies(INSTAGRAM_BASE_URL))

    # ------------------------------------------------------------------
    # Mutation handling
    # ------------------------------------------------------------------

    async def _on_mutation(self, source: Any, payload: Mapping[str, Any]) -> None:
        try:
            node = DomNode.from_snapshot(payload["node"])
        except (KeyError, TypeError) as e:
            logger.debug(f"Ignoring malformed snapshot: {e}")
            return

        match = classify_menu(node, payload.get("url", ""))
        if match is None:
            return

        media_count = 1
        if match.kind == MenuKind.POST:
            media_count = carousel.media_count(await self.read_page())
            logger.info(f"Detected media count for post: {media_count}")

        await self.inject(match.kind, match.element, media_count)

    async def inject(self, kind: MenuKind, menu: DomNode, media_count: int = 1) -> int:
        if menu.node_id is None:
            return 0

        await self.prune()
        controls = []
        for planned in plan_controls(kind, media_count):
            control_id = f"c{next(self._ids)}"
            self.controls[control_id] = InjectedControl(control_id, planned.role, planned.label, menu)
            controls.append({"id": control_id, "label": planned.label})

        injected = await self.page.evaluate(INJECT_JS, {
            "menuId": menu.node_id,
            "kind": kind.value,
            "controls": controls,
            "marker": MARKER_ATTRIBUTE,
            "color": styles.COLOR_IDLE,
            "weight": styles.FONT_WEIGHT,
        })
        if not injected:
            for control in controls:
                self.controls.pop(control["id"], None)
        else:
            logger.debug(f"Injected {injected} control(s) into {kind.value} menu")
        return injected

    async def prune(self) -> int:
        """Forget controls whose menu has been closed. Returns how many were dropped."""
        if not self.controls:
            return 0
        live = set(await self.page.evaluate(LIVE_CONTROLS_JS, MARKER_ATTRIBUTE) or ())
        stale = [control_id for control_id in self.controls if control_id not in live]
        for control_id in stale:
            del self.controls[control_id]
        if stale:
            logger.debug(f"Dropped {len(stale)} detached control(s)")
        return len(stale)

    # ------------------------------------------------------------------
    # Control activation
    # ------------------------------------------------------------------

    async def _on_activate(self, source: Any, control_id: str) -> None:
        control = self.controls.get(control_id)
        if control is None:
            logger.debug(f"Unknown control {control_id}")
            return

        await self.set_label(control_id, styles.LABEL_BUSY, styles.COLOR_IDLE)
        response = await self.request(control)

        label, color = result_label(response)
        if not response.get("success"):
            logger.warning(f"Download failed: {response.get('error') or 'Unknown error'}")
        await self.set_label(control_id, label, color)

        await asyncio.sleep(self.reset_delay)
        await self.set_label(control_id, control.idle_label, styles.COLOR_IDLE)

    async def request(self, control: InjectedControl) -> Dict[str, Any]:
        """Build the request from current page state and send it over the bridge."""
        try:
            message = build_request(control.role, control.menu, await self.read_page(), await self.read_auth())
        except ContextUnresolvedError as e:
            return {"success": False, "error": str(e)}
        return await self.bridge.send(message)

    async def set_label(self, control_id: str, label: str, color: str) -> bool:
        attached = await self.page.evaluate(SET_LABEL_JS, {
            "controlId": control_id,
            "label": label,
            "color": color,
            "weight": styles.FONT_WEIGHT,
        })
        if not attached:
            self.controls.pop(control_id, None)
        return bool(attached)


async def watch(context: BrowserContext, bridge: MessageBridge, url: str = INSTAGRAM_BASE_URL) -> None:
    """Open Instagram in ``context`` and observe it until the browser closes."""
    page = context.pages[0] if context.pages else await context.new_page()
    observer = PageObserver(page, bridge)
    await observer.start()
    await page.goto(url)

    closed = asyncio.Event()
    context.on("close", lambda _: closed.set())
    await closed.wait()
