"""Message channel between the page observer and the privileged service."""

import asyncio
import threading
from concurrent.futures import Future, InvalidStateError
from typing import Any, Awaitable, Callable, Coroutine, Dict, Mapping, Optional, Set

from instasaver.core.exceptions import TransportUnavailableError
from instasaver.utils.logging import get_logger

logger = get_logger(__name__)

TRANSPORT_UNAVAILABLE = "transport unavailable"

Handler = Callable[[Mapping[str, Any]], Awaitable[Dict[str, Any]]]


def _settle(future: Future, error: Optional[BaseException] = None, result: Any = None) -> None:
    """Complete ``future`` unless something else already has."""
    try:
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)
    except InvalidStateError:
        pass


class AsyncExecutor:
    """
    Runs the privileged context: an asyncio event loop in a background
    thread, separate from the loop driving the browser page.

    Every future handed out by ``submit`` is completed exactly once. Work
    still outstanding when the loop stops fails with
    ``TransportUnavailableError``.
    """

    def __init__(self):
        """Initialize the executor."""
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.thread: Optional[threading.Thread] = None
        self._running = False
        self._ready = threading.Event()
        self._outstanding: Set[Future] = set()
        self._outstanding_lock = threading.Lock()

    def start(self) -> None:
        """
        Start the background thread with asyncio event loop.
        Must be called before submitting tasks.
        """
        if self._running:
            logger.warning("AsyncExecutor already running")
            return

        self._running = True
        self._ready.clear()
        self.thread = threading.Thread(target=self._run_event_loop, name="instasaver-service", daemon=True)
        self.thread.start()
        self._ready.wait()
        logger.info("AsyncExecutor started")

    def _run_event_loop(self) -> None:
        """Body of the background thread."""
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)
        self._ready.set()

        try:
            self.loop.run_forever()
        finally:
            pending = asyncio.all_tasks(self.loop)
            for task in pending:
                task.cancel()

            self.loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            # Callbacks queued behind loop.stop never ran their coroutine
            self._fail_outstanding()
            self.loop.close()
            logger.info("AsyncExecutor event loop closed")

    def _track(self, future: Future) -> None:
        with self._outstanding_lock:
            self._outstanding.add(future)
        future.add_done_callback(self._forget)

    def _forget(self, future: Future) -> None:
        with self._outstanding_lock:
            self._outstanding.discard(future)

    def _fail_outstanding(self) -> None:
        with self._outstanding_lock:
            outstanding = list(self._outstanding)
        if outstanding:
            logger.warning(f"Service loop stopped with {len(outstanding)} request(s) unanswered")
        for future in outstanding:
            _settle(future, TransportUnavailableError("Service loop stopped"))

    def submit(self, coro: Coroutine) -> Future:
        """
        Submit a coroutine to run in the background asyncio loop.

        Args:
            coro: Coroutine to execute

        Returns:
            Future that will contain the result

        Raises:
            TransportUnavailableError: If executor not started
        """
        if not self._running or self.loop is None or self.loop.is_closed():
            coro.close()
            raise TransportUnavailableError("AsyncExecutor not started. Call start() first.")

        future: Future = Future()
        self._track(future)

        async def wrapped():
            try:
                result = await coro
            except asyncio.CancelledError:
                _settle(future, TransportUnavailableError("Service loop stopped"))
                raise
            except Exception as e:
                logger.exception("Error in async task")
                _settle(future, e)
            else:
                _settle(future, result=result)

        task = wrapped()
        try:
            asyncio.run_coroutine_threadsafe(task, self.loop)
        except RuntimeError:
            # Loop closed between the check above and scheduling
            task.close()
            coro.close()
            _settle(future, TransportUnavailableError("Service loop stopped"))
        return future

    def stop(self) -> None:
        """
        Stop the background thread and event loop.
        Should be called when shutting down the application.
        """
        if not self._running:
            return

        self._running = False

        if self.loop and not self.loop.is_closed():
            self.loop.call_soon_threadsafe(self.loop.stop)

        if self.thread:
            self.thread.join(timeout=5.0)

        self._fail_outstanding()
        logger.info("AsyncExecutor stopped")


class MessageBridge:
    """
    Request/response channel from the page side to the service.

    ``send`` always resolves to a ``{"success": bool, ...}`` dict. It never
    retries; when the receiving side is missing it answers
    ``{"success": False, "error": "transport unavailable"}``.
    """

    def __init__(self, executor: Optional[AsyncExecutor], handler: Optional[Handler]):
        self.executor = executor
        self.handler = handler

    async def send(self, message: Mapping[str, Any]) -> Dict[str, Any]:
        action = message.get("action")
        if self.executor is None or self.handler is None:
            logger.warning(f"Cannot send {action}: no receiving end")
            return {"success": False, "error": TRANSPORT_UNAVAILABLE}

        try:
            future = self.executor.submit(self.handler(dict(message)))
        except TransportUnavailableError as e:
            logger.warning(f"Cannot send {action}: {e}")
            return {"success": False, "error": TRANSPORT_UNAVAILABLE}

        try:
            response = await asyncio.wrap_future(future)
        except TransportUnavailableError:
            return {"success": False, "error": TRANSPORT_UNAVAILABLE}
        except Exception as e:
            logger.warning(f"{action} raised across the bridge: {e}")
            return {"success": False, "error": str(e)}

        return response or {"success": False}
