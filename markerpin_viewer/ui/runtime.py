"""EventLoopRunner - One asyncio loop on a daemon thread for the Streamlit app.

Streamlit reruns the script on its own threads. All widget, decorator and
live sync work is marshalled onto this single loop so the subsystem keeps its
single-threaded cooperative model across reruns.
"""

import asyncio
import logging
import threading
from collections.abc import Callable, Coroutine
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class EventLoopRunner:
    """Owns a background event loop and runs work on it synchronously.

    Example:
        runner = EventLoopRunner()
        runner.run(widget.mount())
        count = runner.call(lambda: len(widget.decorator))
    """

    def __init__(self) -> None:
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run_forever, name="markerpin-loop", daemon=True)
        self._thread.start()
        logger.info("[RUNTIME] Event loop thread started")

    def _run_forever(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive() and not self.loop.is_closed()

    def run(self, coro: Coroutine[Any, Any, T], timeout: float | None = None) -> T:
        """Run a coroutine on the loop and wait for its result.

        Raises:
            Whatever the coroutine raises, or TimeoutError if timeout elapses.
        """
        return asyncio.run_coroutine_threadsafe(coro, self.loop).result(timeout=timeout)

    def call(self, fn: Callable[[], T], timeout: float | None = None) -> T:
        """Run a plain function on the loop thread and wait for its result."""

        async def invoke() -> T:
            return fn()

        return self.run(invoke(), timeout=timeout)

    def stop(self) -> None:
        """Stop the loop and wait for the thread to exit. Idempotent."""
        if self.loop.is_closed():
            return
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join()
        self.loop.close()
        logger.info("[RUNTIME] Event loop stopped")
