"""Debounced rebuilds for the development server.

The Rebuilder owns the build id and the content cache. One control thread
reads triggers from a mailbox and runs builds one at a time; every other
thread only calls ``trigger()`` or reads ``build_id``.

State machine::

    IDLE    + trigger         -> PENDING (arm the debounce timer)
    PENDING + trigger         -> PENDING (re-arm the timer)
    PENDING + timer fires     -> RUNNING (build with the last cache)
    RUNNING + trigger         -> RUNNING (remember it)
    RUNNING + build completes -> PENDING if a trigger arrived, else IDLE

A successful build increments the build id by one and replaces the cache.
A build that raises is logged and leaves both untouched, so the previous
output keeps being served.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .build import BuildResult, ContentCache

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE = 0.2

_STOP = object()


class RebuildState(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    RUNNING = "running"


class Rebuilder:
    """Serializes debounced rebuilds and tracks the build id.

    Attributes:
        build_fn: Runs one build given the previous content cache.
        debounce: Seconds to wait after the last trigger before building.
        clock: Monotonic time source.
    """

    def __init__(
        self,
        build_fn: Callable[[ContentCache | None], BuildResult],
        debounce: float = DEFAULT_DEBOUNCE,
        clock: Callable[[], float] = time.monotonic,
        initial_cache: ContentCache | None = None,
    ):
        self.build_fn = build_fn
        self.debounce = debounce
        self.clock = clock
        self._mailbox: queue.Queue = queue.Queue()
        self._state = RebuildState.IDLE
        self._deadline: float | None = None
        self._dirty = False
        self._stopping = False
        self._build_id = 0
        self._cache = initial_cache
        self._last_result: BuildResult | None = None
        self._thread: threading.Thread | None = None

    @property
    def build_id(self) -> int:
        return self._build_id

    @property
    def state(self) -> RebuildState:
        return self._state

    @property
    def cache(self) -> ContentCache | None:
        return self._cache

    @property
    def last_result(self) -> BuildResult | None:
        return self._last_result

    def trigger(self, reason: str = "") -> None:
        """Request a rebuild. Safe to call from any thread."""
        self._mailbox.put(reason)

    def start(self) -> None:
        self._stopping = False
        self._thread = threading.Thread(target=self._run, name="folio-rebuilder", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Stop the control thread; a running build finishes first."""
        self._mailbox.put(_STOP)
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stopping:
            try:
                message = self._mailbox.get(timeout=self._wait_time())
            except queue.Empty:
                self.tick()
                continue
            self._receive(message)

    def _wait_time(self) -> float | None:
        if self._state is not RebuildState.PENDING or self._deadline is None:
            return None
        return max(0.0, self._deadline - self.clock())

    def _receive(self, message: object) -> None:
        if message is _STOP:
            self._stopping = True
        else:
            self.on_trigger(str(message))

    def on_trigger(self, reason: str = "") -> None:
        """Handle one trigger on the control thread."""
        if reason:
            logger.debug("Rebuild requested: %s", reason)
        if self._state is RebuildState.RUNNING:
            self._dirty = True
            return
        self._state = RebuildState.PENDING
        self._deadline = self.clock() + self.debounce

    def tick(self) -> bool:
        """Run the pending build if its timer has fired.

        Returns:
            True if a build ran.
        """
        if self._state is not RebuildState.PENDING or self._deadline is None:
            return False
        if self.clock() < self._deadline:
            return False
        self._run_build()
        return True

    def _run_build(self) -> None:
        self._state = RebuildState.RUNNING
        self._deadline = None
        self._dirty = False
        try:
            result = self.build_fn(self._cache)
        except Exception:
            logger.exception("Rebuild failed; still serving build %d", self._build_id)
        else:
            self._cache = result.content_cache
            self._last_result = result
            self._build_id += 1
            logger.info(
                "Rebuild %d finished in %.2fs (%d pages, %d failed)",
                self._build_id,
                result.elapsed,
                len(result.pages),
                len(result.failures),
            )
            for failure in result.failures:
                logger.warning("%s", failure)
        self._drain()
        if self._dirty:
            self._dirty = False
            self._state = RebuildState.PENDING
            self._deadline = self.clock() + self.debounce
        else:
            self._state = RebuildState.IDLE

    def _drain(self) -> None:
        """Account for messages that arrived while the build was running."""
        while True:
            try:
                message = self._mailbox.get_nowait()
            except queue.Empty:
                return
            if message is _STOP:
                self._stopping = True
            else:
                self.on_trigger(str(message))
