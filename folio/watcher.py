"""Filesystem watching for the development server.

WatchdogSource turns watchdog notifications into a stream of ChangeEvent
values. Watcher consumes that stream on its own thread, filters out noise
(output files, editor temp files, node_modules) and calls the rebuild
trigger for every relevant change.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .config import SiteConfig
from .protocols import FileWatchSource

logger = logging.getLogger(__name__)

STOP = "stop"
CHANGE_KINDS = frozenset({"created", "modified", "deleted", "moved"})
RELEVANT_SUFFIXES = frozenset({".md", ".jinja", ".html", ".css", ".js", ".yaml", ".yml", ".json"})
TEMP_SUFFIXES = (".swp", ".swx", ".tmp", "~")


@dataclass(frozen=True)
class ChangeEvent:
    """One filesystem change.

    Attributes:
        path: Changed file, None for the stop event.
        kind: created, modified, deleted, moved or stop.
    """

    path: Path | None
    kind: str


class _QueueHandler(FileSystemEventHandler):
    def __init__(self, events: queue.Queue):
        super().__init__()
        self.events = events

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in CHANGE_KINDS:
            return
        raw = getattr(event, "dest_path", "") or event.src_path
        self.events.put(ChangeEvent(Path(os.fsdecode(raw)), event.event_type))


class WatchdogSource:
    """FileWatchSource backed by a watchdog Observer.

    Directories passed to ``subscribe`` are watched recursively; the
    ``shallow`` directories given here are watched without recursion
    (the project root, so folio.yaml edits are seen).
    """

    def __init__(self, shallow: Sequence[Path] = (), observer_factory=Observer):
        self.shallow = tuple(shallow)
        self._observer_factory = observer_factory
        self._events: queue.Queue[ChangeEvent] = queue.Queue()

    def subscribe(self, directories: Sequence[Path]) -> Iterator[ChangeEvent]:
        observer = self._observer_factory()
        handler = _QueueHandler(self._events)
        for directory in directories:
            if directory.is_dir():
                observer.schedule(handler, str(directory), recursive=True)
        for directory in self.shallow:
            if directory.is_dir():
                observer.schedule(handler, str(directory), recursive=False)
        observer.start()
        try:
            while True:
                event = self._events.get()
                yield event
                if event.kind == STOP:
                    return
        finally:
            observer.stop()
            observer.join()

    def stop(self) -> None:
        self._events.put(ChangeEvent(None, STOP))


def is_temp_file(path: Path) -> bool:
    name = path.name
    return name.startswith((".", "#")) or name.endswith(TEMP_SUFFIXES)


class Watcher:
    """Forwards relevant source changes to a rebuild trigger.

    Attributes:
        config: Site configuration providing the watched directories.
        trigger: Callable receiving the changed path as the rebuild reason.
        source: Stream of change events.
    """

    def __init__(
        self,
        config: SiteConfig,
        trigger: Callable[[str], None],
        source: FileWatchSource | None = None,
    ):
        self.config = config
        self.trigger = trigger
        self.source = source or WatchdogSource(shallow=(config.project_root,))
        self._output = config.output_path.resolve()
        self._thread: threading.Thread | None = None

    def directories(self) -> list[Path]:
        candidates = (self.config.content_path, self.config.themes_path, self.config.static_path)
        return [path for path in candidates if path.is_dir()]

    def is_relevant(self, path: Path) -> bool:
        if path.resolve().is_relative_to(self._output):
            return False
        if "node_modules" in path.parts or is_temp_file(path):
            return False
        return path.suffix.lower() in RELEVANT_SUFFIXES

    def handle(self, event: ChangeEvent) -> bool:
        """Process one event.

        Returns:
            False once the stop event is seen.
        """
        if event.kind == STOP:
            logger.warning("File watcher stopped; changes are no longer picked up")
            return False
        if event.path is not None and self.is_relevant(event.path):
            logger.debug("%s %s", event.kind.capitalize(), event.path)
            self.trigger(str(event.path))
        return True

    def run(self) -> None:
        for event in self.source.subscribe(self.directories()):
            if not self.handle(event):
                break

    def start(self) -> None:
        self._thread = threading.Thread(target=self.run, name="folio-watcher", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self.source.stop()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
