"""Watching a configuration directory for file events."""

from __future__ import annotations

import enum
import logging
import os
import queue
import threading
from dataclasses import dataclass
from typing import Optional

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

_log = logging.getLogger("nvmediscovery")


class EventOp(str, enum.Enum):
    CREATE = "Create"
    REMOVE = "Remove"
    MODIFY = "Modify"
    RENAME = "Rename"
    CHMOD = "Chmod"


@dataclass(frozen=True)
class Event:
    """A change to a path inside a watched directory."""

    name: str
    op: EventOp


class _Forwarder(FileSystemEventHandler):
    def __init__(self, root: str, events: "queue.Queue[Event]") -> None:
        super().__init__()
        self._root = os.path.abspath(root)
        self._events = events

    def _inside(self, path: str) -> bool:
        return os.path.dirname(os.path.abspath(path)) == self._root

    def on_any_event(self, event: FileSystemEvent) -> None:
        src = os.fsdecode(event.src_path)
        kind = event.event_type
        if kind == EVENT_TYPE_CREATED:
            self._events.put(Event(src, EventOp.CREATE))
        elif kind == EVENT_TYPE_MODIFIED:
            if not event.is_directory:
                self._events.put(Event(src, EventOp.MODIFY))
        elif kind == EVENT_TYPE_DELETED:
            self._events.put(Event(src, EventOp.REMOVE))
        elif kind == EVENT_TYPE_MOVED:
            self._events.put(Event(src, EventOp.RENAME))
            dest = os.fsdecode(getattr(event, "dest_path", "") or "")
            if dest and self._inside(dest):
                self._events.put(Event(dest, EventOp.CREATE))


class FileWatcher:
    """Reports file events of one directory through a queue."""

    def __init__(self) -> None:
        self._observer: Optional[Observer] = None
        self._lock = threading.Lock()

    def watch(self, path: str | os.PathLike) -> "queue.Queue[Event]":
        """Start watching ``path`` and return the queue events are put on."""
        target = os.fspath(path)
        if not os.path.exists(target):
            _log.error("failed to open %r", target)
            raise FileNotFoundError(f"no such file or directory: {target!r}")
        events: "queue.Queue[Event]" = queue.Queue()
        observer = Observer()
        observer.schedule(_Forwarder(target, events), target, recursive=False)
        observer.daemon = True
        observer.start()
        with self._lock:
            previous, self._observer = self._observer, observer
        if previous is not None:
            previous.stop()
        return events

    def stop(self) -> None:
        """Stop watching; no further events are reported."""
        with self._lock:
            observer, self._observer = self._observer, None
        if observer is not None:
            observer.stop()
            if observer.is_alive():
                observer.join(timeout=5)

    def __enter__(self) -> "FileWatcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()