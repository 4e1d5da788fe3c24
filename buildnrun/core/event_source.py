"""Debounced filesystem event stream over one or more recursive watch roots.

A watchdog ``Observer`` delivers raw notifications on its own thread.
They are folded by a :class:`~buildnrun.core.debouncer.Debouncer`, and a
delivery thread moves released events into a bounded queue that the
supervision loop drains through :meth:`EventSource.receive` (blocking) and
:meth:`EventSource.try_receive` (non-blocking).

When the queue is full the delivery thread waits; notifications keep
folding into the debouncer meanwhile, so nothing is lost while the loop is
busy building.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
import time
from collections.abc import Iterable
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from buildnrun.core.debouncer import Debouncer
from buildnrun.models.events import EventKind, FsEvent

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.25


class EventSourceError(RuntimeError):
    """Raised when the filesystem watch cannot be set up or has died."""


def translate_event(event: FileSystemEvent, roots: Iterable[Path] = ()) -> FsEvent | None:
    """Map a raw watchdog event onto an :class:`FsEvent`.

    Returns ``None`` for notifications that do not describe a change
    (file opened/closed).  Removing or moving away a watch root yields a
    ``RESCAN``: the watch can no longer vouch for that tree.
    """
    src = Path(os.fsdecode(event.src_path))
    kind = event.event_type
    is_dir = event.is_directory

    if kind in ("deleted", "moved") and src in set(roots):
        return FsEvent.rescan()

    if kind == "created":
        return FsEvent.create(src, is_directory=is_dir)
    if kind == "modified":
        # Directory mtime changes accompany the child events that caused them.
        if is_dir:
            return FsEvent.other(src)
        return FsEvent.write(src)
    if kind == "moved":
        dest = Path(os.fsdecode(event.dest_path))
        return FsEvent.rename(src, dest, is_directory=is_dir)
    if kind == "deleted":
        return FsEvent.remove(src, is_directory=is_dir)
    return None


class _ForwardingHandler(FileSystemEventHandler):
    def __init__(self, source: EventSource) -> None:
        super().__init__()
        self._source = source

    def on_any_event(self, event: FileSystemEvent) -> None:
        translated = translate_event(event, self._source.roots)
        if translated is not None:
            self._source.feed(translated)


class EventSource:
    """Infinite, debounced stream of :class:`FsEvent` over the watch roots.

    Parameters
    ----------
    roots:
        Directories to watch recursively.
    debounce:
        Debounce window in seconds.
    queue_size:
        Capacity of the handoff queue between delivery thread and consumer.
    poll_interval:
        How often blocked calls re-check that the watcher is still alive.
    """

    def __init__(
        self,
        roots: Iterable[Path | str],
        *,
        debounce: float = DEFAULT_DEBOUNCE_SECONDS,
        queue_size: int = 1024,
        poll_interval: float = 0.5,
    ) -> None:
        self.roots = [Path(r).resolve() for r in roots]
        if not self.roots:
            raise ValueError("at least one watch root is required")
        self._poll = poll_interval
        self._queue: queue.Queue[FsEvent] = queue.Queue(maxsize=queue_size)
        self._debouncer = Debouncer(debounce)
        self._cond = threading.Condition()
        self._rescan_pending = False
        self._stopping = threading.Event()
        self._error: BaseException | None = None
        self._observer: Observer | None = None
        self._delivery: threading.Thread | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> EventSource:
        """Install the watches and start the background threads."""
        if self._observer is not None:
            raise RuntimeError("event source already started")

        observer = Observer()
        handler = _ForwardingHandler(self)
        try:
            for root in self.roots:
                if not root.is_dir():
                    raise EventSourceError(f"Cannot watch {root}: not a directory")
                observer.schedule(handler, str(root), recursive=True)
                logger.debug("Watching %s recursively", root)
            observer.start()
        except OSError as exc:
            raise EventSourceError(f"Cannot set up filesystem watch: {exc}") from exc

        self._observer = observer
        self._delivery = threading.Thread(
            target=self._deliver_forever, name="buildnrun-delivery", daemon=True
        )
        self._delivery.start()
        return self

    def stop(self) -> None:
        """Stop watching and join the background threads."""
        self._stopping.set()
        with self._cond:
            self._cond.notify_all()
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
        if self._delivery is not None:
            self._delivery.join()

    def __enter__(self) -> EventSource:
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Producer side
    # ------------------------------------------------------------------

    def feed(self, event: FsEvent) -> None:
        """Accept one raw event from the watcher thread."""
        with self._cond:
            if event.kind == EventKind.RESCAN:
                self._rescan_pending = True
            else:
                self._debouncer.push(event)
            self._cond.notify()

    def _deliver_forever(self) -> None:
        try:
            while not self._stopping.is_set():
                ready = self._collect_ready()
                for event in ready:
                    if not self._put(event):
                        return
        except Exception as exc:  # surfaced to the consumer by receive()
            logger.exception("Event delivery thread crashed")
            self._error = exc

    def _collect_ready(self) -> list[FsEvent]:
        with self._cond:
            ready: list[FsEvent] = []
            if self._rescan_pending:
                self._rescan_pending = False
                ready.append(FsEvent.rescan())
            ready += self._debouncer.pop_ready()
            if ready:
                return ready
            deadline = self._debouncer.next_deadline()
            timeout = self._poll
            if deadline is not None:
                timeout = min(timeout, max(0.0, deadline - time.monotonic()))
            self._cond.wait(timeout)
            return []

    def _put(self, event: FsEvent) -> bool:
        while not self._stopping.is_set():
            try:
                self._queue.put(event, timeout=self._poll)
                return True
            except queue.Full:
                logger.debug("Event queue full; delivery is waiting for the consumer")
        return False

    # ------------------------------------------------------------------
    # Consumer side
    # ------------------------------------------------------------------

    def _check_alive(self) -> None:
        if self._error is not None:
            raise EventSourceError(f"Event delivery failed: {self._error}") from self._error
        if self._observer is None:
            raise EventSourceError("event source has not been started")
        if not self._observer.is_alive() and not self._stopping.is_set():
            raise EventSourceError("Filesystem watcher stopped unexpectedly")

    def receive(self, timeout: float | None = None) -> FsEvent | None:
        """Block until the next debounced event is available.

        With ``timeout`` set, returns ``None`` once it expires.  Raises
        :class:`EventSourceError` if the watcher has died.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            self._check_alive()
            wait = self._poll
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                wait = min(wait, remaining)
            try:
                return self._queue.get(timeout=wait)
            except queue.Empty:
                continue

    def try_receive(self) -> FsEvent | None:
        """Return the next pending event without blocking, or ``None``."""
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None
