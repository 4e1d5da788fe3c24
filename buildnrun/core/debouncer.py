"""Per-path debouncing of raw filesystem notifications.

Raw notifications for the same path that arrive within the debounce window
are folded into one event.  A path's event is released once the window has
elapsed without a new notification for that path, so a save storm yields
a single event no matter how many writes it performed.

Folding rules (earlier pending + new notification -> pending):

=================  ==============  ==========================
pending            new             result
=================  ==============  ==========================
Create             Write           Create
Create             Remove          (dropped)
Create a           Rename a->b     Create b
Write              Remove          Remove
Remove             Create          Write
Rename a->b        Rename b->c     Rename a->c
Rename a->b        Remove b        Remove a
Rename a->b        Write b         Rename a->b
Other              any             the new notification
any                Other           unchanged
=================  ==============  ==========================

Rescan is never debounced.

The class is not thread-safe; the event source serialises access.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import cast
from dataclasses import dataclass
from pathlib import Path

from buildnrun.models.events import EventKind, FsEvent


@dataclass
class _Pending:
    event: FsEvent
    deadline: float
    seq: int


class Debouncer:
    """Coalesces raw events keyed by the path they end up affecting.

    Parameters
    ----------
    window:
        Quiet period in seconds a path needs before its event is released.
    clock:
        Monotonic time source, injectable for tests.
    """

    def __init__(
        self, window: float, clock: Callable[[], float] = time.monotonic
    ) -> None:
        if window < 0:
            raise ValueError("debounce window must be non-negative")
        self.window = window
        self._clock = clock
        self._pending: dict[Path, _Pending] = {}
        self._seq = 0

    def __len__(self) -> int:
        return len(self._pending)

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    def push(self, event: FsEvent) -> None:
        """Fold a raw event into the pending set."""
        if event.kind == EventKind.RESCAN or event.path is None:
            raise ValueError("only events carrying a path can be debounced")
        deadline = self._clock() + self.window

        if event.kind == EventKind.RENAME:
            self._push_rename(event, deadline)
            return

        key = event.path
        current = self._pending.get(key)
        if current is None:
            self._store(key, event, deadline)
            return

        merged = self._fold(current.event, event)
        if merged is None:
            del self._pending[key]
        else:
            self._store(key, merged, deadline)

    def _push_rename(self, event: FsEvent, deadline: float) -> None:
        # FsEvent guarantees both paths on a rename.
        old, new = cast(Path, event.path), cast(Path, event.new_path)
        previous = self._pending.pop(old, None)
        # Whatever was pending on the destination is superseded by the move.
        self._pending.pop(new, None)

        if previous is None:
            merged = event
        elif previous.event.kind == EventKind.CREATE:
            merged = FsEvent.create(new, is_directory=event.is_directory)
        elif previous.event.kind == EventKind.RENAME:
            merged = FsEvent.rename(
                cast(Path, previous.event.path), new, is_directory=event.is_directory
            )
        else:
            merged = event
        self._store(new, merged, deadline)

    @staticmethod
    def _fold(pending: FsEvent, new: FsEvent) -> FsEvent | None:
        if new.kind == EventKind.OTHER:
            return pending
        if pending.kind == EventKind.OTHER:
            return new
        if pending.kind == EventKind.CREATE:
            if new.kind == EventKind.REMOVE:
                return None
            return pending
        if pending.kind == EventKind.REMOVE and new.kind == EventKind.CREATE:
            return FsEvent.write(new.path, is_directory=new.is_directory)
        if pending.kind == EventKind.RENAME:
            if new.kind == EventKind.REMOVE:
                return FsEvent.remove(pending.path, is_directory=new.is_directory)
            return pending
        # Write/Remove followed by anything: the latest notification wins.
        return new

    def _store(self, key: Path, event: FsEvent, deadline: float) -> None:
        self._seq += 1
        self._pending[key] = _Pending(event=event, deadline=deadline, seq=self._seq)

    # ------------------------------------------------------------------
    # Release
    # ------------------------------------------------------------------

    def next_deadline(self) -> float | None:
        """Earliest time at which a pending event becomes due, if any."""
        if not self._pending:
            return None
        return min(p.deadline for p in self._pending.values())

    def pop_ready(self, now: float | None = None) -> list[FsEvent]:
        """Remove and return all events whose quiet period has elapsed."""
        now = self._clock() if now is None else now
        ready = [
            (key, pending)
            for key, pending in self._pending.items()
            if pending.deadline <= now
        ]
        ready.sort(key=lambda item: (item[1].deadline, item[1].seq))
        for key, _ in ready:
            del self._pending[key]
        return [pending.event for _, pending in ready]
