"""Supervision loop: the build, restart and wait cycle.

The loop wires together the event stream, the build invoker and the
process supervisor:

1. IDLE -> BUILDING: run the build driver.
2. BUILDING -> SPAWNING on success: recycle the child (kill, reap, spawn).
   BUILDING -> WAITING on failure: the previous child keeps running.
3. SPAWNING -> WAITING.
4. WAITING -> IDLE on the first meaningful event, after draining whatever
   else is already queued so a burst costs one rebuild.

Components are taken through the small Protocols below so tests can swap
in fakes.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from buildnrun.core.ignore import IgnoreMatcher
from buildnrun.core.state_machine import LoopStateMachine
from buildnrun.models.config import WatchConfig
from buildnrun.models.events import EventKind, FsEvent
from buildnrun.models.states import LoopState
from buildnrun.monitor.renderer import StatusRenderer

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


@runtime_checkable
class EventStream(Protocol):
    """Blocking and non-blocking access to debounced filesystem events."""

    def receive(self, timeout: float | None = None) -> FsEvent | None: ...

    def try_receive(self) -> FsEvent | None: ...


@runtime_checkable
class Builder(Protocol):
    """Runs one build and reports whether it succeeded."""

    def build(self, build_args: Sequence[str]) -> bool: ...


@runtime_checkable
class ChildSupervisor(Protocol):
    """Owns the running child process."""

    def recycle(self, config: WatchConfig) -> subprocess.Popen | None: ...

    def terminate(self) -> None: ...


# ---------------------------------------------------------------------------
# Event classification
# ---------------------------------------------------------------------------


def is_meaningful(event: FsEvent, matcher: IgnoreMatcher) -> bool:
    """Whether *event* warrants a rebuild.

    Rescans always do.  Create, write and remove events do unless their
    path is ignored; renames are judged by their destination.  Anything
    else does not.
    """
    if event.kind == EventKind.RESCAN:
        return True
    if event.kind in (EventKind.CREATE, EventKind.WRITE, EventKind.REMOVE, EventKind.RENAME):
        subject = event.subject_path
        if subject is None:
            return False
        return not matcher.is_ignored(subject, event.is_directory)
    return False


# ---------------------------------------------------------------------------
# Loop
# ---------------------------------------------------------------------------


class SupervisionLoop:
    """Rebuilds on change and keeps the latest successful build running.

    Parameters
    ----------
    config:
        What to build and run.
    events:
        Debounced event stream (already started).
    builder:
        Build invoker.
    supervisor:
        Owner of the child process.
    matcher:
        Project ignore rules, built before any event is consumed.
    renderer:
        Optional status output.
    """

    def __init__(
        self,
        config: WatchConfig,
        events: EventStream,
        builder: Builder,
        supervisor: ChildSupervisor,
        matcher: IgnoreMatcher,
        *,
        renderer: StatusRenderer | None = None,
    ) -> None:
        self.config = config
        self._events = events
        self._builder = builder
        self._supervisor = supervisor
        self._matcher = matcher
        self._renderer = renderer
        self.state_machine = LoopStateMachine()

    @property
    def state(self) -> LoopState:
        return self.state_machine.state

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def build_and_recycle(self) -> bool:
        """Run one build and, if it succeeds, restart the child.

        Returns whether the build succeeded.  Ends in WAITING.
        """
        self.state_machine.transition(LoopState.BUILDING)
        if self._renderer:
            self._renderer.building(self.state_machine.cycle)

        succeeded = self._builder.build(self.config.build_args())
        if not succeeded:
            self.state_machine.transition(LoopState.WAITING, reason="build failed")
            if self._renderer:
                self._renderer.build_failed()
            return False

        self.state_machine.transition(LoopState.SPAWNING, reason="build succeeded")
        child = self._supervisor.recycle(self.config)
        exe = self.config.executable_path()
        if child is None:
            logger.warning("Build succeeded but %s could not be started", exe)
            self.state_machine.transition(LoopState.WAITING, reason="spawn failed")
            if self._renderer:
                self._renderer.spawn_failed(exe)
        else:
            logger.info("Started %s (pid %s)", exe, child.pid)
            self.state_machine.transition(LoopState.WAITING, reason="spawned")
            if self._renderer:
                self._renderer.running(exe, child.pid)
        return True

    def wait_for_change(self) -> tuple[FsEvent, int]:
        """Block until a meaningful event arrives, then drain the queue.

        Returns the triggering event and the number of events drained after
        it.  Ends in IDLE.
        """
        if self._renderer:
            self._renderer.waiting()
        while True:
            event = self._events.receive()
            if event is None:
                continue
            if is_meaningful(event, self._matcher):
                break
            logger.debug("Ignoring %s event for %s", event.kind.value, event.subject_path)

        drained = 0
        while self._events.try_receive() is not None:
            drained += 1

        logger.debug(
            "Change detected: %s %s (%d more drained)",
            event.kind.value,
            event.subject_path,
            drained,
        )
        if self._renderer:
            self._renderer.changed(event, drained)
        self.state_machine.transition(LoopState.IDLE, reason=event.kind.value)
        return event, drained

    def run_cycle(self) -> bool:
        """One full IDLE -> ... -> IDLE cycle; returns the build outcome."""
        succeeded = self.build_and_recycle()
        self.wait_for_change()
        return succeeded

    def run(self, max_cycles: int | None = None) -> None:
        """Run cycles until *max_cycles* is reached, or forever.

        A fatal error (the event source dying, the build driver missing)
        kills and reaps the child before propagating.
        """
        cycles = 0
        try:
            while max_cycles is None or cycles < max_cycles:
                self.run_cycle()
                cycles += 1
        except Exception:
            self._supervisor.terminate()
            raise
