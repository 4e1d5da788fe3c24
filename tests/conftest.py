"""Shared test fixtures for buildnrun."""

from __future__ import annotations

import subprocess
import sys
from collections import deque
from collections.abc import Callable, Iterable, Sequence
from pathlib import Path
from typing import Any

import pytest

from buildnrun.core.event_source import EventSourceError
from buildnrun.core.ignore import IgnoreMatcher
from buildnrun.models.config import WatchConfig
from buildnrun.models.events import FsEvent


# ---------------------------------------------------------------------------
# Fakes for the supervision loop
# ---------------------------------------------------------------------------


class FakeEventStream:
    """Scripted event stream.

    Each batch models what is sitting in the queue when the loop next
    blocks: ``receive`` moves on to the next batch only once the current
    one is empty, while ``try_receive`` never leaves the current batch.
    Running out of batches raises ``EventSourceError`` so loops terminate.
    """

    def __init__(self, batches: Iterable[Iterable[FsEvent]] = ()) -> None:
        self._batches = deque(deque(b) for b in batches)
        self._current: deque[FsEvent] = deque()
        self.received: list[FsEvent] = []
        self.drained: list[FsEvent] = []
        self.receive_calls = 0

    def receive(self, timeout: float | None = None) -> FsEvent | None:
        self.receive_calls += 1
        while not self._current:
            if not self._batches:
                raise EventSourceError("script exhausted")
            self._current = self._batches.popleft()
        event = self._current.popleft()
        self.received.append(event)
        return event

    def try_receive(self) -> FsEvent | None:
        if not self._current:
            return None
        event = self._current.popleft()
        self.drained.append(event)
        return event


class FakeBuilder:
    """Returns scripted build outcomes and logs each build to a timeline."""

    def __init__(self, outcomes: Sequence[bool], timeline: list[tuple[str, Any]]) -> None:
        self._outcomes = deque(outcomes)
        self._timeline = timeline
        self.calls: list[list[str]] = []

    def build(self, build_args: Sequence[str]) -> bool:
        ok = self._outcomes.popleft() if self._outcomes else True
        self.calls.append(list(build_args))
        self._timeline.append(("build", ok))
        return ok


class FakeChild:
    def __init__(self, pid: int) -> None:
        self.pid = pid
        self.returncode: int | None = None


class FakeSupervisor:
    """Stands in for ProcessSupervisor, tracking live children."""

    def __init__(self, timeline: list[tuple[str, Any]], spawn_ok: Sequence[bool] = ()) -> None:
        self._timeline = timeline
        self._spawn_ok = deque(spawn_ok)
        self._next_pid = 100
        self.current: FakeChild | None = None
        self.max_live = 0
        self.terminate_calls = 0

    def terminate(self) -> None:
        self.terminate_calls += 1
        if self.current is not None:
            self._timeline.append(("kill", self.current.pid))
            self._timeline.append(("reap", self.current.pid))
            self.current = None

    def recycle(self, config: WatchConfig) -> FakeChild | None:
        self.terminate()
        if self._spawn_ok and not self._spawn_ok.popleft():
            self._timeline.append(("spawn_failed", None))
            return None
        self._next_pid += 1
        self.current = FakeChild(self._next_pid)
        self.max_live = max(self.max_live, 1)
        self._timeline.append(("spawn", self.current.pid))
        return self.current


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def timeline() -> list[tuple[str, Any]]:
    """Shared, ordered record of build/kill/reap/spawn actions."""
    return []


@pytest.fixture
def make_config() -> Callable[..., WatchConfig]:
    """Factory fixture: build a WatchConfig with sensible defaults."""

    def _factory(**overrides: Any) -> WatchConfig:
        defaults: dict[str, Any] = {"binary_name": "app"}
        defaults.update(overrides)
        return WatchConfig(**defaults)

    return _factory


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A throwaway git-style project root with a .gitignore."""
    (tmp_path / ".git").mkdir()
    (tmp_path / ".gitignore").write_text("/target/\n*.log\n", encoding="utf-8")
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "main.rs").write_text("fn main() {}\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def matcher(project: Path) -> IgnoreMatcher:
    """IgnoreMatcher for the throwaway project, without the user's global excludes."""
    return IgnoreMatcher.from_root(project, include_global=False)


@pytest.fixture
def python_popen() -> Callable[[Sequence[str]], subprocess.Popen]:
    """Popen factory that runs the 'executable' as a Python script."""

    def _popen(argv: Sequence[str]) -> subprocess.Popen:
        return subprocess.Popen([sys.executable, *argv])

    return _popen


@pytest.fixture
def write_script(tmp_path: Path) -> Callable[..., WatchConfig]:
    """Write a Python script where the supervisor expects the executable.

    Returns a WatchConfig whose executable path points at the script.
    """

    def _write(body: str, *, binary_name: str = "app", **overrides: Any) -> WatchConfig:
        config = WatchConfig(
            binary_name=binary_name, target_dir=tmp_path / "target", **overrides
        )
        exe = config.executable_path()
        exe.parent.mkdir(parents=True, exist_ok=True)
        exe.write_text(body, encoding="utf-8")
        return config

    return _write
