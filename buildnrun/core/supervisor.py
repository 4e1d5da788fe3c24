"""Process supervisor: owns the single running instance of the built binary.

At most one child exists at any time.  Recycling kills and reaps the
current child before anything new is spawned; kill and reap are
best-effort, and a failed spawn simply leaves no child running until the
next successful build.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Callable, Sequence

from buildnrun.models.config import WatchConfig

logger = logging.getLogger(__name__)

PopenFactory = Callable[[Sequence[str]], subprocess.Popen]


class ProcessSupervisor:
    """Spawns, kills and reaps the supervised child.

    Parameters
    ----------
    popen:
        Factory used to start the child; receives the argument vector.
        Defaults to :class:`subprocess.Popen` with inherited stdio.
    """

    def __init__(self, popen: PopenFactory | None = None) -> None:
        self._popen: PopenFactory = popen or subprocess.Popen
        self._current: subprocess.Popen | None = None

    @property
    def current(self) -> subprocess.Popen | None:
        """The running child, if any (read-only view)."""
        return self._current

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def terminate(self) -> None:
        """Kill and reap the current child, ignoring failures."""
        child, self._current = self._current, None
        if child is None:
            return
        try:
            child.kill()
        except OSError as exc:
            logger.debug("Kill of pid %s failed: %s", child.pid, exc)
        try:
            child.wait()
        except OSError as exc:
            logger.debug("Reap of pid %s failed: %s", child.pid, exc)
        logger.debug("Child pid %s exited with %s", child.pid, child.returncode)

    def spawn(self, config: WatchConfig) -> subprocess.Popen | None:
        """Start the executable described by *config*; ``None`` on failure."""
        if self._current is not None:
            raise RuntimeError("a child is already running; call terminate() first")

        argv = [str(config.executable_path()), *config.run_args]
        try:
            child = self._popen(argv)
        except OSError as exc:
            logger.warning("Cannot start %s: %s", argv[0], exc)
            return None

        logger.debug("Started %s (pid %s)", argv[0], child.pid)
        self._current = child
        return child

    def recycle(self, config: WatchConfig) -> subprocess.Popen | None:
        """Replace the running child with a fresh instance of the build output."""
        self.terminate()
        return self.spawn(config)
