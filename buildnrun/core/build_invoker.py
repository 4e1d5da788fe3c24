"""Build invoker: runs the external build driver and reports success.

The driver inherits this process's standard streams so compiler output
shows up live in the user's terminal.
"""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence

logger = logging.getLogger(__name__)

DEFAULT_BUILD_DRIVER = "cargo"


class BuildDriverError(RuntimeError):
    """Raised when the build driver cannot be launched at all."""


class BuildInvoker:
    """Runs ``<driver> build <args...>`` and blocks until it finishes.

    Parameters
    ----------
    driver:
        Executable name or path of the build driver.
    """

    def __init__(self, driver: str = DEFAULT_BUILD_DRIVER) -> None:
        self.driver = driver

    def command(self, build_args: Sequence[str]) -> list[str]:
        """Full argument vector for one build."""
        return [self.driver, "build", *build_args]

    def build(self, build_args: Sequence[str]) -> bool:
        """Run one build; return whether the driver exited successfully.

        Raises :class:`BuildDriverError` if the driver cannot be spawned.
        """
        cmd = self.command(build_args)
        logger.debug("Running build: %s", " ".join(cmd))
        try:
            completed = subprocess.run(cmd, check=False)
        except OSError as exc:
            raise BuildDriverError(
                f"Cannot launch build driver {self.driver!r}: {exc}"
            ) from exc

        if completed.returncode != 0:
            logger.info("Build failed with exit code %s", completed.returncode)
            return False
        return True
