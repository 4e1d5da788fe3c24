"""buildnrun: rebuild a binary target on change and keep the latest build running.

Watches the project tree, runs ``cargo build`` after every meaningful
change and, when the build succeeds, replaces the running instance of the
produced executable with a fresh one.
"""

__version__ = "0.1.0"
__description__ = "Rebuild a cargo binary on file changes and keep the latest build running"

from buildnrun.core.supervision_loop import SupervisionLoop
from buildnrun.models.config import WatchConfig

__all__ = ["SupervisionLoop", "WatchConfig", "__version__"]
