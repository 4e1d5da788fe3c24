"""Terminal status output for the watcher."""

from buildnrun.monitor.renderer import StatusRenderer

__all__ = ["StatusRenderer"]
