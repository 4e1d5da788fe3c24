"""buildnrun data models: all Pydantic v2, all frozen (immutable)."""

from buildnrun.models.config import ColorMode, WatchConfig
from buildnrun.models.events import EventKind, FsEvent
from buildnrun.models.states import VALID_TRANSITIONS, LoopState, LoopTransition

__all__ = [
    # config
    "ColorMode",
    "WatchConfig",
    # events
    "EventKind",
    "FsEvent",
    # states
    "LoopState",
    "LoopTransition",
    "VALID_TRANSITIONS",
]
