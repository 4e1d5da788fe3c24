"""Supervision loop state models: the rebuild/restart cycle."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class LoopState(str, Enum):
    """States of the supervision loop."""

    IDLE = "idle"
    BUILDING = "building"
    SPAWNING = "spawning"
    WAITING = "waiting"


# Valid state transitions: enforced by LoopStateMachine.
# There is no terminal state; the loop runs until the process is signalled.
VALID_TRANSITIONS: dict[LoopState, set[LoopState]] = {
    LoopState.IDLE: {LoopState.BUILDING},
    LoopState.BUILDING: {LoopState.SPAWNING, LoopState.WAITING},
    LoopState.SPAWNING: {LoopState.WAITING},
    LoopState.WAITING: {LoopState.IDLE},
}


class LoopTransition(BaseModel):
    """Records a single loop state transition."""

    model_config = ConfigDict(frozen=True)

    cycle: int
    from_state: LoopState
    to_state: LoopState
    reason: str = ""
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
