"""Supervision loop state machine.

Enforces the VALID_TRANSITIONS table and keeps an in-memory history of
every transition, tagged with the rebuild cycle it belongs to.
"""

from __future__ import annotations

from buildnrun.models.states import VALID_TRANSITIONS, LoopState, LoopTransition


class InvalidTransitionError(RuntimeError):
    """Raised when a requested state transition is not valid."""


class LoopStateMachine:
    """Tracks the current loop state.

    Parameters
    ----------
    history_limit:
        Maximum number of transitions kept; oldest entries are dropped.
        ``None`` keeps everything.
    """

    def __init__(self, history_limit: int | None = 1000) -> None:
        self._state = LoopState.IDLE
        self._cycle = 0
        self._history: list[LoopTransition] = []
        self._history_limit = history_limit

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def cycle(self) -> int:
        """Number of times the loop has left IDLE."""
        return self._cycle

    @property
    def history(self) -> list[LoopTransition]:
        return list(self._history)

    def transition(self, target: LoopState, reason: str = "") -> LoopTransition:
        """Move to *target*, recording the transition.

        Entering BUILDING starts a new cycle.
        """
        allowed = self.get_available_transitions()
        if target not in allowed:
            raise InvalidTransitionError(
                f"Cannot transition from {self._state.value} to {target.value}. "
                f"Allowed: {sorted(s.value for s in allowed)}"
            )
        if target == LoopState.BUILDING:
            self._cycle += 1

        entry = LoopTransition(
            cycle=self._cycle,
            from_state=self._state,
            to_state=target,
            reason=reason,
        )
        self._state = target
        self._history.append(entry)
        if self._history_limit is not None and len(self._history) > self._history_limit:
            del self._history[: len(self._history) - self._history_limit]
        return entry

    def get_available_transitions(self) -> set[LoopState]:
        """Return the set of valid target states from the current state."""
        return set(VALID_TRANSITIONS.get(self._state, set()))
