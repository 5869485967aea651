"""Workspace progress states and the forward-only transition table."""

from __future__ import annotations

from enum import StrEnum


class ProgressState(StrEnum):
    INITIAL = "INITIAL"
    WAITING_TASKS = "WAITING_TASKS"
    TASKS_CREATED = "TASKS_CREATED"
    COMPLETED = "COMPLETED"


ALLOWED_TRANSITIONS: dict[ProgressState, frozenset[ProgressState]] = {
    ProgressState.INITIAL: frozenset({ProgressState.WAITING_TASKS}),
    ProgressState.WAITING_TASKS: frozenset({ProgressState.TASKS_CREATED}),
    ProgressState.TASKS_CREATED: frozenset({ProgressState.COMPLETED}),
    ProgressState.COMPLETED: frozenset(),
}


def allowed_targets(current: ProgressState | str) -> frozenset[ProgressState]:
    return ALLOWED_TRANSITIONS[ProgressState(current)]


def can_transition(current: ProgressState | str, target: ProgressState | str) -> bool:
    """Return ``True`` if ``current -> target`` is in the transition table."""

    return ProgressState(target) in allowed_targets(current)


def is_terminal(state: ProgressState | str) -> bool:
    return not allowed_targets(state)


__all__ = [
    "ALLOWED_TRANSITIONS",
    "ProgressState",
    "allowed_targets",
    "can_transition",
    "is_terminal",
]
