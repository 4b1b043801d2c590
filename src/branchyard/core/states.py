"""Worktree lifecycle states and the transitions allowed between them."""

from enum import Enum

from branchyard.core.errors import IllegalTransition


class WorktreeState(Enum):
    ABSENT = "absent"
    CREATING = "creating"
    ACTIVE = "active"
    REMOVING = "removing"
    RETARGETING = "retargeting"
    CONFLICTED = "conflicted"


ALLOWED_TRANSITIONS: dict[WorktreeState, frozenset[WorktreeState]] = {
    WorktreeState.ABSENT: frozenset({WorktreeState.CREATING}),
    WorktreeState.CREATING: frozenset({WorktreeState.ACTIVE, WorktreeState.ABSENT}),
    WorktreeState.ACTIVE: frozenset({WorktreeState.REMOVING, WorktreeState.RETARGETING}),
    WorktreeState.RETARGETING: frozenset({WorktreeState.ACTIVE, WorktreeState.CONFLICTED}),
    WorktreeState.CONFLICTED: frozenset({WorktreeState.ACTIVE, WorktreeState.REMOVING}),
    WorktreeState.REMOVING: frozenset({WorktreeState.ABSENT, WorktreeState.ACTIVE}),
}


def can_transition(current: WorktreeState, target: WorktreeState) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


def check_transition(branch: str, current: WorktreeState, target: WorktreeState) -> None:
    """Fail fast on any transition the lifecycle does not document.

    CREATING -> ABSENT and REMOVING -> ACTIVE are the rollback edges taken when
    the version-control step of a create or remove fails.

    Raises:
        IllegalTransition: If `current -> target` is not an allowed edge
    """
    if not can_transition(current, target):
        raise IllegalTransition(branch, current.value, target.value)
