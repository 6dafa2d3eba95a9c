"""
Submission Item State Machine

    Submitted → Forwarded → Completed
        │           │
        └──→ Failed ←┘
               │
               └──→ Submitted   (administrative retry)

Completed is terminal. Failed is terminal until an operator retries it.
"""

import logging
from typing import Dict, FrozenSet, Set

from .errors import NothingToUpdateError
from .models import SubmissionItemStatus

logger = logging.getLogger(__name__)


# Allowed transitions (from -> set of to states)
ALLOWED_TRANSITIONS: Dict[SubmissionItemStatus, FrozenSet[SubmissionItemStatus]] = {
    SubmissionItemStatus.SUBMITTED: frozenset({
        SubmissionItemStatus.FORWARDED,
        SubmissionItemStatus.FAILED,  # immediate rejection reported by SDES
    }),
    SubmissionItemStatus.FORWARDED: frozenset({
        SubmissionItemStatus.COMPLETED,
        SubmissionItemStatus.FAILED,
    }),
    SubmissionItemStatus.FAILED: frozenset({
        SubmissionItemStatus.SUBMITTED,  # retry only
    }),
    SubmissionItemStatus.COMPLETED: frozenset(),
}

TERMINAL_STATES: Set[SubmissionItemStatus] = {
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
}


def is_transition_allowed(
    from_status: SubmissionItemStatus,
    to_status: SubmissionItemStatus,
) -> bool:
    """True if from_status → to_status is an edge of the state machine."""
    return to_status in ALLOWED_TRANSITIONS.get(from_status, frozenset())


def allowed_predecessors(to_status: SubmissionItemStatus) -> FrozenSet[SubmissionItemStatus]:
    """Every status from which to_status may be reached."""
    return frozenset(
        from_status
        for from_status, targets in ALLOWED_TRANSITIONS.items()
        if to_status in targets
    )


def assert_transition_allowed(
    from_status: SubmissionItemStatus,
    to_status: SubmissionItemStatus,
) -> None:
    """
    Raise NothingToUpdateError if the transition is not allowed.

    The message is the same one used for a missing item.
    """
    if not is_transition_allowed(from_status, to_status):
        logger.warning(f"Rejected transition {from_status.value} → {to_status.value}")
        raise NothingToUpdateError("Nothing to update")
