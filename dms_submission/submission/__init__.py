"""
Submission Lifecycle

Item store, state machine, archival/notification collaborators and the
orchestrating SubmissionService.
"""

from .errors import (
    DuplicateItemError,
    NothingToUpdateError,
    SubmissionError,
    SubmissionValidationError,
    TransientIOError,
)
from .item_store import InMemorySubmissionItemStore, SubmissionItemStore, TypeDBSubmissionItemStore
from .models import (
    ObjectSummary,
    SubmissionItem,
    SubmissionItemStatus,
    SubmissionMetadata,
    SubmissionRequest,
    SubmissionSummary,
)
from .service import SubmissionService
from .transitions import ALLOWED_TRANSITIONS, TERMINAL_STATES, is_transition_allowed

__all__ = [
    "SubmissionError",
    "SubmissionValidationError",
    "DuplicateItemError",
    "NothingToUpdateError",
    "TransientIOError",
    "SubmissionItemStore",
    "InMemorySubmissionItemStore",
    "TypeDBSubmissionItemStore",
    "ObjectSummary",
    "SubmissionItem",
    "SubmissionItemStatus",
    "SubmissionMetadata",
    "SubmissionRequest",
    "SubmissionSummary",
    "SubmissionService",
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATES",
    "is_transition_allowed",
]
