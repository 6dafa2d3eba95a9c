"""
Submission Errors

NothingToUpdateError deliberately covers both "no such item for this owner"
and "transition not allowed from the current status" so callers cannot probe
for other owners' items.
"""

from typing import List


class SubmissionError(Exception):
    """Base class for submission pipeline failures."""
    pass


class SubmissionValidationError(SubmissionError):
    """Raised with every violated field, never just the first."""

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = list(errors)


class DuplicateItemError(SubmissionError):
    """Raised when (owner, id) already exists."""

    def __init__(self, owner: str, item_id: str):
        super().__init__(f"Submission item already exists: {owner}/{item_id}")
        self.owner = owner
        self.item_id = item_id


class NothingToUpdateError(SubmissionError):
    """Raised when no item matched the conditional update."""
    pass


class TransientIOError(SubmissionError):
    """Archival or notification endpoint unreachable; safe to retry the whole call."""
    pass
