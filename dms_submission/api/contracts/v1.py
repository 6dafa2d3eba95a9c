"""
v1 API Contracts
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from dms_submission.submission.models import SubmissionItemStatus, SubmissionSummary
from dms_submission.submission.service import SdesNotificationType


class SubmissionSuccessV1(BaseModel):
    """Accepted submission."""
    model_config = ConfigDict(extra="forbid")

    id: str


class SubmissionFailureV1(BaseModel):
    """Rejected submission: one "field: message" entry per violated field."""
    model_config = ConfigDict(extra="forbid")

    errors: List[str]


class SubmissionSummaryV1(BaseModel):
    """Admin listing row."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    id: str
    status: SubmissionItemStatus
    failure_reason: Optional[str] = Field(default=None, alias="failureReason")
    last_updated: datetime = Field(alias="lastUpdated")

    @classmethod
    def from_summary(cls, summary: SubmissionSummary) -> "SubmissionSummaryV1":
        return cls(
            id=summary.id,
            status=summary.status,
            failure_reason=summary.failure_reason,
            last_updated=summary.last_updated,
        )


class SdesCallbackV1(BaseModel):
    """Delivery-status callback posted by SDES."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    notification: SdesNotificationType
    filename: str
    correlation_id: str = Field(alias="correlationID")
    failure_reason: Optional[str] = Field(default=None, alias="failureReason")
