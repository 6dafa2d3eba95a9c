"""
Submission Models

SubmissionItem is the tracked record of one document submission.
SubmissionRequest / SubmissionMetadata are the validated inbound form.
"""

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SubmissionItemStatus(str, Enum):
    """Submission item lifecycle states."""
    SUBMITTED = "Submitted"
    FORWARDED = "Forwarded"
    COMPLETED = "Completed"
    FAILED = "Failed"


@dataclass(frozen=True)
class ObjectSummary:
    """Immutable descriptor of an archived blob."""
    location: str
    content_length: int
    content_md5: str
    last_modified: datetime


@dataclass(frozen=True)
class SubmissionItem:
    """
    A submission item record.

    Frozen: the store hands out snapshots, only the store produces new ones.
    """
    id: str
    owner: str
    callback_url: str
    status: SubmissionItemStatus
    object_summary: ObjectSummary
    sdes_correlation_id: str
    created: datetime
    last_updated: datetime
    failure_reason: Optional[str] = None

    def with_status(
        self,
        status: SubmissionItemStatus,
        failure_reason: Optional[str],
        last_updated: datetime,
    ) -> "SubmissionItem":
        # failure_reason only survives on Failed
        if status != SubmissionItemStatus.FAILED:
            failure_reason = None
        return replace(self, status=status, failure_reason=failure_reason, last_updated=last_updated)

    def to_summary(self) -> "SubmissionSummary":
        return SubmissionSummary(
            id=self.id,
            status=self.status,
            failure_reason=self.failure_reason,
            last_updated=self.last_updated,
        )


@dataclass(frozen=True)
class SubmissionSummary:
    """Admin listing read-model."""
    id: str
    status: SubmissionItemStatus
    failure_reason: Optional[str]
    last_updated: datetime


class SubmissionMetadata(BaseModel):
    """Metadata describing the submitted form, rendered into the archive manifest."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    store: bool
    source: str
    time_of_receipt: datetime = Field(alias="timeOfReceipt")
    form_id: str = Field(alias="formId")
    number_of_pages: int = Field(alias="numberOfPages")
    customer_id: str = Field(alias="customerId")
    submission_mark: str = Field(alias="submissionMark")
    cas_key: str = Field(alias="casKey")
    classification_type: str = Field(alias="classificationType")
    business_area: str = Field(alias="businessArea")


class SubmissionRequest(BaseModel):
    """A validated submission: everything except the file itself."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    id: Optional[str] = None
    callback_url: str = Field(alias="callbackUrl")
    metadata: SubmissionMetadata
