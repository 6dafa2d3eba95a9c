"""Shared fixtures: a stepping clock, sample requests and in-memory collaborators."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from dms_submission.submission.file_service import FileService
from dms_submission.submission.item_store import InMemorySubmissionItemStore
from dms_submission.submission.models import (
    ObjectSummary,
    SubmissionItem,
    SubmissionItemStatus,
    SubmissionMetadata,
    SubmissionRequest,
)
from dms_submission.submission.object_store import InMemoryObjectStoreGateway
from dms_submission.submission.sdes import RecordingNotifier
from dms_submission.submission.service import SubmissionService

T0 = datetime(2022, 2, 1, 12, 0, 0, tzinfo=timezone.utc)


class SteppingClock:
    """Advances one second per reading."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


@pytest.fixture
def clock():
    return SteppingClock()


@pytest.fixture
def store(clock):
    return InMemorySubmissionItemStore(clock=clock)


@pytest.fixture
def object_store():
    return InMemoryObjectStoreGateway()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def file_service(tmp_path):
    root = tmp_path / "work"
    root.mkdir()
    return FileService(str(root))


@pytest.fixture
def service(store, object_store, notifier, file_service, clock):
    return SubmissionService(
        store=store,
        object_store=object_store,
        notifier=notifier,
        file_service=file_service,
        clock=clock,
    )


@pytest.fixture
def metadata():
    return SubmissionMetadata(
        store=True,
        source="api-tests",
        time_of_receipt=datetime(2022, 2, 1, 0, 0, 0, tzinfo=timezone.utc),
        form_id="form",
        number_of_pages=1,
        customer_id="customerId",
        submission_mark="submissionMark",
        cas_key="casKey",
        classification_type="classificationType",
        business_area="businessArea",
    )


@pytest.fixture
def submission_request(metadata):
    return SubmissionRequest(callback_url="http://localhost/callback", metadata=metadata)


@pytest.fixture
def pdf(tmp_path) -> Path:
    path = tmp_path / "test.pdf"
    path.write_bytes(b"%PDF-1.4\n% test document\n")
    return path


def make_item(
    item_id: str = "id",
    owner: str = "owner",
    status: SubmissionItemStatus = SubmissionItemStatus.SUBMITTED,
    failure_reason=None,
    sdes_correlation_id: str = "sdesCorrelationId",
) -> SubmissionItem:
    return SubmissionItem(
        id=item_id,
        owner=owner,
        callback_url="http://localhost/callback",
        status=status,
        object_summary=ObjectSummary(
            location=f"s3://bucket/{owner}/{item_id}",
            content_length=1337,
            content_md5="hash",
            last_modified=T0,
        ),
        sdes_correlation_id=sdes_correlation_id,
        created=T0,
        last_updated=T0,
        failure_reason=failure_reason,
    )
