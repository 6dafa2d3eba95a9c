"""
Unit Tests: SubmissionService

- submit archives, records exactly one Submitted item and notifies once
- archival failure records nothing and never notifies
- notification failure leaves the item recorded as Submitted
- the scratch directory is removed on every exit path
- retry only works from Failed
- SDES callbacks drive the delivery states
"""

import asyncio
import zipfile
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from conftest import T0, make_item
from dms_submission.submission.errors import (
    DuplicateItemError,
    NothingToUpdateError,
    TransientIOError,
)
from dms_submission.submission.models import SubmissionItemStatus, SubmissionSummary
from dms_submission.submission.service import SdesNotificationType, SubmissionService


def _work_dirs(file_service):
    return list(Path(file_service.work_dir_root).iterdir())


class TestSubmit:

    @pytest.mark.asyncio
    async def test_submit_records_item_and_notifies_once(
        self, service, store, notifier, object_store, submission_request, pdf
    ):
        item_id = await service.submit(submission_request, pdf, owner="test-service")

        item = store.get("test-service", item_id)
        assert item is not None
        assert item.status == SubmissionItemStatus.SUBMITTED
        assert item.failure_reason is None
        assert item.callback_url == "http://localhost/callback"
        assert len(store.list("test-service")) == 1

        assert len(notifier.notifications) == 1
        notified_summary, correlation_id = notifier.notifications[0]
        assert correlation_id == item.sdes_correlation_id
        assert notified_summary == item.object_summary
        assert f"test-service/{item_id}" in object_store.objects

    @pytest.mark.asyncio
    async def test_submit_uses_caller_supplied_id(self, service, store, submission_request, pdf):
        request = submission_request.model_copy(update={"id": "my-id"})
        assert await service.submit(request, pdf, owner="owner") == "my-id"
        assert store.get("owner", "my-id") is not None

    @pytest.mark.asyncio
    async def test_generated_ids_are_distinct_from_correlation_id(
        self, service, store, submission_request, pdf
    ):
        item_id = await service.submit(submission_request, pdf, owner="owner")
        item = store.get("owner", item_id)
        assert item.sdes_correlation_id != item_id

    @pytest.mark.asyncio
    async def test_archive_contains_pdf_and_manifest(
        self, service, object_store, submission_request, pdf, tmp_path
    ):
        item_id = await service.submit(submission_request, pdf, owner="owner")

        data, _ = object_store.objects[f"owner/{item_id}"]
        archive_path = tmp_path / "archived.zip"
        archive_path.write_bytes(data)
        with zipfile.ZipFile(archive_path) as archive:
            assert sorted(archive.namelist()) == ["iform.pdf", "metadata.xml"]
            assert archive.read("iform.pdf") == pdf.read_bytes()
            assert item_id.encode() in archive.read("metadata.xml")

    @pytest.mark.asyncio
    async def test_archival_failure_records_nothing(
        self, store, notifier, file_service, submission_request, pdf
    ):
        object_store = MagicMock()
        object_store.put = AsyncMock(side_effect=TransientIOError("unreachable"))
        service = SubmissionService(store, object_store, notifier, file_service)

        with pytest.raises(TransientIOError):
            await service.submit(submission_request, pdf, owner="owner")

        assert store.list("owner") == []
        assert notifier.notifications == []
        assert _work_dirs(file_service) == []

    @pytest.mark.asyncio
    async def test_duplicate_id_fails_without_notifying(
        self, service, store, notifier, submission_request, pdf
    ):
        store.insert(make_item(item_id="dup", owner="owner"))
        request = submission_request.model_copy(update={"id": "dup"})

        with pytest.raises(DuplicateItemError):
            await service.submit(request, pdf, owner="owner")

        assert notifier.notifications == []
        assert store.get("owner", "dup").sdes_correlation_id == "sdesCorrelationId"

    @pytest.mark.asyncio
    async def test_notification_failure_keeps_item_submitted(
        self, store, object_store, file_service, submission_request, pdf
    ):
        notifier = MagicMock()
        notifier.notify = AsyncMock(side_effect=TransientIOError("sdes down"))
        service = SubmissionService(store, object_store, notifier, file_service)
        request = submission_request.model_copy(update={"id": "kept"})

        with pytest.raises(TransientIOError):
            await service.submit(request, pdf, owner="owner")

        item = store.get("owner", "kept")
        assert item.status == SubmissionItemStatus.SUBMITTED
        notifier.notify.assert_awaited_once_with(item.object_summary, item.sdes_correlation_id)
        assert _work_dirs(file_service) == []

    @pytest.mark.asyncio
    async def test_work_dir_removed_after_success(self, service, file_service, submission_request, pdf):
        await service.submit(submission_request, pdf, owner="owner")
        assert _work_dirs(file_service) == []

    @pytest.mark.asyncio
    async def test_archival_timeout_is_transient(
        self, store, notifier, file_service, submission_request, pdf
    ):
        async def slow_put(path, file_path):
            await asyncio.sleep(10)

        object_store = MagicMock()
        object_store.put = slow_put
        service = SubmissionService(store, object_store, notifier, file_service)

        with pytest.raises(TransientIOError):
            await service.submit(submission_request, pdf, owner="owner", timeout=0.05)

        assert store.list("owner") == []
        assert notifier.notifications == []
        assert _work_dirs(file_service) == []

    @pytest.mark.asyncio
    async def test_cancellation_still_removes_work_dir(
        self, store, notifier, file_service, submission_request, pdf
    ):
        started = asyncio.Event()

        async def hanging_put(path, file_path):
            started.set()
            await asyncio.sleep(10)

        object_store = MagicMock()
        object_store.put = hanging_put
        service = SubmissionService(store, object_store, notifier, file_service)

        task = asyncio.create_task(service.submit(submission_request, pdf, owner="owner"))
        await started.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert _work_dirs(file_service) == []


class TestList:

    @pytest.mark.asyncio
    async def test_list_returns_summaries(self, service, store):
        store.insert(make_item(item_id="id", owner="owner"))

        assert await service.list("owner") == [
            SubmissionSummary(
                id="id",
                status=SubmissionItemStatus.SUBMITTED,
                failure_reason=None,
                last_updated=T0,
            )
        ]


class TestRetry:

    @pytest.mark.asyncio
    async def test_retry_moves_failed_to_submitted(self, service, store):
        store.insert(make_item(status=SubmissionItemStatus.FAILED, failure_reason="bad"))

        item = await service.retry("owner", "id")

        assert item.status == SubmissionItemStatus.SUBMITTED
        assert item.failure_reason is None
        assert item.last_updated > T0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status",
        [
            SubmissionItemStatus.SUBMITTED,
            SubmissionItemStatus.FORWARDED,
            SubmissionItemStatus.COMPLETED,
        ],
    )
    async def test_retry_rejected_unless_failed(self, service, store, status):
        original = make_item(status=status)
        store.insert(original)

        with pytest.raises(NothingToUpdateError):
            await service.retry("owner", "id")

        assert store.get("owner", "id") == original

    @pytest.mark.asyncio
    async def test_retry_unknown_id(self, service, store):
        with pytest.raises(NothingToUpdateError):
            await service.retry("owner", "missing")
        assert store.list("owner") == []

    @pytest.mark.asyncio
    async def test_retry_does_not_renotify(self, service, store, notifier):
        store.insert(make_item(status=SubmissionItemStatus.FAILED, failure_reason="bad"))
        await service.retry("owner", "id")
        assert notifier.notifications == []


class TestStatusUpdates:

    @pytest.mark.asyncio
    async def test_update_status_cannot_resubmit(self, service, store):
        store.insert(make_item(status=SubmissionItemStatus.FAILED, failure_reason="bad"))
        with pytest.raises(NothingToUpdateError):
            await service.update_status("owner", "id", SubmissionItemStatus.SUBMITTED)
        assert store.get("owner", "id").status == SubmissionItemStatus.FAILED

    @pytest.mark.asyncio
    async def test_sdes_callbacks_drive_delivery(self, service, store):
        store.insert(make_item(sdes_correlation_id="corr"))

        forwarded = await service.handle_sdes_callback("corr", SdesNotificationType.FILE_RECEIVED)
        assert forwarded.status == SubmissionItemStatus.FORWARDED

        completed = await service.handle_sdes_callback("corr", SdesNotificationType.FILE_PROCESSED)
        assert completed.status == SubmissionItemStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_sdes_failure_records_reason(self, service, store):
        store.insert(make_item(sdes_correlation_id="corr"))

        failed = await service.handle_sdes_callback(
            "corr", SdesNotificationType.FILE_PROCESSING_FAILURE, "checksum mismatch"
        )

        assert failed.status == SubmissionItemStatus.FAILED
        assert failed.failure_reason == "checksum mismatch"

    @pytest.mark.asyncio
    async def test_file_ready_is_acknowledged_without_transition(self, service, store):
        original = make_item(sdes_correlation_id="corr")
        store.insert(original)

        assert await service.handle_sdes_callback("corr", SdesNotificationType.FILE_READY) is None
        assert store.get("owner", "id") == original

    @pytest.mark.asyncio
    async def test_unknown_correlation_id(self, service):
        with pytest.raises(NothingToUpdateError):
            await service.handle_sdes_callback("nope", SdesNotificationType.FILE_PROCESSED)

    @pytest.mark.asyncio
    async def test_out_of_order_callback_rejected(self, service, store):
        store.insert(make_item(sdes_correlation_id="corr"))
        with pytest.raises(NothingToUpdateError):
            await service.handle_sdes_callback("corr", SdesNotificationType.FILE_PROCESSED)
        assert store.get("owner", "id").status == SubmissionItemStatus.SUBMITTED


@pytest.mark.asyncio
async def test_aclose_closes_notifier(store, object_store, file_service):
    notifier = MagicMock()
    notifier.aclose = AsyncMock()
    service = SubmissionService(store, object_store, notifier, file_service)

    await service.aclose()

    notifier.aclose.assert_awaited_once()
