"""
Submission Service

Coordinates a submission end to end:

    assemble archive → archive to object storage → record item → notify SDES

and owns the status-changing operations that come later (operator retry,
SDES delivery callbacks).

INVARIANTS:
    - An item is only recorded once its archive is stored
    - The notifier is called at most once per submit, after the insert
    - A failed notify leaves the item recorded as Submitted; an external
      re-drive can notify again without re-archiving
    - The scratch directory is removed on every exit path
"""

import asyncio
import logging
import uuid
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable, List, Optional, TypeVar

from .errors import NothingToUpdateError, TransientIOError
from .file_service import FileService
from .item_store import Clock, SubmissionItemStore, utc_now
from .models import ObjectSummary, SubmissionItem, SubmissionItemStatus, SubmissionRequest, SubmissionSummary
from .object_store import ObjectStoreGateway, object_path
from .sdes import DeliveryNotifier

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SdesNotificationType(str, Enum):
    """Delivery-status notifications SDES posts back."""
    FILE_READY = "FileReady"
    FILE_RECEIVED = "FileReceived"
    FILE_PROCESSED = "FileProcessed"
    FILE_PROCESSING_FAILURE = "FileProcessingFailure"


# FileReady only echoes our own notification; it moves nothing
SDES_STATUS_MAP = {
    SdesNotificationType.FILE_RECEIVED: SubmissionItemStatus.FORWARDED,
    SdesNotificationType.FILE_PROCESSED: SubmissionItemStatus.COMPLETED,
    SdesNotificationType.FILE_PROCESSING_FAILURE: SubmissionItemStatus.FAILED,
}


def new_id() -> str:
    return str(uuid.uuid4())


class SubmissionService:
    """
    Core service for the submission lifecycle.

    Collaborators are passed in once at process start (see wiring.py);
    tests pass in-memory implementations.
    """

    def __init__(
        self,
        store: SubmissionItemStore,
        object_store: ObjectStoreGateway,
        notifier: DeliveryNotifier,
        file_service: Optional[FileService] = None,
        clock: Optional[Clock] = None,
        id_factory: Callable[[], str] = new_id,
    ):
        self._store = store
        self._object_store = object_store
        self._notifier = notifier
        self._files = file_service or FileService()
        self._clock = clock or utc_now
        self._new_id = id_factory

    # =========================================================================
    # Submit
    # =========================================================================

    async def submit(
        self,
        request: SubmissionRequest,
        pdf: Path,
        owner: str,
        timeout: Optional[float] = None,
    ) -> str:
        """
        Archive, record and announce a submission.

        Returns the item id once every step has succeeded. timeout bounds the
        archival and notification calls together; running out raises
        TransientIOError.
        """
        item_id = request.id or self._new_id()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None

        async with self._files.working_dir() as work_dir:
            archive = await asyncio.to_thread(
                self._files.create_zip, work_dir, pdf, request.metadata, item_id
            )

            object_summary = await self._bounded(
                self._object_store.put(object_path(owner, item_id), archive),
                deadline,
                "archival",
            )

            item = self._create_item(request, object_summary, item_id, owner)
            # DuplicateItemError propagates; the stored archive is left for reconciliation
            await asyncio.to_thread(self._store.insert, item)

            await self._bounded(
                self._notifier.notify(object_summary, item.sdes_correlation_id),
                deadline,
                "notification",
            )

        logger.info(f"Submission accepted: {owner}/{item_id} (sdes {item.sdes_correlation_id})")
        return item.id

    def _create_item(
        self,
        request: SubmissionRequest,
        object_summary: ObjectSummary,
        item_id: str,
        owner: str,
    ) -> SubmissionItem:
        now = self._clock()
        return SubmissionItem(
            id=item_id,
            owner=owner,
            callback_url=request.callback_url,
            status=SubmissionItemStatus.SUBMITTED,
            object_summary=object_summary,
            sdes_correlation_id=self._new_id(),
            created=now,
            last_updated=now,
            failure_reason=None,
        )

    @staticmethod
    async def _bounded(awaitable: Awaitable[T], deadline: Optional[float], step: str) -> T:
        if deadline is None:
            return await awaitable
        remaining = deadline - asyncio.get_running_loop().time()
        try:
            return await asyncio.wait_for(awaitable, timeout=max(remaining, 0))
        except asyncio.TimeoutError as e:
            logger.error(f"Submission {step} timed out")
            raise TransientIOError(f"{step} timed out") from e

    # =========================================================================
    # Reads
    # =========================================================================

    async def list(self, owner: str) -> List[SubmissionSummary]:
        """Summaries of every item owned by owner."""
        items = await asyncio.to_thread(self._store.list, owner)
        return [item.to_summary() for item in items]

    # =========================================================================
    # Status transitions
    # =========================================================================

    async def retry(self, owner: str, item_id: str) -> SubmissionItem:
        """
        Re-arm a Failed item for delivery.

        Transition: Failed → Submitted, clearing the failure reason. Any other
        current status raises NothingToUpdateError. The archive and record are
        not touched; re-notification is left to the re-drive process.
        """
        item = await asyncio.to_thread(
            self._store.update, owner, item_id, SubmissionItemStatus.SUBMITTED, None
        )
        logger.info(f"Submission retried: {owner}/{item_id}")
        return item

    async def update_status(
        self,
        owner: str,
        item_id: str,
        status: SubmissionItemStatus,
        failure_reason: Optional[str] = None,
    ) -> SubmissionItem:
        """
        Apply a delivery-status change.

        Moving back to Submitted is reserved for retry().
        """
        if status == SubmissionItemStatus.SUBMITTED:
            raise NothingToUpdateError("Nothing to update")
        return await asyncio.to_thread(
            self._store.update, owner, item_id, status, failure_reason
        )

    async def handle_sdes_callback(
        self,
        correlation_id: str,
        notification: SdesNotificationType,
        failure_reason: Optional[str] = None,
    ) -> Optional[SubmissionItem]:
        """
        Apply an SDES delivery-status callback to the item it correlates with.

        Returns the updated item, or None for notifications that carry no
        status change.
        """
        item = await asyncio.to_thread(self._store.get_by_sdes_correlation_id, correlation_id)
        if item is None:
            logger.warning(f"SDES callback for unknown correlation id {correlation_id}")
            raise NothingToUpdateError("Nothing to update")

        status = SDES_STATUS_MAP.get(notification)
        if status is None:
            logger.info(f"SDES {notification.value} acknowledged for {item.owner}/{item.id}")
            return None

        reason = failure_reason if status == SubmissionItemStatus.FAILED else None
        return await self.update_status(item.owner, item.id, status, reason)

    async def aclose(self) -> None:
        """Release collaborator connections at process shutdown."""
        await self._notifier.aclose()
