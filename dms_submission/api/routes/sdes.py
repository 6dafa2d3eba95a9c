"""
SDES Callback Route

SDES reports delivery progress here, keyed by the correlation id it was
given in the file-ready notification.
"""

import logging

from fastapi import APIRouter, Depends, Response

from dms_submission.api.contracts.v1 import SdesCallbackV1
from dms_submission.api.deps import get_submission_service
from dms_submission.submission.service import SubmissionService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["sdes"])


@router.post("/sdes/callback")
async def sdes_callback(
    callback: SdesCallbackV1,
    service: SubmissionService = Depends(get_submission_service),
):
    logger.info(
        f"SDES callback {callback.notification.value} for {callback.filename} "
        f"(correlation {callback.correlation_id})"
    )
    await service.handle_sdes_callback(
        callback.correlation_id,
        callback.notification,
        callback.failure_reason,
    )
    return Response(status_code=200)
