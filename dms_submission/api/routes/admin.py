"""
Submission Admin Routes

Listing and retry, scoped to the owner named in the path.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends

from dms_submission.api.auth.context import AuthContextV1, get_auth_context, require_permission
from dms_submission.api.contracts.v1 import SubmissionSummaryV1
from dms_submission.api.deps import get_submission_service
from dms_submission.submission.service import SubmissionService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["admin"])


@router.get(
    "/{owner}/submissions",
    response_model=List[SubmissionSummaryV1],
    response_model_by_alias=True,
)
async def list_submissions(
    owner: str,
    context: AuthContextV1 = Depends(get_auth_context),
    service: SubmissionService = Depends(get_submission_service),
):
    require_permission(context, owner, "READ")
    summaries = await service.list(owner)
    return [SubmissionSummaryV1.from_summary(s) for s in summaries]


@router.post(
    "/{owner}/submissions/{item_id}/retry",
    status_code=202,
    response_model=SubmissionSummaryV1,
    response_model_by_alias=True,
)
async def retry_submission(
    owner: str,
    item_id: str,
    context: AuthContextV1 = Depends(get_auth_context),
    service: SubmissionService = Depends(get_submission_service),
):
    """Move a Failed item back to Submitted. 404 for anything else."""
    require_permission(context, owner, "WRITE")
    item = await service.retry(owner, item_id)
    logger.info(f"{context.principal} retried {owner}/{item_id}")
    return SubmissionSummaryV1.from_summary(item.to_summary())
