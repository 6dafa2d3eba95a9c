"""
Submission Routes
"""

import logging
import tempfile
from pathlib import Path

from fastapi import APIRouter, Depends, Request

from dms_submission.api.auth.context import AuthContextV1, get_auth_context, require_permission
from dms_submission.api.contracts.v1 import SubmissionSuccessV1
from dms_submission.api.deps import get_submission_service
from dms_submission.api.forms import bind_submission_form
from dms_submission.config import config
from dms_submission.submission.service import SubmissionService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["submission"])


@router.post("/submit", status_code=202, response_model=SubmissionSuccessV1)
async def submit(
    request: Request,
    context: AuthContextV1 = Depends(get_auth_context),
    service: SubmissionService = Depends(get_submission_service),
):
    """Accept a PDF plus metadata; the caller becomes the item's owner."""
    require_permission(context, "submit", "WRITE")

    form = await request.form()
    submission, upload = bind_submission_form(form)

    with tempfile.TemporaryDirectory(prefix="dms-upload-") as upload_dir:
        pdf = Path(upload_dir) / "upload.pdf"
        pdf.write_bytes(await upload.read())
        item_id = await service.submit(
            submission,
            pdf,
            owner=context.principal,
            timeout=config.submission.request_timeout_seconds,
        )

    return SubmissionSuccessV1(id=item_id)
