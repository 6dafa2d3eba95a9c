"""
CLI Wiring

One SubmissionService per CLI process. Tests inject their own via set_service.
"""

from typing import Optional

from dms_submission.submission.service import SubmissionService

_service: Optional[SubmissionService] = None


def get_service() -> SubmissionService:
    global _service
    if _service is None:
        from dms_submission.wiring import build_submission_service
        _service = build_submission_service()
    return _service


def set_service(service: Optional[SubmissionService]) -> None:
    global _service
    _service = service
