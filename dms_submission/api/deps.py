"""
API Dependencies
"""

from fastapi import Request

from dms_submission.submission.service import SubmissionService


def get_submission_service(request: Request) -> SubmissionService:
    """The service instance wired into the app at startup."""
    return request.app.state.submission_service
