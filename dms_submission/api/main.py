"""
FastAPI Gateway

HTTP surface for document submission, the admin listing/retry endpoints and
SDES delivery callbacks.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from dms_submission import __version__
from dms_submission.api.contracts.v1 import SubmissionFailureV1
from dms_submission.api.routes import admin, sdes, submissions
from dms_submission.submission.errors import (
    DuplicateItemError,
    NothingToUpdateError,
    SubmissionValidationError,
    TransientIOError,
)
from dms_submission.submission.service import SubmissionService

logger = logging.getLogger(__name__)


async def _validation_error(request: Request, exc: SubmissionValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content=SubmissionFailureV1(errors=exc.errors).model_dump())


async def _nothing_to_update(request: Request, exc: NothingToUpdateError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": "Not found"})


async def _server_error(request: Request, exc: Exception) -> JSONResponse:
    # Do not leak internals
    logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app(service: Optional[SubmissionService] = None) -> FastAPI:
    """
    Build the application around a SubmissionService.

    Without an explicit service, collaborators are built from config.
    """
    if service is None:
        from dms_submission.wiring import build_submission_service
        service = build_submission_service()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        logger.info("DMS Submission API shutting down")
        await service.aclose()

    app = FastAPI(
        title="DMS Submission API",
        description="Document submission, tracking and SDES delivery handoff",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.submission_service = service

    app.add_exception_handler(SubmissionValidationError, _validation_error)
    app.add_exception_handler(NothingToUpdateError, _nothing_to_update)
    app.add_exception_handler(DuplicateItemError, _server_error)
    app.add_exception_handler(TransientIOError, _server_error)

    app.include_router(submissions.router)
    app.include_router(admin.router)
    app.include_router(sdes.router)

    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
        }

    return app


if __name__ == "__main__":
    from dms_submission.config import config
    from dms_submission.utils.logging_setup import setup_logging
    setup_logging()
    import uvicorn
    uvicorn.run(
        "dms_submission.api.main:create_app",
        factory=True,
        host=config.api.host,
        port=config.api.port,
        reload=config.api.debug,
    )
