"""Exception handlers translating domain errors into plain-text responses.

Client input errors come back as 400 with their reason. Persistence and
unexpected errors come back as 500 with a fixed message; the cause is logged
server-side and never echoed to the caller.
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from checklist_service.logic.repository_checklists import PersistenceError
from checklist_service.logic.validation import SubmissionRejected, describe_errors

logger = logging.getLogger(__name__)

PERSISTENCE_FAILURE_MESSAGE = "failed to save checklist"
UNEXPECTED_FAILURE_MESSAGE = "internal server error"

_STATUS_TEXT = {
    404: "not found",
    405: "method not allowed",
}


async def handle_submission_rejected(request: Request, exc: SubmissionRejected) -> PlainTextResponse:
    logger.info("submission_rejected path=%s reason=%s", request.url.path, exc.reason)
    return PlainTextResponse(exc.reason, status_code=400)


async def handle_persistence_error(request: Request, exc: PersistenceError) -> PlainTextResponse:
    # Detail was logged with the traceback by the writer
    logger.error("submission_persistence_failed path=%s stage=%s", request.url.path, exc.stage)
    return PlainTextResponse(PERSISTENCE_FAILURE_MESSAGE, status_code=500)


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> PlainTextResponse:
    status_code = int(getattr(exc, "status_code", 500) or 500)
    detail = getattr(exc, "detail", None)
    if not isinstance(detail, str) or not detail or detail == "Method Not Allowed" or detail == "Not Found":
        detail = _STATUS_TEXT.get(status_code, "error")
    headers = getattr(exc, "headers", None)
    return PlainTextResponse(detail, status_code=status_code, headers=dict(headers) if headers else None)


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> PlainTextResponse:
    try:
        reason = describe_errors(exc)  # type: ignore[arg-type]
    except (AttributeError, TypeError, KeyError):
        reason = "request validation failed"
    return PlainTextResponse(f"invalid request: {reason}", status_code=400)


async def handle_unexpected_error(request: Request, exc: Exception) -> PlainTextResponse:
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return PlainTextResponse(UNEXPECTED_FAILURE_MESSAGE, status_code=500)


__all__ = [
    "PERSISTENCE_FAILURE_MESSAGE",
    "UNEXPECTED_FAILURE_MESSAGE",
    "handle_http_exception",
    "handle_persistence_error",
    "handle_request_validation_error",
    "handle_submission_rejected",
    "handle_unexpected_error",
]
