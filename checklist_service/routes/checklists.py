"""Checklist submission route.

POST /api/checklist accepts one completed checklist, normalizes it and stores
it atomically. Any other method on the same path is answered with 405.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from checklist_service.config import ChecklistConfig
from checklist_service.logic.normalization import normalize_submission
from checklist_service.logic.repository_checklists import ChecklistWriter
from checklist_service.logic.validation import parse_submission
from checklist_service.models.checklist import ChecklistCreated

router = APIRouter()
logger = logging.getLogger(__name__)


def get_checklist_writer(request: Request) -> ChecklistWriter:
    return request.app.state.checklist_writer


def get_checklist_config(request: Request) -> ChecklistConfig:
    return request.app.state.checklist_config


@router.post(
    "/checklist",
    status_code=201,
    response_model=ChecklistCreated,
    summary="Store a completed checklist",
)
async def create_checklist(
    request: Request,
    writer: ChecklistWriter = Depends(get_checklist_writer),
    settings: ChecklistConfig = Depends(get_checklist_config),
) -> JSONResponse:
    """Validate, normalize and persist one checklist; respond with its id.

    Validation failures raise SubmissionRejected (400). Storage failures raise
    PersistenceError (500). Both are rendered by the handlers in
    `checklist_service.http.errors`.
    """
    body = await request.body()
    submission = parse_submission(body)
    record = normalize_submission(
        submission,
        tz=settings.tz,
        allowed_values=frozenset(settings.allowed_values),
    )
    # Blocking DB round-trips run on the worker pool, not the event loop
    checklist_id = await run_in_threadpool(writer.save, record)
    return JSONResponse({"id": checklist_id}, status_code=201)


@router.api_route(
    "/checklist",
    methods=["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS"],
    include_in_schema=False,
)
def checklist_method_not_allowed() -> None:
    raise HTTPException(status_code=405, detail="method not allowed", headers={"Allow": "POST"})


__all__ = ["router", "create_checklist", "get_checklist_writer", "get_checklist_config"]
