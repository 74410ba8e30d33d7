"""APIRouter registration for the checklist service."""

from __future__ import annotations

from fastapi import APIRouter

from checklist_service.routes.checklists import router as checklists_router

api_router = APIRouter()
api_router.include_router(checklists_router, tags=["Checklists"])

__all__ = ["api_router"]
