"""FastAPI application package for the checklist intake service.

Exposes the application factory. A single endpoint, POST /api/checklist,
validates a completed assessment checklist and stores it with its answers in
one transaction. Business logic lives in `checklist_service/logic/` and route
handlers in `checklist_service/routes/`.
"""

from __future__ import annotations

from checklist_service.main import create_app

__all__ = ["create_app"]
