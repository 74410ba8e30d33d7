"""Shape validation for checklist submissions.

Decodes the raw request body and checks it against `ChecklistSubmission`.
Every failure raises `SubmissionRejected` carrying a human-readable reason;
the HTTP layer turns it into a 400 response. Nothing here touches the
database.
"""

from __future__ import annotations

import json
from typing import Any, Iterable

from pydantic import ValidationError as PydanticValidationError

from checklist_service.models.checklist import ChecklistSubmission


class SubmissionRejected(ValueError):
    """Client input error; `reason` is safe to echo back to the caller."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


def _format_loc(loc: Iterable[Any]) -> str:
    parts: list[str] = []
    for item in loc:
        if isinstance(item, int):
            parts.append(f"[{item}]")
        else:
            parts.append(("." if parts else "") + str(item))
    return "".join(parts) or "body"


def describe_errors(exc: PydanticValidationError) -> str:
    """Collapse pydantic errors into one line, unknown fields first."""
    messages: list[str] = []
    for err in exc.errors():
        loc = _format_loc(err.get("loc", ()))
        if err.get("type") == "extra_forbidden":
            messages.append(f'unknown field "{loc}"')
        elif err.get("type") == "missing":
            messages.append(f'missing field "{loc}"')
        else:
            messages.append(f"{loc}: {err.get('msg')}")
    return "; ".join(messages)


def parse_submission(body: bytes | str) -> ChecklistSubmission:
    """Decode `body` as JSON and validate it into a ChecklistSubmission."""
    if isinstance(body, (bytes, bytearray)):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise SubmissionRejected("invalid json: body is not valid UTF-8") from exc
    if not body.strip():
        raise SubmissionRejected("invalid json: empty body")
    try:
        raw = json.loads(body)
    except json.JSONDecodeError as exc:
        raise SubmissionRejected(f"invalid json: {exc.msg} at line {exc.lineno} column {exc.colno}") from exc
    if not isinstance(raw, dict):
        raise SubmissionRejected("invalid json: expected an object")
    try:
        return ChecklistSubmission.model_validate(raw)
    except PydanticValidationError as exc:
        raise SubmissionRejected(f"invalid json: {describe_errors(exc)}") from exc


__all__ = ["SubmissionRejected", "describe_errors", "parse_submission"]
