"""Checklist submission payload models and the normalized write record.

`ChecklistSubmission` mirrors the JSON sent by the front-end (camelCase keys,
unknown keys forbidden at every level). `NormalizedChecklist` is what the
writer persists: the date and creation timestamp are always concrete and
blank names have already become None.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AnswerPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    key: str
    label: Optional[str] = None
    value: Optional[str] = None
    comment: Optional[str] = None


class ChecklistSubmission(BaseModel):
    model_config = ConfigDict(extra="forbid")

    child_name: Optional[str] = Field(default=None, alias="childName")
    date: Optional[str] = None
    specialist: Optional[str] = None
    created_at: Optional[str] = Field(default=None, alias="createdAt")
    # None and [] are both rejected by normalization with the same reason
    answers: Optional[list[AnswerPayload]] = None


@dataclass(frozen=True)
class NormalizedAnswer:
    key: str
    label: Optional[str]
    value: Optional[str]
    comment: Optional[str]


@dataclass(frozen=True)
class NormalizedChecklist:
    child_name: Optional[str]
    date_of_check: date
    specialist: Optional[str]
    created_at: datetime
    answers: tuple[NormalizedAnswer, ...]


class ChecklistCreated(BaseModel):
    id: int


__all__ = [
    "AnswerPayload",
    "ChecklistSubmission",
    "NormalizedAnswer",
    "NormalizedChecklist",
    "ChecklistCreated",
]
