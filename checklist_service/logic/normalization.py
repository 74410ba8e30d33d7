"""Normalization of validated submissions into write records.

- `date` is strict: a non-blank value must be `YYYY-MM-DD` or an RFC 3339
  timestamp, otherwise the submission is rejected. Blank or absent means
  today in the configured timezone.
- `createdAt` is lenient: a value that does not parse as RFC 3339 is
  replaced by the current instant instead of rejecting the request.
- `childName` and `specialist` are trimmed and become None when empty.
- Answers keep their submitted order and text; only `key` is checked.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Callable, Collection, Optional

from checklist_service.logic.validation import SubmissionRejected
from checklist_service.models.checklist import (
    ChecklistSubmission,
    NormalizedAnswer,
    NormalizedChecklist,
)

logger = logging.getLogger(__name__)

_PLAIN_DATE_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_RFC3339_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})$"
)

DATE_FORMAT_REASON = "date must be YYYY-MM-DD or RFC3339"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def clean_text(value: Optional[str]) -> Optional[str]:
    """Trim `value`; absent or whitespace-only input becomes None."""
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def parse_plain_date(value: str) -> date:
    """Parse exactly `YYYY-MM-DD` (two-digit month and day); ValueError otherwise."""
    m = _PLAIN_DATE_RE.match(value)
    if not m:
        raise ValueError(f"not a YYYY-MM-DD date: {value!r}")
    year, month, day = (int(g) for g in m.groups())
    return date(year, month, day)


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC 3339 timestamp with a mandatory offset; ValueError otherwise.

    Fractional seconds of any length are accepted and truncated to
    microseconds.
    """
    m = _RFC3339_RE.match(value)
    if not m:
        raise ValueError(f"not an RFC 3339 timestamp: {value!r}")
    year, month, day, hour, minute, second = (int(g) for g in m.groups()[:6])
    fraction, offset = m.group(7), m.group(8)
    micro = int((fraction or "").ljust(6, "0")[:6] or 0)
    if offset in ("Z", "z"):
        tz: tzinfo = timezone.utc
    else:
        sign = -1 if offset[0] == "-" else 1
        off_h, off_m = int(offset[1:3]), int(offset[4:6])
        if off_h > 23 or off_m > 59:
            raise ValueError(f"offset out of range: {offset}")
        tz = timezone(sign * timedelta(hours=off_h, minutes=off_m))
    return datetime(year, month, day, hour, minute, second, micro, tzinfo=tz)


def resolve_date_of_check(
    raw: Optional[str],
    *,
    tz: tzinfo = timezone.utc,
    now: Callable[[], datetime] = _utc_now,
) -> date:
    """Return the calendar day to store for `raw`.

    A timestamp keeps the calendar day of its own offset. Raises
    SubmissionRejected for any other non-blank text.
    """
    text = (raw or "").strip()
    if not text:
        return now().astimezone(tz).date()
    try:
        return parse_plain_date(text)
    except ValueError:
        pass
    try:
        return parse_rfc3339(text).date()
    except ValueError:
        raise SubmissionRejected(DATE_FORMAT_REASON) from None


def resolve_created_at(raw: Optional[str], *, now: Callable[[], datetime] = _utc_now) -> datetime:
    """Return the caller's timestamp if it parses, else the current UTC instant."""
    text = (raw or "").strip()
    if text:
        try:
            return parse_rfc3339(text)
        except ValueError:
            logger.info("created_at_unparseable; using server time")
    return now()


def normalize_submission(
    submission: ChecklistSubmission,
    *,
    tz: tzinfo = timezone.utc,
    allowed_values: Collection[str] = (),
    now: Callable[[], datetime] = _utc_now,
) -> NormalizedChecklist:
    """Turn a validated submission into the record handed to the writer.

    `allowed_values`, when non-empty, restricts non-null answer values to
    that set. An empty collection accepts any text.
    """
    if not submission.answers:
        raise SubmissionRejected("answers must be provided")

    answers: list[NormalizedAnswer] = []
    for index, answer in enumerate(submission.answers):
        if not answer.key.strip():
            raise SubmissionRejected(f"answers[{index}].key must not be empty")
        if allowed_values and answer.value is not None and answer.value not in allowed_values:
            raise SubmissionRejected(
                f"answers[{index}].value must be one of {', '.join(sorted(allowed_values))}"
            )
        answers.append(
            NormalizedAnswer(
                key=answer.key,
                label=answer.label,
                value=answer.value,
                comment=answer.comment,
            )
        )

    return NormalizedChecklist(
        child_name=clean_text(submission.child_name),
        date_of_check=resolve_date_of_check(submission.date, tz=tz, now=now),
        specialist=clean_text(submission.specialist),
        created_at=resolve_created_at(submission.created_at, now=now),
        answers=tuple(answers),
    )


__all__ = [
    "DATE_FORMAT_REASON",
    "clean_text",
    "normalize_submission",
    "parse_plain_date",
    "parse_rfc3339",
    "resolve_created_at",
    "resolve_date_of_check",
]
