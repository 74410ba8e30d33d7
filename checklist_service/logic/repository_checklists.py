"""Checklist persistence.

`ChecklistWriter` stores one `checklists` row plus its `answers` rows in a
single transaction. Either every row is committed or none is: the first
failing statement (or a failed commit) rolls the whole unit back. The Engine
is passed in by the caller so tests can substitute their own store.
"""

from __future__ import annotations

import logging
import time
from typing import Callable

from sqlalchemy import Date, DateTime, bindparam, text as sql_text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError, TimeoutError as PoolTimeout

from checklist_service.models.checklist import NormalizedAnswer, NormalizedChecklist

logger = logging.getLogger(__name__)

INSERT_CHECKLIST = sql_text(
    """
    INSERT INTO checklists (child_name, date_of_check, specialist, created_at)
    VALUES (:child_name, :date_of_check, :specialist, :created_at)
    RETURNING id
    """
).bindparams(
    bindparam("date_of_check", type_=Date()),
    bindparam("created_at", type_=DateTime(timezone=True)),
)

INSERT_ANSWER = sql_text(
    """
    INSERT INTO answers (checklist_id, key_name, label, value, comment)
    VALUES (:checklist_id, :key_name, :label, :value, :comment)
    """
)


class PersistenceError(RuntimeError):
    """A checklist could not be stored; nothing from the attempt remains.

    `stage` names the step that failed and is meant for logs only.
    """

    def __init__(self, stage: str, message: str | None = None) -> None:
        super().__init__(message or f"checklist write failed during {stage}")
        self.stage = stage


class WriteTimeout(PersistenceError):
    """The transaction ran past its deadline and was rolled back."""


class Deadline:
    """Monotonic budget shared by every statement of one transaction."""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._expires_at = clock() + seconds

    def remaining(self) -> float:
        return self._expires_at - self._clock()

    def check(self, stage: str) -> None:
        if self.remaining() <= 0:
            raise WriteTimeout(stage, f"write deadline exceeded before {stage}")


class ChecklistWriter:
    def __init__(
        self,
        engine: Engine,
        *,
        timeout_seconds: float = 8.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.engine = engine
        self.timeout_seconds = timeout_seconds
        self._clock = clock

    def save(self, record: NormalizedChecklist) -> int:
        """Persist `record` atomically and return the new checklist id.

        Raises PersistenceError (or WriteTimeout) when anything fails; the
        transaction has been rolled back by then.
        """
        deadline = Deadline(self.timeout_seconds, self._clock)
        stage = "begin"
        checklist_id: int | None = None
        try:
            with self.engine.connect() as conn:
                deadline.check(stage)
                with conn.begin():
                    self._apply_statement_timeout(conn, deadline)
                    stage = "insert checklist"
                    deadline.check(stage)
                    checklist_id = self._insert_checklist(conn, record)
                    for position, answer in enumerate(record.answers):
                        stage = f"insert answer {position}"
                        deadline.check(stage)
                        self._insert_answer(conn, checklist_id, answer)
                    stage = "commit"
                    deadline.check(stage)
        except WriteTimeout:
            logger.error("checklist_write_timeout stage=%s checklist_id=%s", stage, checklist_id)
            raise
        except PoolTimeout as exc:
            # Engine pool_timeout is capped by the write budget; see create_db_engine
            logger.error("checklist_write_timeout stage=%s waiting for a pooled connection", stage)
            raise WriteTimeout(stage, "no database connection available before the write deadline") from exc
        except SQLAlchemyError as exc:
            logger.error(
                "checklist_write_failed stage=%s checklist_id=%s", stage, checklist_id, exc_info=True
            )
            raise PersistenceError(stage) from exc

        logger.info("checklist_saved id=%s answers=%s", checklist_id, len(record.answers))
        return int(checklist_id)

    def _apply_statement_timeout(self, conn: Connection, deadline: Deadline) -> None:
        # SET LOCAL ends with the transaction, so pooled connections stay clean
        if conn.dialect.name != "postgresql":
            return
        millis = max(1, int(deadline.remaining() * 1000))
        conn.exec_driver_sql(f"SET LOCAL statement_timeout = {millis}")

    def _insert_checklist(self, conn: Connection, record: NormalizedChecklist) -> int:
        row = conn.execute(
            INSERT_CHECKLIST,
            {
                "child_name": record.child_name,
                "date_of_check": record.date_of_check,
                "specialist": record.specialist,
                "created_at": record.created_at,
            },
        ).one()
        return int(row[0])

    def _insert_answer(self, conn: Connection, checklist_id: int, answer: NormalizedAnswer) -> None:
        conn.execute(
            INSERT_ANSWER,
            {
                "checklist_id": checklist_id,
                "key_name": answer.key,
                "label": answer.label,
                "value": answer.value,
                "comment": answer.comment,
            },
        )


__all__ = ["ChecklistWriter", "Deadline", "PersistenceError", "WriteTimeout"]
