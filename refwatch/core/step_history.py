"""Append-only step history backed by SQLite.

Every finished step run is recorded with its status and result details.
Later runs of the same step read it back, which is how the trigger step
recovers its last-seen revisions after a restart.

Design:
- Append-only: only `append()` writes; no update, no delete.
- Lookups return the most recent matching entry by insertion order.
- WAL journal mode for concurrent readers.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from refwatch.models.results import StepResult, StepStatus


# ---------------------------------------------------------------------------
# DDL
# ---------------------------------------------------------------------------

_CREATE_HISTORY = """
CREATE TABLE IF NOT EXISTS step_history (
    id             INTEGER PRIMARY KEY AUTOINCREMENT,
    entry_id       TEXT NOT NULL UNIQUE,
    run_id         TEXT NOT NULL,
    step_id        TEXT NOT NULL,
    status         TEXT NOT NULL,
    out            TEXT NOT NULL DEFAULT '',
    details_json   TEXT NOT NULL DEFAULT '{}',
    timestamp_utc  TEXT NOT NULL
);
"""

_CREATE_IDX_STEP = """
CREATE INDEX IF NOT EXISTS idx_step_id ON step_history(step_id, id);
"""


class HistoryError(RuntimeError):
    """Raised when a history entry cannot be stored or decoded."""


class HistoryEntry(BaseModel):
    """A single recorded step result."""

    model_config = ConfigDict(frozen=True)

    entry_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    run_id: str
    step_id: str
    status: StepStatus
    out: str = ""
    details: dict[str, Any] = {}
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    def to_result(self) -> StepResult:
        return StepResult(status=self.status, out=self.out, details=self.details)


class StepHistory:
    """Append-only record of step results.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(_CREATE_HISTORY)
            conn.execute(_CREATE_IDX_STEP)
            conn.commit()

    # ------------------------------------------------------------------
    # Core: append-only write
    # ------------------------------------------------------------------

    def append(self, run_id: str, step_id: str, result: StepResult) -> HistoryEntry:
        """Record a finished step result.  This is the only write method."""
        entry = HistoryEntry(
            run_id=run_id,
            step_id=step_id,
            status=result.status,
            out=result.out,
            details=result.details,
        )
        try:
            details_json = json.dumps(entry.details, sort_keys=True, default=str)
        except (TypeError, ValueError) as exc:
            raise HistoryError(
                f"Result details for {step_id} are not JSON-serializable: {exc}"
            ) from exc

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO step_history
                    (entry_id, run_id, step_id, status, out, details_json, timestamp_utc)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.entry_id,
                    entry.run_id,
                    entry.step_id,
                    entry.status.value,
                    entry.out,
                    details_json,
                    entry.timestamp_utc.isoformat(),
                ),
            )
            conn.commit()
        return entry

    # ------------------------------------------------------------------
    # Query methods (read-only)
    # ------------------------------------------------------------------

    def most_recent_with(self, step_id: str, key: str) -> HistoryEntry | None:
        """Return the newest entry for ``step_id`` that recorded a value for ``key``.

        Entries where ``key`` is absent or ``None`` are skipped.
        """
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM step_history WHERE step_id = ? ORDER BY id DESC",
                (step_id,),
            ).fetchall()
        for row in rows:
            entry = self._row_to_entry(row)
            if entry.details.get(key) is not None:
                return entry
        return None

    def results_for(self, step_id: str, limit: int = 100) -> list[HistoryEntry]:
        """Return the newest ``limit`` entries for ``step_id``, newest first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM step_history WHERE step_id = ? ORDER BY id DESC LIMIT ?",
                (step_id, limit),
            ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def get_all_step_ids(self) -> list[str]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT step_id FROM step_history GROUP BY step_id ORDER BY MAX(id) DESC"
            ).fetchall()
        return [row[0] for row in rows]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_entry(row: tuple) -> HistoryEntry:
        """Convert a SQLite row tuple to a HistoryEntry."""
        (
            _id,
            entry_id,
            run_id,
            step_id,
            status,
            out,
            details_json,
            timestamp_utc,
        ) = row
        try:
            details = json.loads(details_json)
        except json.JSONDecodeError as exc:
            raise HistoryError(f"Corrupt details in history entry {entry_id}") from exc
        return HistoryEntry(
            entry_id=entry_id,
            run_id=run_id,
            step_id=step_id,
            status=StepStatus(status),
            out=out,
            details=details,
            timestamp_utc=timestamp_utc,
        )
