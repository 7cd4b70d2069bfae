"""SQLiteStore: local file-based build history.

Good for a single CI agent, or for agents that share the database file
through a workspace cache.

Schema:
  builds  — one row per published build (outcomes are kept as JSON in the
            same row, so reading a job's history is a single query).
"""

from __future__ import annotations

import json
import logging
import sqlite3

from rblink_store.base import BaseStore
from rblink_store.models import BuildRecord, outcome_from_dict, outcome_to_dict

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS builds (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    job             TEXT NOT NULL,
    number          INTEGER NOT NULL,
    built_at        TEXT,
    succeeded       INTEGER DEFAULT 1,
    outcomes_json   TEXT DEFAULT '[]',
    UNIQUE (job, number)
);
CREATE INDEX IF NOT EXISTS idx_builds_job ON builds (job, number);
"""


class SQLiteStore(BaseStore):
    """Stores build history in a local SQLite database file.

    The database file path defaults to `.rblink.db` in the current working
    directory. Configure via .rblink.yml: `store_path: /path/to/rblink.db`.
    """

    def __init__(self, db_path: str = ".rblink.db"):
        self._conn = sqlite3.connect(db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.executescript(_SCHEMA)
        self._conn.commit()

    def save(self, record: BuildRecord) -> None:
        outcomes_json = json.dumps([outcome_to_dict(o) for o in record.outcomes])
        self._conn.execute(
            """
            INSERT OR REPLACE INTO builds (job, number, built_at, succeeded, outcomes_json)
            VALUES (?, ?, ?, ?, ?)
            """,
            (record.job, record.number, record.built_at, int(record.succeeded), outcomes_json),
        )
        self._conn.commit()

    def list_builds(self, job: str) -> list[BuildRecord]:
        rows = self._conn.execute("SELECT * FROM builds WHERE job=? ORDER BY number", (job,)).fetchall()
        return [self._row_to_record(r) for r in rows]

    def prune(self, job: str, keep: int) -> None:
        cursor = self._conn.execute(
            """
            DELETE FROM builds WHERE job=? AND number NOT IN (
                SELECT number FROM builds WHERE job=? ORDER BY number DESC LIMIT ?
            )
            """,
            (job, job, max(keep, 0)),
        )
        self._conn.commit()
        if cursor.rowcount:
            logger.debug("Pruned %d build(s) of %s", cursor.rowcount, job)

    def close(self) -> None:
        self._conn.close()

    @staticmethod
    def _row_to_record(row: sqlite3.Row) -> BuildRecord:
        outcomes_data = json.loads(row["outcomes_json"] or "[]")
        return BuildRecord(
            job=row["job"],
            number=row["number"],
            built_at=row["built_at"] or "",
            succeeded=bool(row["succeeded"]),
            outcomes=[outcome_from_dict(o) for o in outcomes_data],
        )
