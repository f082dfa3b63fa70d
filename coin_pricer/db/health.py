"""
Source health persistence in SQLite.

Tracks last success time, failure counts and the last error per price
source so operators can see which upstream APIs are currently failing.
"""
from __future__ import annotations

import logging
import sqlite3
import threading
from typing import Dict, List, Optional

from ..core.errors import CacheError
from ..providers.base import HealthStatus, SourceHealth
from ..timeutils import now_utc_iso

logger = logging.getLogger(__name__)


class SourceHealthStore:
    """Read/write source health records from SQLite."""

    def __init__(self, conn: sqlite3.Connection, lock: Optional[threading.Lock] = None) -> None:
        self._conn = conn
        self._lock = lock or threading.Lock()

    def upsert(self, health: SourceHealth) -> None:
        """Insert or update a source's health record."""
        with self._lock:
            try:
                self._conn.execute(
                    """
                    INSERT INTO source_health
                        (source_name, status, last_ok_at, fail_count, last_error, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(source_name) DO UPDATE SET
                        status = excluded.status,
                        last_ok_at = COALESCE(excluded.last_ok_at, source_health.last_ok_at),
                        fail_count = excluded.fail_count,
                        last_error = excluded.last_error,
                        updated_at = excluded.updated_at;
                    """,
                    (
                        health.source_name,
                        health.status.value,
                        health.last_ok_at,
                        health.fail_count,
                        health.last_error,
                        now_utc_iso(),
                    ),
                )
                self._conn.commit()
            except sqlite3.Error as exc:
                raise CacheError(f"Could not record health for {health.source_name}: {exc}") from exc

    def upsert_all(self, health_map: Dict[str, SourceHealth]) -> None:
        for h in health_map.values():
            self.upsert(h)

    def load_all(self) -> List[SourceHealth]:
        """All source health records, ordered by name."""
        with self._lock:
            try:
                rows = self._conn.execute(
                    "SELECT source_name, status, last_ok_at, fail_count, last_error "
                    "FROM source_health ORDER BY source_name"
                ).fetchall()
            except sqlite3.OperationalError:
                return []
        return [
            SourceHealth(
                source_name=row[0],
                status=HealthStatus(row[1]) if row[1] else HealthStatus.OK,
                last_ok_at=row[2],
                fail_count=row[3] or 0,
                last_error=row[4],
            )
            for row in rows
        ]

    def load_as_dict(self) -> Dict[str, SourceHealth]:
        return {h.source_name: h for h in self.load_all()}
