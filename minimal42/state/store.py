"""
State store using SQLite.

Tracks, per managed resource:
- lifecycle (unmanaged -> converged -> removed -> converged ...)
- the desired state of the last run
- change history
"""

import json
import sqlite3
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

UNMANAGED = "unmanaged"
CONVERGED = "converged"
REMOVED = "removed"

LIFECYCLES = (UNMANAGED, CONVERGED, REMOVED)

SCHEMA = """
CREATE TABLE IF NOT EXISTS managed (
    resource_id TEXT PRIMARY KEY,
    kind TEXT NOT NULL,
    lifecycle TEXT NOT NULL,
    ensure TEXT NOT NULL,
    changed_at TEXT NOT NULL,
    changed_by TEXT NOT NULL,
    host TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS events (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    resource_id TEXT NOT NULL,
    at TEXT NOT NULL,
    action TEXT NOT NULL,
    changed_by TEXT NOT NULL,
    host TEXT NOT NULL,
    ok INTEGER NOT NULL,
    changes TEXT NOT NULL,
    error TEXT
);

CREATE INDEX IF NOT EXISTS idx_events_resource ON events(resource_id, at);
"""


@dataclass
class ResourceState:
    """Last known state of a managed resource."""
    id: str
    kind: str
    lifecycle: str
    ensure: str
    applied_at: datetime
    applied_by: str
    hostname: str


@dataclass
class HistoryEntry:
    """A single change in resource history."""
    timestamp: datetime
    resource_id: str
    action: str
    user: str
    hostname: str
    success: bool
    changes: Dict[str, Any]
    error: Optional[str] = None


class Store:
    """
    SQLite-based state store.

    Example:
        with Store() as store:
            store.transition("pkg:shorewall", "package", CONVERGED, "1.0.42")
            store.lifecycle("pkg:shorewall")   # "converged"
    """

    def __init__(self, db_path: Optional[str] = None):
        """
        Args:
            db_path: Path to SQLite database (default: ~/.minimal42/state.db)
        """
        self.db_path = db_path or str(Path.home() / ".minimal42" / "state.db")
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self.conn = sqlite3.connect(self.db_path)
        self.conn.row_factory = sqlite3.Row
        with self.conn:
            self.conn.executescript(SCHEMA)

    def lifecycle(self, resource_id: str) -> str:
        """Current lifecycle of a resource; unknown resources are unmanaged."""
        state = self.get_resource(resource_id)
        return state.lifecycle if state else UNMANAGED

    def transition(
        self,
        resource_id: str,
        kind: str,
        lifecycle: str,
        ensure: str,
        user: str = "unknown",
        hostname: str = "unknown",
        timestamp: Optional[datetime] = None,
    ) -> ResourceState:
        """
        Record the lifecycle a resource reached after a run.

        Raises:
            ValueError: unknown lifecycle value
        """
        if lifecycle not in LIFECYCLES:
            raise ValueError(f"Unknown lifecycle: {lifecycle}")

        state = ResourceState(resource_id, kind, lifecycle, ensure,
                              timestamp or datetime.now(), user, hostname)
        with self.conn:
            self.conn.execute(
                "INSERT OR REPLACE INTO managed VALUES (?, ?, ?, ?, ?, ?, ?)",
                (state.id, state.kind, state.lifecycle, state.ensure,
                 state.applied_at.isoformat(), state.applied_by, state.hostname),
            )
        return state

    def get_resource(self, resource_id: str) -> Optional[ResourceState]:
        row = self.conn.execute(
            "SELECT * FROM managed WHERE resource_id = ?", (resource_id,)
        ).fetchone()
        return _state(row) if row else None

    def list_resources(self) -> List[ResourceState]:
        """All known resources, most recently changed first."""
        cursor = self.conn.execute("SELECT * FROM managed ORDER BY changed_at DESC, resource_id")
        return [_state(row) for row in cursor]

    def add_history(self, entry: HistoryEntry) -> None:
        with self.conn:
            self.conn.execute(
                "INSERT INTO events (resource_id, at, action, changed_by, host, ok, changes, error)"
                " VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (entry.resource_id, entry.timestamp.isoformat(), entry.action, entry.user,
                 entry.hostname, int(entry.success), json.dumps(entry.changes, default=str),
                 entry.error),
            )

    def get_history(self, resource_id: str, limit: int = 10) -> List[HistoryEntry]:
        """Most recent history entries first."""
        cursor = self.conn.execute(
            "SELECT * FROM events WHERE resource_id = ? ORDER BY at DESC, seq DESC LIMIT ?",
            (resource_id, limit),
        )
        return [_event(row) for row in cursor]

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def _state(row: sqlite3.Row) -> ResourceState:
    return ResourceState(
        id=row["resource_id"],
        kind=row["kind"],
        lifecycle=row["lifecycle"],
        ensure=row["ensure"],
        applied_at=datetime.fromisoformat(row["changed_at"]),
        applied_by=row["changed_by"],
        hostname=row["host"],
    )


def _event(row: sqlite3.Row) -> HistoryEntry:
    return HistoryEntry(
        timestamp=datetime.fromisoformat(row["at"]),
        resource_id=row["resource_id"],
        action=row["action"],
        user=row["changed_by"],
        hostname=row["host"],
        success=bool(row["ok"]),
        changes=json.loads(row["changes"]),
        error=row["error"],
    )
