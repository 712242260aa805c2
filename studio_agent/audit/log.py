"""
Agent Action Log — append-only audit trail of everything the agent proposed or did.

Behavioral Contract:
- Append-only. No entry is ever modified or deleted.
- Every entry answers: which studio, which user, which tool, what status, approved by whom.
- A failed write is logged and reported as None; it never breaks the agent turn.
- Queryable by studio, recency, and status within a time window (rate limiting).
"""

import json
import logging
import sqlite3
from datetime import datetime
from typing import Any, List, Optional
from uuid import uuid4

from studio_agent.models.audit import AuditEntry, AuditStatus
from studio_agent.models.proposal import RiskLevel

logger = logging.getLogger(__name__)


class AuditLog:
    """
    Append-only agent action log.
    Prototype: SQLite. Production: the studio's Postgres action log table.
    """

    def __init__(self, db_path: str = ":memory:"):
        self.db_path = db_path
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self) -> None:
        """Create the action log table if it doesn't exist."""
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS agent_action_log (
                id TEXT PRIMARY KEY,
                studio_id TEXT NOT NULL,
                user_id TEXT,
                action TEXT NOT NULL,
                target_table TEXT,
                target_id TEXT,
                status TEXT NOT NULL,
                approved_by TEXT,
                risk_level TEXT,
                amount REAL,
                entry_json TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_action_log_studio ON agent_action_log(studio_id)
        """)
        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_action_log_status ON agent_action_log(studio_id, status, created_at)
        """)
        self._conn.commit()

    def append(self, entry: AuditEntry) -> Optional[AuditEntry]:
        """Append an entry. Returns None if the write failed."""
        if entry.id is None:
            entry.id = f"act_{uuid4().hex[:12]}"

        try:
            self._conn.execute(
                """
                INSERT INTO agent_action_log (
                    id, studio_id, user_id, action, target_table, target_id,
                    status, approved_by, risk_level, amount, entry_json, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.id,
                    entry.studio_id,
                    entry.user_id,
                    entry.action,
                    entry.target_table,
                    entry.target_id,
                    entry.status.value,
                    entry.approved_by,
                    entry.risk_level.value if entry.risk_level else None,
                    entry.amount,
                    json.dumps(entry.model_dump(mode="json"), default=str),
                    entry.created_at.isoformat(timespec="microseconds"),
                ),
            )
            self._conn.commit()
        except sqlite3.Error:
            logger.exception(
                "Failed to write audit entry for %s (%s)", entry.action, entry.status.value
            )
            return None

        logger.info(
            "Audit logged: %s on %s - %s",
            entry.action,
            entry.target_table or "unknown",
            entry.status.value,
            extra={"studio_id": entry.studio_id, "user_id": entry.user_id},
        )
        return entry

    def record_proposal(
        self,
        studio_id: str,
        user_id: Optional[str],
        action: str,
        target_table: Optional[str],
        proposal_data: Any,
        risk_level: RiskLevel = RiskLevel.LOW,
    ) -> Optional[AuditEntry]:
        return self.append(AuditEntry(
            studio_id=studio_id,
            user_id=user_id,
            action=action,
            target_table=target_table,
            after=proposal_data,
            status=AuditStatus.PROPOSED,
            risk_level=risk_level,
            metadata={"proposal_timestamp": datetime.utcnow().isoformat()},
        ))

    def record_execution(
        self,
        studio_id: str,
        user_id: Optional[str],
        action: str,
        target_table: Optional[str],
        target_id: Optional[str],
        before: Any,
        after: Any,
        approved_by: Optional[str] = None,
        amount: Optional[float] = None,
    ) -> Optional[AuditEntry]:
        return self.append(AuditEntry(
            studio_id=studio_id,
            user_id=user_id,
            action=action,
            target_table=target_table,
            target_id=target_id,
            before=before,
            after=after,
            status=AuditStatus.EXECUTED,
            approved_by=approved_by,
            amount=amount,
            metadata={"execution_timestamp": datetime.utcnow().isoformat()},
        ))

    def record_failure(
        self,
        studio_id: str,
        user_id: Optional[str],
        action: str,
        target_table: Optional[str],
        error: Any,
        attempted_data: Any = None,
    ) -> Optional[AuditEntry]:
        return self.append(AuditEntry(
            studio_id=studio_id,
            user_id=user_id,
            action=action,
            target_table=target_table,
            before=attempted_data,
            status=AuditStatus.FAILED,
            metadata={
                "error_message": str(error),
                "error_timestamp": datetime.utcnow().isoformat(),
            },
        ))

    def record_approval(
        self,
        studio_id: str,
        user_id: Optional[str],
        action: str,
        target_table: Optional[str],
        proposal_id: str,
        approved_by: str,
    ) -> Optional[AuditEntry]:
        return self.append(AuditEntry(
            studio_id=studio_id,
            user_id=user_id,
            action=action,
            target_table=target_table,
            status=AuditStatus.APPROVED,
            approved_by=approved_by,
            metadata={"proposal_id": proposal_id},
        ))

    def record_denial(
        self,
        studio_id: str,
        user_id: Optional[str],
        action: str,
        target_table: Optional[str],
        reason: str,
    ) -> Optional[AuditEntry]:
        return self.append(AuditEntry(
            studio_id=studio_id,
            user_id=user_id,
            action=action,
            target_table=target_table,
            status=AuditStatus.DENIED,
            metadata={"reason": reason},
        ))

    def _deserialize(self, row: sqlite3.Row) -> AuditEntry:
        return AuditEntry.model_validate_json(row["entry_json"])

    def get_by_id(self, entry_id: str) -> Optional[AuditEntry]:
        row = self._conn.execute(
            "SELECT entry_json FROM agent_action_log WHERE id = ?", (entry_id,)
        ).fetchone()
        return self._deserialize(row) if row else None

    def query_recent(self, limit: int = 50) -> List[AuditEntry]:
        """Most recent entries, oldest first."""
        rows = self._conn.execute(
            "SELECT entry_json FROM agent_action_log ORDER BY rowid DESC LIMIT ?",
            (limit,),
        ).fetchall()
        return [self._deserialize(r) for r in reversed(rows)]

    def query_by_studio(self, studio_id: str, limit: int = 50) -> List[AuditEntry]:
        """Most recent entries for one studio, oldest first."""
        rows = self._conn.execute(
            "SELECT entry_json FROM agent_action_log WHERE studio_id = ? "
            "ORDER BY rowid DESC LIMIT ?",
            (studio_id, limit),
        ).fetchall()
        return [self._deserialize(r) for r in reversed(rows)]

    def count_since(self, studio_id: str, status: AuditStatus, since: datetime) -> int:
        """Entries with ``status`` for a studio created at or after ``since``."""
        row = self._conn.execute(
            "SELECT COUNT(*) AS cnt FROM agent_action_log "
            "WHERE studio_id = ? AND status = ? AND created_at >= ?",
            (studio_id, AuditStatus(status).value, since.isoformat(timespec="microseconds")),
        ).fetchone()
        return row["cnt"]

    def count(self) -> int:
        """Total number of entries."""
        row = self._conn.execute("SELECT COUNT(*) AS cnt FROM agent_action_log").fetchone()
        return row["cnt"]

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
