"""Audit Entry — one row of the agent action log."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from studio_agent.models.proposal import RiskLevel


class AuditStatus(str, Enum):
    PROPOSED = "proposed"
    APPROVED = "approved"
    EXECUTED = "executed"
    FAILED = "failed"
    DENIED = "denied"
    ROLLED_BACK = "rolled_back"


class AuditEntry(BaseModel):
    """What the agent did (or tried to do), for whom, and with what outcome."""

    id: Optional[str] = None
    studio_id: str
    user_id: Optional[str] = None
    action: str                             # Tool name
    target_table: Optional[str] = None      # e.g. "crm_invoices"
    target_id: Optional[str] = None
    before: Optional[Any] = None
    after: Optional[Any] = None
    status: AuditStatus
    approved_by: Optional[str] = None
    risk_level: Optional[RiskLevel] = None
    amount: Optional[float] = None
    metadata: dict = {}
    created_at: datetime = Field(default_factory=datetime.utcnow)
