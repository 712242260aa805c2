"""Studio Agent data models."""

from studio_agent.models.audit import AuditEntry, AuditStatus
from studio_agent.models.policy import (
    AgentContext,
    AgentPolicy,
    Authority,
    EmailSendMode,
    GuardrailResult,
    PolicyMode,
)
from studio_agent.models.proposal import (
    ProposalResponse,
    ProposedAction,
    ResponseStatus,
    RiskLevel,
)

__all__ = [
    "AgentContext",
    "AgentPolicy",
    "AuditEntry",
    "AuditStatus",
    "Authority",
    "EmailSendMode",
    "GuardrailResult",
    "PolicyMode",
    "ProposalResponse",
    "ProposedAction",
    "ResponseStatus",
    "RiskLevel",
]
