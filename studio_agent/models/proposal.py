"""Proposed Action and Proposal Response — the agent's approval envelope."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, StrictBool


class RiskLevel(str, Enum):
    LOW = "low"
    MED = "med"
    HIGH = "high"


class ResponseStatus(str, Enum):
    SUCCESS = "success"
    NEEDS_APPROVAL = "needs_approval"
    DENIED = "denied"
    ERROR = "error"


class ProposedAction(BaseModel):
    """A single tool invocation awaiting (or bypassing) human approval."""

    id: str                                 # 12 hex chars from the factory
    label: str                              # Human-readable one-liner
    tool: str                               # Tool that will be called
    args: Dict[str, Any]                    # Passed to the tool unchanged
    requires_approval: StrictBool
    reason: Optional[str] = None            # Why approval is required
    risk_level: Optional[RiskLevel] = RiskLevel.LOW
    estimated_time: Optional[str] = None    # e.g. "immediate", "2 minutes"
    preview: Optional[str] = None           # Rendered effect, e.g. email body


class ProposalResponse(BaseModel):
    """
    The single envelope returned for any agent action request.

    Switch on ``status`` first. Optional fields may coexist incidentally
    and must not be used to infer the outcome.
    """

    status: ResponseStatus
    message: Optional[str] = None
    result: Optional[Any] = None
    proposed_actions: Optional[List[ProposedAction]] = None
    error: Optional[str] = None

    def to_json(self) -> dict:
        """JSON body with absent fields omitted."""
        return self.model_dump(mode="json", exclude_none=True)
