"""
Proposal Factory — builds a ProposedAction from a tool call the agent intends to make.

The id is the first 12 hex characters of a SHA-1 over the canonical JSON of
``{tool, args, timestamp}``. The timestamp salt makes ids unique per offer:
re-issuing the same tool call later yields a new id, while two identical
calls within the same millisecond share one.
"""

import hashlib
import json
import time
from typing import Any, Dict, Optional, Union

from studio_agent.models.proposal import ProposedAction, RiskLevel

PROPOSAL_ID_LENGTH = 12


def _now_millis() -> int:
    return int(time.time() * 1000)


def proposal_id_for(tool: str, args: Dict[str, Any], timestamp: int) -> str:
    """Derive the short content id. Raises TypeError for non-JSON args."""
    seed = json.dumps(
        {"tool": tool, "args": args, "timestamp": timestamp},
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha1(seed.encode()).hexdigest()[:PROPOSAL_ID_LENGTH]


def make_proposal(
    tool: str,
    args: Dict[str, Any],
    requires: bool,
    label: str,
    reason: Optional[str] = None,
    risk_level: Optional[Union[RiskLevel, str]] = RiskLevel.LOW,
    estimated_time: Optional[str] = None,
    preview: Optional[str] = None,
    timestamp: Optional[int] = None,
) -> ProposedAction:
    """Build a ProposedAction. ``timestamp`` is epoch milliseconds."""
    if timestamp is None:
        timestamp = _now_millis()

    return ProposedAction(
        id=proposal_id_for(tool, args, timestamp),
        tool=tool,
        args=args,
        requires_approval=requires,
        label=label,
        reason=reason,
        risk_level=RiskLevel(risk_level) if risk_level is not None else RiskLevel.LOW,
        estimated_time=estimated_time,
        preview=preview,
    )
