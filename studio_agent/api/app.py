"""
Studio Agent API — FastAPI endpoints.

Exposes the agent's approval gate via a REST API for:
- Tool calls requested by the LLM loop
- Pending proposals and their confirmation prompt
- Approving or denying a proposal by id
- Studio policy management
- The agent action log
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from studio_agent.audit.log import AuditLog
from studio_agent.config import AgentSettings, get_settings
from studio_agent.execution.dispatcher import ToolDispatcher
from studio_agent.execution.tools import register_default_tools
from studio_agent.governance.policies import PolicyStore
from studio_agent.models.policy import AgentContext, AgentPolicy
from studio_agent.observability.logging import configure_logging
from studio_agent.proposals.formatting import format_proposals_for_assistant
from studio_agent.proposals.store import ProposalStore

logger = logging.getLogger(__name__)


# --- Request/Response Models ---

class ToolCall(BaseModel):
    tool: str
    args: Dict[str, Any] = {}
    label: Optional[str] = None


class ToolCallRequest(ToolCall):
    studio_id: str
    user_id: str
    session_id: str


class TurnRequest(BaseModel):
    studio_id: str
    user_id: str
    session_id: str
    calls: List[ToolCall]


class ApproveRequest(BaseModel):
    studio_id: str
    user_id: str
    approved_by: Optional[str] = None


class DenyRequest(BaseModel):
    studio_id: str
    user_id: str
    reason: Optional[str] = None


# --- Application Factory ---

def create_app(
    dispatcher: Optional[ToolDispatcher] = None,
    policy_store: Optional[PolicyStore] = None,
    settings: Optional[AgentSettings] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Studio Agent API",
        description="Photography studio CRM agent — proposal and approval gate",
        version="0.1.0",
    )

    if dispatcher is None:
        dispatcher = ToolDispatcher(
            proposal_store=ProposalStore(ttl_seconds=settings.proposal_ttl_seconds),
            audit_log=AuditLog(db_path=settings.audit_db_path),
        )
        register_default_tools(dispatcher)
    policies = policy_store or PolicyStore()

    # Store components on app state for access in endpoints
    app.state.dispatcher = dispatcher
    app.state.policy_store = policies
    app.state.settings = settings

    def _context(studio_id: str, user_id: str) -> AgentContext:
        return AgentContext(
            studio_id=studio_id,
            user_id=user_id,
            policy=policies.get(studio_id),
        )

    # === TOOLS ===

    @app.get("/tools")
    def list_tools():
        """Registered tools and the authority each needs."""
        return [
            {
                "name": spec.name,
                "description": spec.description,
                "authority": spec.authority.value,
                "writes": spec.writes,
                "risk_level": spec.risk_level.value,
            }
            for spec in dispatcher.registry.specs()
        ]

    # === POLICIES ===

    @app.get("/policies/{studio_id}")
    def get_policy(studio_id: str):
        """The studio's agent policy (default when none stored)."""
        return policies.get(studio_id).model_dump(mode="json")

    @app.put("/policies/{studio_id}")
    def put_policy(studio_id: str, policy: AgentPolicy):
        """Replace the studio's agent policy."""
        logger.info("Policy for studio %s set to mode %s", studio_id, policy.mode.value)
        return policies.put(studio_id, policy).model_dump(mode="json")

    # === AGENT ===

    @app.post("/agent/tool-calls")
    def handle_tool_call(req: ToolCallRequest):
        """One tool call requested by the LLM."""
        ctx = _context(req.studio_id, req.user_id)
        response = dispatcher.handle_tool_call(
            ctx, req.session_id, req.tool, req.args, label=req.label
        )
        return response.to_json()

    @app.post("/agent/turns")
    def handle_turn(req: TurnRequest):
        """Several tool calls from one agent turn."""
        ctx = _context(req.studio_id, req.user_id)
        response = dispatcher.handle_tool_calls(
            ctx, req.session_id, [c.model_dump() for c in req.calls]
        )
        return response.to_json()

    @app.get("/agent/sessions/{session_id}/proposals")
    def get_pending_proposals(session_id: str):
        """Proposals awaiting a decision, with the confirmation prompt."""
        pending = dispatcher.pending(session_id)
        return {
            "proposals": [p.model_dump(mode="json") for p in pending],
            "prompt": format_proposals_for_assistant(pending),
        }

    @app.post("/agent/sessions/{session_id}/proposals/{proposal_id}/approve")
    def approve_proposal(session_id: str, proposal_id: str, req: ApproveRequest):
        """Studio owner approves a proposal; the tool runs now."""
        ctx = _context(req.studio_id, req.user_id)
        response = dispatcher.approve(ctx, session_id, proposal_id, req.approved_by)
        if response is None:
            raise HTTPException(404, "Proposal not found or no longer pending")
        return response.to_json()

    @app.post("/agent/sessions/{session_id}/proposals/{proposal_id}/deny")
    def deny_proposal(session_id: str, proposal_id: str, req: DenyRequest):
        """Studio owner declines a proposal."""
        ctx = _context(req.studio_id, req.user_id)
        response = dispatcher.deny(ctx, session_id, proposal_id, req.reason)
        if response is None:
            raise HTTPException(404, "Proposal not found or no longer pending")
        return response.to_json()

    # === AUDIT ===

    @app.get("/audit")
    def get_audit(studio_id: Optional[str] = None, limit: int = 50):
        """Recent agent actions."""
        log = dispatcher.audit_log
        entries = log.query_by_studio(studio_id, limit) if studio_id else log.query_recent(limit)
        return [e.model_dump(mode="json") for e in entries]

    return app


# Default application instance
app = create_app()
