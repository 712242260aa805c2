"""
Tool Dispatcher — turns the LLM's requested tool calls into envelopes.

Per tool call the guardrails decide: run it now, hold it as a proposal for
the studio owner, or refuse it. Proposals are remembered per session so a
later "approve <id>" can find and run them.

Behavioral Contract:
- Never executes a write the guardrails did not allow, except after an explicit approval.
- Each issued proposal can be approved or denied at most once.
- Tool failures become error envelopes; they are audited and never raised.
- Every write outcome (proposed, approved, executed, failed, denied) is audited.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional, Sequence

from studio_agent.audit.log import AuditLog
from studio_agent.execution.registry import ToolRegistry, ToolSpec
from studio_agent.governance.guardrails import allow_write, evaluate_tool_call, has_authority
from studio_agent.models.audit import AuditStatus
from studio_agent.models.policy import AgentContext, GuardrailResult
from studio_agent.models.proposal import ProposalResponse, ProposedAction, ResponseStatus
from studio_agent.proposals.factory import make_proposal
from studio_agent.proposals.formatting import format_proposals_for_assistant
from studio_agent.proposals.lookup import proposal_problems
from studio_agent.proposals.responses import (
    create_approval_response,
    create_denied_response,
    create_error_response,
    create_success_response,
)
from studio_agent.proposals.store import ProposalStore

logger = logging.getLogger(__name__)


def format_plan_outputs(outputs: Sequence[Mapping[str, Any]]) -> str:
    """Summarise the outputs of a multi-step turn for the assistant."""
    successful = [o for o in outputs if o.get("success")]
    failed = [o for o in outputs if not o.get("success")]

    lines = [f"Executed {len(successful)}/{len(outputs)} steps successfully.", ""]
    for output in successful:
        result = output.get("result")
        if isinstance(result, Mapping) and result.get("status"):
            summary = str(result["status"])
        else:
            summary = str(result)
        lines.append(f"✅ {output['tool']}: {summary}")

    if failed:
        lines.append("")
        lines.append("Errors:")
        for output in failed:
            lines.append(f"❌ {output['tool']}: {output.get('error')}")

    return "\n".join(lines)


class ToolDispatcher:
    """Routes tool calls through the guardrails, the proposal store and the audit log."""

    def __init__(
        self,
        proposal_store: Optional[ProposalStore] = None,
        audit_log: Optional[AuditLog] = None,
        registry: Optional[ToolRegistry] = None,
    ):
        self.proposal_store = proposal_store or ProposalStore()
        self.audit_log = audit_log or AuditLog()
        self.registry = registry or ToolRegistry()

    def register_tool(self, spec: ToolSpec) -> None:
        """Register (or replace) a tool."""
        self.registry.register(spec)

    # --- Single tool call ---

    def handle_tool_call(
        self,
        ctx: AgentContext,
        session_id: str,
        tool: str,
        args: Optional[Dict[str, Any]] = None,
        label: Optional[str] = None,
    ) -> ProposalResponse:
        """Decide and act on one tool call requested by the LLM."""
        args = dict(args or {})
        spec = self.registry.get(tool)
        if spec is None:
            logger.warning("Unknown tool requested: %s", tool)
            return create_error_response(f"Tool '{tool}' not found in registry")

        verdict = evaluate_tool_call(ctx.policy, spec, args)

        if verdict.result == GuardrailResult.DENY:
            self._record_denial(ctx, spec, verdict.reason)
            return create_denied_response(verdict.reason)

        if verdict.result == GuardrailResult.PROPOSE:
            proposal = self._propose(ctx, session_id, spec, args, label, verdict.reason)
            return create_approval_response(
                [proposal], format_proposals_for_assistant([proposal])
            )

        return self._execute(ctx, spec, args)

    # --- One agent turn with several tool calls ---

    def handle_tool_calls(
        self,
        ctx: AgentContext,
        session_id: str,
        calls: Sequence[Mapping[str, Any]],
    ) -> ProposalResponse:
        """
        Run allowed calls in order and collect the rest as proposals.

        Execution stops at the first failed write; later calls are skipped.
        """
        outputs: List[dict] = []
        proposals: List[ProposedAction] = []
        denials: List[str] = []

        for call in calls:
            name = call.get("tool", "")
            args = dict(call.get("args") or {})
            spec = self.registry.get(name)
            if spec is None:
                outputs.append({
                    "tool": name,
                    "success": False,
                    "error": f"Tool '{name}' not found in registry",
                })
                continue

            verdict = evaluate_tool_call(ctx.policy, spec, args)
            if verdict.result == GuardrailResult.DENY:
                self._record_denial(ctx, spec, verdict.reason)
                denials.append(verdict.reason)
                outputs.append({"tool": name, "success": False, "error": verdict.reason})
                continue

            if verdict.result == GuardrailResult.PROPOSE:
                proposals.append(
                    self._propose(ctx, session_id, spec, args, call.get("label"), verdict.reason)
                )
                continue

            response = self._execute(ctx, spec, args)
            if response.status == ResponseStatus.SUCCESS:
                outputs.append({"tool": name, "success": True, "result": response.result})
            else:
                outputs.append({"tool": name, "success": False, "error": response.error})
                if spec.writes:
                    logger.warning("Stopping turn after failed write: %s", name)
                    break

        if proposals:
            response = create_approval_response(
                proposals, format_proposals_for_assistant(proposals)
            )
            if outputs:
                response.result = outputs
            return response

        if denials and len(denials) == len(calls):
            return create_denied_response(" ".join(denials))

        return create_success_response(outputs, format_plan_outputs(outputs))

    # --- Approval gate ---

    def pending(self, session_id: str) -> List[ProposedAction]:
        return self.proposal_store.pending(session_id)

    def approve(
        self,
        ctx: AgentContext,
        session_id: str,
        proposal_id: str,
        approved_by: Optional[str] = None,
    ) -> Optional[ProposalResponse]:
        """
        Run a previously issued proposal.

        Returns None when the proposal is not pending (unknown, expired,
        or already approved/denied). A proposal refused by the rate limit
        stays pending so it can be approved again later.
        """
        proposal = self.proposal_store.get(session_id, proposal_id)
        if proposal is None:
            return None

        problems = proposal_problems(proposal)
        spec = self.registry.get(proposal.tool)
        if problems or spec is None:
            if self.proposal_store.claim(session_id, proposal_id) is None:
                return None
            if problems:
                return create_error_response(
                    f"Proposal {proposal_id} is malformed: {', '.join(problems)}"
                )
            return create_error_response(f"Tool '{proposal.tool}' not found in registry")

        # The policy may have changed since the proposal was issued
        if allow_write(ctx.policy, spec.authority) == GuardrailResult.DENY:
            if self.proposal_store.claim(session_id, proposal_id) is None:
                return None
            if has_authority(ctx.policy, spec.authority):
                reason = f"Studio policy mode '{ctx.policy.mode.value}' no longer allows changes."
            else:
                reason = f"Authority {spec.authority.value} is no longer granted by the studio policy."
            self._record_denial(ctx, spec, reason)
            return create_denied_response(reason)

        if spec.writes and self._rate_limited(ctx):
            logger.warning("Approval of %s held back by rate limit", proposal_id)
            return create_error_response(self._rate_limit_error(ctx))

        if self.proposal_store.claim(session_id, proposal_id) is None:
            return None

        approver = approved_by or ctx.user_id
        self.audit_log.record_approval(
            ctx.studio_id, ctx.user_id, spec.name, spec.target_table, proposal.id, approver
        )
        return self._execute(ctx, spec, proposal.args, approved_by=approver)

    def deny(
        self,
        ctx: AgentContext,
        session_id: str,
        proposal_id: str,
        reason: Optional[str] = None,
    ) -> Optional[ProposalResponse]:
        """Discard a pending proposal. None when it was not pending."""
        proposal = self.proposal_store.claim(session_id, proposal_id)
        if proposal is None:
            return None

        reason = reason or f"{proposal.label} was declined."
        spec = self.registry.get(proposal.tool)
        self.audit_log.record_denial(
            ctx.studio_id,
            ctx.user_id,
            proposal.tool,
            spec.target_table if spec is not None else None,
            reason,
        )
        return create_denied_response(reason)

    # --- Internals ---

    def _propose(
        self,
        ctx: AgentContext,
        session_id: str,
        spec: ToolSpec,
        args: Dict[str, Any],
        label: Optional[str],
        reason: Optional[str],
    ) -> ProposedAction:
        proposal = make_proposal(
            spec.name,
            args,
            True,
            label or spec.label_for(args),
            reason=reason,
            risk_level=spec.risk_level,
            estimated_time=spec.estimated_time,
            preview=spec.preview_for(args),
        )
        self.proposal_store.issue(session_id, [proposal])
        self.audit_log.record_proposal(
            ctx.studio_id,
            ctx.user_id,
            spec.name,
            spec.target_table,
            proposal.model_dump(mode="json"),
            spec.risk_level,
        )
        return proposal

    def _record_denial(self, ctx: AgentContext, spec: ToolSpec, reason: str) -> None:
        logger.info("Denied %s for studio %s: %s", spec.name, ctx.studio_id, reason)
        self.audit_log.record_denial(
            ctx.studio_id, ctx.user_id, spec.name, spec.target_table, reason
        )

    def _rate_limited(self, ctx: AgentContext) -> bool:
        since = datetime.utcnow() - timedelta(hours=1)
        done = self.audit_log.count_since(ctx.studio_id, AuditStatus.EXECUTED, since)
        return done >= ctx.policy.max_ops_per_hour

    def _rate_limit_error(self, ctx: AgentContext) -> str:
        return (
            f"Rate limit of {ctx.policy.max_ops_per_hour} operations per hour "
            f"reached for studio {ctx.studio_id}"
        )

    def _execute(
        self,
        ctx: AgentContext,
        spec: ToolSpec,
        args: Dict[str, Any],
        approved_by: Optional[str] = None,
    ) -> ProposalResponse:
        if spec.writes and self._rate_limited(ctx):
            error = self._rate_limit_error(ctx)
            self.audit_log.record_failure(
                ctx.studio_id, ctx.user_id, spec.name, spec.target_table, error, args
            )
            return create_error_response(error)

        logger.info("Executing %s for studio %s", spec.name, ctx.studio_id)
        try:
            result = spec.handler(args, ctx)
        except Exception as e:
            logger.exception("Tool %s failed", spec.name)
            if spec.writes:
                self.audit_log.record_failure(
                    ctx.studio_id, ctx.user_id, spec.name, spec.target_table, e, args
                )
            return create_error_response(f"{spec.name} failed: {e}")

        if spec.writes:
            target_id = result.get("id") if isinstance(result, Mapping) else None
            amount = args.get(spec.amount_arg) if spec.amount_arg else None
            self.audit_log.record_execution(
                ctx.studio_id,
                ctx.user_id,
                spec.name,
                spec.target_table,
                str(target_id) if target_id is not None else None,
                None,
                result,
                approved_by=approved_by,
                amount=float(amount) if isinstance(amount, (int, float)) else None,
            )

        return create_success_response(result, f"{spec.label_for(args)}: done.")
