"""
Guardrails — decide whether a tool call runs, is proposed, or is refused.

Behavioral Contract:
- Authority is checked first; a missing authority is always a denial.
- Reads run whenever the authority is granted.
- Writes follow the policy mode, then the monetary, restricted-field and email checks.
- Never executes anything and never mutates the policy.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from studio_agent.execution.registry import ToolSpec
from studio_agent.models.policy import (
    AgentContext,
    AgentPolicy,
    Authority,
    EmailSendMode,
    GuardrailResult,
    PolicyMode,
)


class AuthorizationError(Exception):
    """Raised when the studio policy does not grant a required authority."""

    def __init__(self, message: str, authority: Authority):
        super().__init__(message)
        self.authority = authority


@dataclass(frozen=True)
class GuardrailVerdict:
    result: GuardrailResult
    reason: Optional[str] = None


def has_authority(policy: AgentPolicy, authority: Authority) -> bool:
    return Authority(authority) in policy.authorities


def missing_authorities(policy: AgentPolicy, authorities: Iterable[Authority]) -> List[Authority]:
    """The subset of ``authorities`` the policy does not grant."""
    return [a for a in authorities if not has_authority(policy, a)]


def require_authority(ctx: AgentContext, authority: Authority) -> None:
    if not has_authority(ctx.policy, authority):
        raise AuthorizationError(
            f"Authority {Authority(authority).value} not granted for studio {ctx.studio_id}",
            Authority(authority),
        )


def allow_write(policy: AgentPolicy, authority: Authority) -> GuardrailResult:
    """Mode-level decision for a write the policy holds the authority for."""
    if not has_authority(policy, authority):
        return GuardrailResult.DENY

    if policy.mode == PolicyMode.READ_ONLY:
        return GuardrailResult.DENY
    if policy.mode == PolicyMode.PROPOSE:
        return GuardrailResult.PROPOSE
    if policy.mode in (PolicyMode.AUTO_SAFE, PolicyMode.AUTO_ALL):
        return GuardrailResult.ALLOW
    return GuardrailResult.DENY


def should_approve(policy: AgentPolicy, amount: float) -> bool:
    """True when ``amount`` is low enough to run without a human."""
    return amount < policy.approval_required_over_amount


def _read_amount(tool: ToolSpec, args: Dict[str, Any]) -> Optional[float]:
    if not tool.amount_arg or args.get(tool.amount_arg) is None:
        return None
    return float(args[tool.amount_arg])


def _restricted_changes(policy: AgentPolicy, tool: ToolSpec, args: Dict[str, Any]) -> List[str]:
    changes = args.get(tool.fields_arg) if tool.fields_arg else None
    if not isinstance(changes, Mapping) or not tool.target_table:
        return []
    restricted = policy.restricted_fields.get(tool.target_table, [])
    return sorted(f for f in changes if f in restricted)


def _recipient_domain(recipient: str) -> str:
    return recipient.rsplit("@", 1)[-1].strip().lower()


def evaluate_tool_call(
    policy: AgentPolicy,
    tool: ToolSpec,
    args: Dict[str, Any],
) -> GuardrailVerdict:
    """Combine authority, mode and thresholds into one verdict."""
    if not has_authority(policy, tool.authority):
        return GuardrailVerdict(
            GuardrailResult.DENY,
            f"Authority {tool.authority.value} is not granted by the studio policy.",
        )

    if not tool.writes:
        return GuardrailVerdict(GuardrailResult.ALLOW)

    mode_result = allow_write(policy, tool.authority)
    if mode_result == GuardrailResult.DENY:
        return GuardrailVerdict(
            GuardrailResult.DENY,
            f"Studio policy mode '{policy.mode.value}' does not allow changes.",
        )
    if mode_result == GuardrailResult.PROPOSE:
        return GuardrailVerdict(
            GuardrailResult.PROPOSE,
            "Studio policy requires approval for every change.",
        )

    if policy.mode == PolicyMode.AUTO_SAFE and tool.name not in policy.auto_safe_actions:
        return GuardrailVerdict(
            GuardrailResult.PROPOSE,
            f"'{tool.name}' is not on the studio's auto-safe list.",
        )

    try:
        amount = _read_amount(tool, args)
    except (TypeError, ValueError):
        return GuardrailVerdict(
            GuardrailResult.PROPOSE,
            f"Amount '{args.get(tool.amount_arg)}' could not be read.",
        )
    if amount is not None:
        if not should_approve(policy, amount):
            return GuardrailVerdict(
                GuardrailResult.PROPOSE,
                f"Amount {amount:g} is at or over the approval threshold of "
                f"{policy.approval_required_over_amount:g}.",
            )
        if tool.target_table == "crm_invoices" and amount > policy.invoice_auto_limit:
            return GuardrailVerdict(
                GuardrailResult.PROPOSE,
                f"Invoice amount {amount:g} exceeds the auto-send limit of "
                f"{policy.invoice_auto_limit:g}.",
            )

    restricted = _restricted_changes(policy, tool, args)
    if restricted:
        return GuardrailVerdict(
            GuardrailResult.PROPOSE,
            f"Changes to restricted fields need approval: {', '.join(restricted)}.",
        )

    if tool.recipient_arg:
        if policy.email_send_mode == EmailSendMode.DRAFT:
            return GuardrailVerdict(
                GuardrailResult.PROPOSE,
                "Emails are drafted for review before sending.",
            )
        if policy.email_send_mode == EmailSendMode.TRUSTED:
            domain = _recipient_domain(str(args.get(tool.recipient_arg, "")))
            trusted = {d.lower() for d in policy.email_domain_trustlist}
            if domain not in trusted:
                return GuardrailVerdict(
                    GuardrailResult.PROPOSE,
                    f"Recipient domain '{domain}' is not on the trust-list.",
                )

    return GuardrailVerdict(GuardrailResult.ALLOW)
