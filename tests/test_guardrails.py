"""Tests for the policy guardrails and policy store."""

import pytest

from studio_agent.execution.tools import DEFAULT_TOOLS
from studio_agent.governance.guardrails import (
    AuthorizationError,
    allow_write,
    evaluate_tool_call,
    has_authority,
    missing_authorities,
    require_authority,
    should_approve,
)
from studio_agent.governance.policies import PolicyStore
from studio_agent.models.policy import (
    AgentContext,
    AgentPolicy,
    Authority,
    EmailSendMode,
    GuardrailResult,
    PolicyMode,
)

TOOLS = {spec.name: spec for spec in DEFAULT_TOOLS}
ALL_AUTHORITIES = list(Authority)


def _policy(**overrides) -> AgentPolicy:
    fields = dict(mode=PolicyMode.AUTO_ALL, authorities=ALL_AUTHORITIES)
    fields.update(overrides)
    return AgentPolicy(**fields)


class TestAuthorities:
    def test_has_authority(self):
        policy = AgentPolicy()
        assert has_authority(policy, Authority.READ_CLIENTS)
        assert not has_authority(policy, Authority.SEND_INVOICE)

    def test_missing_authorities(self):
        policy = AgentPolicy()
        missing = missing_authorities(
            policy, [Authority.READ_CLIENTS, Authority.SEND_INVOICE]
        )
        assert missing == [Authority.SEND_INVOICE]

    def test_require_authority_raises(self):
        ctx = AgentContext(studio_id="studio_1", user_id="u1")
        with pytest.raises(AuthorizationError) as exc_info:
            require_authority(ctx, Authority.SEND_INVOICE)
        assert exc_info.value.authority == Authority.SEND_INVOICE
        assert "studio_1" in str(exc_info.value)

    def test_require_authority_passes(self):
        ctx = AgentContext(studio_id="studio_1", user_id="u1")
        require_authority(ctx, Authority.CREATE_LEAD)


class TestAllowWrite:
    @pytest.mark.parametrize("mode,expected", [
        (PolicyMode.READ_ONLY, GuardrailResult.DENY),
        (PolicyMode.PROPOSE, GuardrailResult.PROPOSE),
        (PolicyMode.AUTO_SAFE, GuardrailResult.ALLOW),
        (PolicyMode.AUTO_ALL, GuardrailResult.ALLOW),
    ])
    def test_modes(self, mode, expected):
        assert allow_write(_policy(mode=mode), Authority.CREATE_LEAD) == expected

    def test_missing_authority_denied(self):
        policy = _policy(authorities=[Authority.READ_CLIENTS])
        assert allow_write(policy, Authority.CREATE_LEAD) == GuardrailResult.DENY

    def test_should_approve_threshold(self):
        policy = _policy(approval_required_over_amount=500)
        assert should_approve(policy, 499.99)
        assert not should_approve(policy, 500)


class TestEvaluateToolCall:
    def test_read_allowed_in_read_only_mode(self):
        policy = _policy(mode=PolicyMode.READ_ONLY)
        verdict = evaluate_tool_call(policy, TOOLS["read_clients"], {})
        assert verdict.result == GuardrailResult.ALLOW

    def test_missing_authority_denied(self):
        verdict = evaluate_tool_call(AgentPolicy(), TOOLS["send_invoice"], {"invoiceId": "1"})
        assert verdict.result == GuardrailResult.DENY
        assert "SEND_INVOICE" in verdict.reason

    def test_read_only_denies_writes(self):
        verdict = evaluate_tool_call(
            _policy(mode=PolicyMode.READ_ONLY), TOOLS["create_lead"], {}
        )
        assert verdict.result == GuardrailResult.DENY

    def test_propose_mode(self):
        verdict = evaluate_tool_call(
            _policy(mode=PolicyMode.PROPOSE), TOOLS["create_lead"], {}
        )
        assert verdict.result == GuardrailResult.PROPOSE
        assert verdict.reason

    def test_auto_safe_list(self):
        policy = AgentPolicy()
        assert evaluate_tool_call(policy, TOOLS["create_lead"], {}).result == GuardrailResult.ALLOW
        verdict = evaluate_tool_call(policy, TOOLS["update_client"], {"clientId": "c1"})
        assert verdict.result == GuardrailResult.PROPOSE
        assert "auto-safe" in verdict.reason

    def test_amount_under_threshold_allowed(self):
        verdict = evaluate_tool_call(_policy(), TOOLS["send_invoice"], {"amount": 200})
        assert verdict.result == GuardrailResult.ALLOW

    def test_amount_at_threshold_proposed(self):
        verdict = evaluate_tool_call(_policy(), TOOLS["send_invoice"], {"amount": 500})
        assert verdict.result == GuardrailResult.PROPOSE
        assert "500" in verdict.reason

    def test_unreadable_amount_proposed(self):
        verdict = evaluate_tool_call(_policy(), TOOLS["send_invoice"], {"amount": "lots"})
        assert verdict.result == GuardrailResult.PROPOSE

    def test_invoice_auto_limit(self):
        policy = _policy(invoice_auto_limit=100)
        verdict = evaluate_tool_call(policy, TOOLS["send_invoice"], {"amount": 200})
        assert verdict.result == GuardrailResult.PROPOSE
        assert "auto-send limit" in verdict.reason

    def test_draft_email_mode(self):
        policy = _policy(email_send_mode=EmailSendMode.DRAFT)
        verdict = evaluate_tool_call(policy, TOOLS["send_email"], {"to": "anna@gmail.com"})
        assert verdict.result == GuardrailResult.PROPOSE

    def test_trusted_email_domain(self):
        policy = _policy(email_send_mode=EmailSendMode.TRUSTED)
        trusted = evaluate_tool_call(policy, TOOLS["send_email"], {"to": "Anna@Gmail.com"})
        untrusted = evaluate_tool_call(policy, TOOLS["send_email"], {"to": "anna@corp.example"})
        assert trusted.result == GuardrailResult.ALLOW
        assert untrusted.result == GuardrailResult.PROPOSE
        assert "corp.example" in untrusted.reason

    def test_auto_email_mode_ignores_trustlist(self):
        policy = _policy(email_send_mode=EmailSendMode.AUTO)
        verdict = evaluate_tool_call(policy, TOOLS["send_email"], {"to": "anna@corp.example"})
        assert verdict.result == GuardrailResult.ALLOW

    def test_restricted_fields_proposed(self):
        verdict = evaluate_tool_call(
            _policy(), TOOLS["update_client"], {"clientId": "c1", "updates": {"phone": "1", "notes": "x"}}
        )
        assert verdict.result == GuardrailResult.PROPOSE
        assert "phone" in verdict.reason
        assert "notes" not in verdict.reason

    def test_unrestricted_fields_allowed(self):
        verdict = evaluate_tool_call(
            _policy(), TOOLS["update_client"], {"clientId": "c1", "updates": {"notes": "x"}}
        )
        assert verdict.result == GuardrailResult.ALLOW


class TestPolicyStore:
    def test_default_for_unknown_studio(self):
        store = PolicyStore()
        assert store.get("studio_x").mode == PolicyMode.AUTO_SAFE
        assert not store.has_custom_policy("studio_x")

    def test_default_is_a_copy(self):
        store = PolicyStore()
        store.get("studio_x").authorities.clear()
        assert store.get("studio_x").authorities

    def test_put_and_reset(self):
        store = PolicyStore()
        store.put("studio_1", AgentPolicy(mode=PolicyMode.PROPOSE))
        assert store.get("studio_1").mode == PolicyMode.PROPOSE
        assert store.reset("studio_1") is True
        assert store.reset("studio_1") is False
        assert store.get("studio_1").mode == PolicyMode.AUTO_SAFE

    def test_custom_default(self):
        store = PolicyStore(default_policy=AgentPolicy.read_only_fallback())
        assert store.get("studio_1").mode == PolicyMode.READ_ONLY

    def test_raw_row_is_validated(self):
        store = PolicyStore()
        policy = store.put("studio_1", {"mode": "propose", "max_ops_per_hour": 5})
        assert policy.mode == PolicyMode.PROPOSE
        assert store.get("studio_1").max_ops_per_hour == 5

    def test_invalid_row_falls_back_to_read_only(self):
        store = PolicyStore()
        store.put("studio_1", {"mode": "yolo"})
        policy = store.get("studio_1")
        assert policy == AgentPolicy.read_only_fallback()
        assert evaluate_tool_call(policy, TOOLS["create_lead"], {}).result == GuardrailResult.DENY
