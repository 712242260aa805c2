"""
Default CRM tools. For the agent prototype these are mock handlers with
canned results; production registers handlers backed by the CRM database,
the invoicing service and the mail provider.
"""

from typing import Any, Dict
from uuid import uuid4

from studio_agent.execution.registry import ToolSpec
from studio_agent.models.policy import AgentContext, Authority
from studio_agent.models.proposal import RiskLevel


def _read_clients(args: Dict[str, Any], ctx: AgentContext) -> dict:
    return {"status": "ok", "studio_id": ctx.studio_id, "clients": [], "query": args.get("query", "")}


def _create_lead(args: Dict[str, Any], ctx: AgentContext) -> dict:
    return {
        "status": "created",
        "id": f"lead_{uuid4().hex[:8]}",
        "name": args.get("name", ""),
        "email": args.get("email"),
    }


def _update_client(args: Dict[str, Any], ctx: AgentContext) -> dict:
    updates = args.get("updates", {})
    return {"status": "updated", "id": args.get("clientId"), "fields": sorted(updates)}


def _send_invoice(args: Dict[str, Any], ctx: AgentContext) -> dict:
    return {"status": "sent", "id": args.get("invoiceId")}


def _send_email(args: Dict[str, Any], ctx: AgentContext) -> dict:
    return {"status": "sent", "message_id": f"msg_{uuid4().hex[:8]}", "to": args.get("to")}


def _create_session(args: Dict[str, Any], ctx: AgentContext) -> dict:
    return {
        "status": "scheduled",
        "id": f"session_{uuid4().hex[:8]}",
        "start": args.get("start"),
        "clientId": args.get("clientId"),
    }


def _email_preview(args: Dict[str, Any]) -> str:
    subject = args.get("subject", "(no subject)")
    body = str(args.get("body", ""))
    if len(body) > 120:
        body = body[:117] + "..."
    return f"{subject}: {body}" if body else subject


DEFAULT_TOOLS = [
    ToolSpec(
        name="read_clients",
        handler=_read_clients,
        authority=Authority.READ_CLIENTS,
        writes=False,
        label=lambda a: "Look up clients",
        description="Search the studio's clients.",
    ),
    ToolSpec(
        name="create_lead",
        handler=_create_lead,
        authority=Authority.CREATE_LEAD,
        label=lambda a: f"Create lead {a.get('name', '')}".strip(),
        target_table="crm_leads",
        description="Add a new lead to the CRM.",
    ),
    ToolSpec(
        name="update_client",
        handler=_update_client,
        authority=Authority.UPDATE_CLIENT,
        label=lambda a: f"Update client {a.get('clientId', '')}".strip(),
        target_table="crm_clients",
        fields_arg="updates",
        description="Change fields on an existing client.",
    ),
    ToolSpec(
        name="send_invoice",
        handler=_send_invoice,
        authority=Authority.SEND_INVOICE,
        label=lambda a: f"Send invoice #{a.get('invoiceId', '')}",
        risk_level=RiskLevel.MED,
        target_table="crm_invoices",
        amount_arg="amount",
        description="Email an invoice to the client.",
    ),
    ToolSpec(
        name="send_email",
        handler=_send_email,
        authority=Authority.SEND_EMAIL,
        label=lambda a: f"Send email to {a.get('to', '')}".strip(),
        risk_level=RiskLevel.MED,
        target_table="crm_messages",
        recipient_arg="to",
        preview=_email_preview,
        description="Send an email to a client or lead.",
    ),
    ToolSpec(
        name="create_session",
        handler=_create_session,
        authority=Authority.CREATE_SESSION,
        label=lambda a: f"Book session for {a.get('clientId', '')}".strip(),
        estimated_time="1 minute",
        target_table="photography_sessions",
        description="Book a photography session in the calendar.",
    ),
]


def register_default_tools(dispatcher) -> None:
    """Register the mock CRM tools on a ToolDispatcher."""
    for spec in DEFAULT_TOOLS:
        dispatcher.register_tool(spec)
