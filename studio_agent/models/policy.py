"""Agent Policy — per-studio authorities and automation limits."""

from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, Field


class Authority(str, Enum):
    READ_CLIENTS = "READ_CLIENTS"
    READ_LEADS = "READ_LEADS"
    READ_SESSIONS = "READ_SESSIONS"
    READ_INVOICES = "READ_INVOICES"
    DRAFT_EMAIL = "DRAFT_EMAIL"
    CREATE_LEAD = "CREATE_LEAD"
    UPDATE_CLIENT = "UPDATE_CLIENT"
    SEND_INVOICE = "SEND_INVOICE"
    SEND_EMAIL = "SEND_EMAIL"
    CREATE_SESSION = "CREATE_SESSION"


class PolicyMode(str, Enum):
    READ_ONLY = "read_only"   # Reads only, every write is denied
    PROPOSE = "propose"       # Every write becomes a proposal
    AUTO_SAFE = "auto_safe"   # Allow-listed writes run, the rest are proposed
    AUTO_ALL = "auto_all"     # Writes run unless a threshold says otherwise


class EmailSendMode(str, Enum):
    DRAFT = "draft"
    TRUSTED = "trusted"
    AUTO = "auto"


class GuardrailResult(str, Enum):
    ALLOW = "allow"
    DENY = "deny"
    PROPOSE = "propose"


def _default_restricted_fields() -> Dict[str, List[str]]:
    return {
        "crm_clients": ["email", "phone"],
        "crm_leads": [],
        "crm_invoices": ["amount", "tax_amount"],
    }


class AgentPolicy(BaseModel):
    """What the agent may do on behalf of one studio."""

    mode: PolicyMode = PolicyMode.AUTO_SAFE
    authorities: List[Authority] = Field(
        default_factory=lambda: [
            Authority.READ_CLIENTS,
            Authority.READ_LEADS,
            Authority.READ_SESSIONS,
            Authority.READ_INVOICES,
            Authority.DRAFT_EMAIL,
            Authority.CREATE_LEAD,
            Authority.UPDATE_CLIENT,
            Authority.SEND_EMAIL,
            Authority.CREATE_SESSION,
        ]
    )
    invoice_auto_limit: float = 500
    email_send_mode: EmailSendMode = EmailSendMode.AUTO
    restricted_fields: Dict[str, List[str]] = Field(default_factory=_default_restricted_fields)
    auto_safe_actions: List[str] = Field(default_factory=lambda: ["create_lead"])
    max_ops_per_hour: int = Field(ge=0, default=50)
    approval_required_over_amount: float = 500
    email_domain_trustlist: List[str] = Field(
        default_factory=lambda: ["gmail.com", "yahoo.com", "outlook.com"]
    )

    @classmethod
    def read_only_fallback(cls) -> "AgentPolicy":
        """Policy used when a studio's stored policy cannot be loaded."""
        return cls(
            mode=PolicyMode.READ_ONLY,
            authorities=[
                Authority.READ_CLIENTS,
                Authority.READ_LEADS,
                Authority.READ_SESSIONS,
                Authority.READ_INVOICES,
                Authority.DRAFT_EMAIL,
            ],
            invoice_auto_limit=0,
            email_send_mode=EmailSendMode.DRAFT,
        )


class AgentContext(BaseModel):
    """Who the agent is acting for during one request."""

    studio_id: str
    user_id: str
    studio_name: str = ""
    policy: AgentPolicy = Field(default_factory=AgentPolicy)
