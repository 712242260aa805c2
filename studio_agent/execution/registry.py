"""Tool Spec — how the agent's tools are described to the dispatcher and guardrails."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from studio_agent.models.policy import AgentContext, Authority
from studio_agent.models.proposal import RiskLevel

ToolHandler = Callable[[Dict[str, Any], AgentContext], Any]


@dataclass
class ToolSpec:
    """A named capability the agent can invoke."""

    name: str
    handler: ToolHandler
    authority: Authority
    writes: bool = True
    label: Optional[Callable[[Dict[str, Any]], str]] = None
    risk_level: RiskLevel = RiskLevel.LOW
    estimated_time: Optional[str] = "immediate"
    target_table: Optional[str] = None        # e.g. "crm_invoices"
    amount_arg: Optional[str] = None          # Monetary argument checked against thresholds
    recipient_arg: Optional[str] = None       # Email argument checked against the trust-list
    fields_arg: Optional[str] = None          # Mapping of field changes checked against restricted fields
    preview: Optional[Callable[[Dict[str, Any]], Optional[str]]] = None
    description: str = ""

    def label_for(self, args: Dict[str, Any]) -> str:
        if self.label is not None:
            return self.label(args)
        return self.name.replace("_", " ").capitalize()

    def preview_for(self, args: Dict[str, Any]) -> Optional[str]:
        return self.preview(args) if self.preview is not None else None


class ToolRegistry:
    """Name -> ToolSpec lookup."""

    def __init__(self) -> None:
        self._tools: Dict[str, ToolSpec] = {}

    def register(self, spec: ToolSpec) -> None:
        self._tools[spec.name] = spec

    def get(self, name: str) -> Optional[ToolSpec]:
        return self._tools.get(name)

    def names(self) -> List[str]:
        return sorted(self._tools)

    def specs(self) -> List[ToolSpec]:
        return [self._tools[name] for name in self.names()]
