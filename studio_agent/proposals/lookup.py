"""Proposal lookup by id and structural validation."""

from typing import Any, List, Mapping, Optional, Sequence, Union

from studio_agent.models.proposal import ProposedAction


def find_proposal_by_id(
    proposals: Sequence[ProposedAction], proposal_id: str
) -> Optional[ProposedAction]:
    """First proposal whose id matches, or None."""
    return next((p for p in proposals if p.id == proposal_id), None)


def _as_mapping(proposal: Union[ProposedAction, Mapping[str, Any]]) -> Mapping[str, Any]:
    if isinstance(proposal, ProposedAction):
        # Read attributes directly so model_construct() instances are checked as-is
        return {
            name: getattr(proposal, name, None)
            for name in ("id", "tool", "label", "requires_approval", "args")
        }
    if isinstance(proposal, Mapping):
        return proposal
    return {}


def proposal_problems(proposal: Union[ProposedAction, Mapping[str, Any]]) -> List[str]:
    """Names of the fields that break the proposal's structural invariant."""
    data = _as_mapping(proposal)
    problems = []
    for name in ("id", "tool", "label"):
        value = data.get(name)
        if not isinstance(value, str) or not value:
            problems.append(name)
    if not isinstance(data.get("requires_approval"), bool):
        problems.append("requires_approval")
    if not isinstance(data.get("args"), Mapping):
        problems.append("args")
    return problems


def validate_proposal(proposal: Union[ProposedAction, Mapping[str, Any]]) -> bool:
    """True when id/tool/label are non-empty, requires_approval is a bool and args is present."""
    return not proposal_problems(proposal)
