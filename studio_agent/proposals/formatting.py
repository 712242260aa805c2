"""Render proposals as the confirmation prompt shown to the studio owner."""

from typing import Sequence

from studio_agent.models.proposal import ProposedAction, RiskLevel

APPROVAL_HEADER = "The following actions require your approval:"
APPROVAL_QUESTION = "Would you like me to proceed with these actions?"
BULLET = "•"


def _format_line(proposal: ProposedAction) -> str:
    line = f"{BULLET} {proposal.label}"
    if proposal.risk_level and proposal.risk_level != RiskLevel.LOW:
        line += f" ({RiskLevel(proposal.risk_level).value} risk)"
    if proposal.estimated_time:
        line += f" - {proposal.estimated_time}"
    if proposal.preview:
        line += f"\n  Preview: {proposal.preview}"
    return line


def format_proposals_for_assistant(proposals: Sequence[ProposedAction]) -> str:
    """
    One bullet per proposal, in the order given.

    Returns an empty string when there is nothing to confirm.
    """
    if not proposals:
        return ""

    formatted = "\n".join(_format_line(p) for p in proposals)
    return f"{APPROVAL_HEADER}\n\n{formatted}\n\n{APPROVAL_QUESTION}"
