"""Response Builders — one constructor per ProposalResponse status."""

from typing import Any, List, Optional

from studio_agent.models.proposal import ProposalResponse, ProposedAction, ResponseStatus


def create_success_response(result: Any, message: Optional[str] = None) -> ProposalResponse:
    return ProposalResponse(
        status=ResponseStatus.SUCCESS,
        message=message,
        result=result,
    )


def create_approval_response(
    actions: List[ProposedAction],
    message: Optional[str] = None,
) -> ProposalResponse:
    return ProposalResponse(
        status=ResponseStatus.NEEDS_APPROVAL,
        message=message,
        proposed_actions=list(actions),
    )


def create_denied_response(reason: str) -> ProposalResponse:
    return ProposalResponse(status=ResponseStatus.DENIED, message=reason)


def create_error_response(error: str) -> ProposalResponse:
    return ProposalResponse(status=ResponseStatus.ERROR, error=error)
