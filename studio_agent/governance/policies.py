"""
Policy Store — per-studio agent policies.

Studios without a stored policy get the default AgentPolicy. A stored policy
that no longer validates falls back to AgentPolicy.read_only_fallback().
"""

import logging
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from studio_agent.models.policy import AgentPolicy

logger = logging.getLogger(__name__)


class PolicyStore:
    """
    In-memory policy store for the agent.
    Policies are kept as raw rows, the way the studio's policy table holds them.
    """

    def __init__(self, default_policy: Optional[AgentPolicy] = None):
        self._default = default_policy or AgentPolicy()
        self._policies: Dict[str, Dict[str, Any]] = {}

    def get(self, studio_id: str) -> AgentPolicy:
        """The studio's policy, a copy of the default, or the read-only fallback."""
        row = self._policies.get(studio_id)
        if row is None:
            return self._default.model_copy(deep=True)
        try:
            return AgentPolicy.model_validate(row)
        except ValidationError:
            logger.exception("Stored policy for studio %s is invalid, using read-only fallback", studio_id)
            return AgentPolicy.read_only_fallback()

    def put(self, studio_id: str, policy: Union[AgentPolicy, Mapping[str, Any]]) -> AgentPolicy:
        """Store a policy or a raw policy row; returns the policy now in effect."""
        if isinstance(policy, AgentPolicy):
            self._policies[studio_id] = policy.model_dump(mode="json")
        else:
            self._policies[studio_id] = dict(policy)
        return self.get(studio_id)

    def reset(self, studio_id: str) -> bool:
        """Drop a stored policy. Returns False when none was stored."""
        return self._policies.pop(studio_id, None) is not None

    def has_custom_policy(self, studio_id: str) -> bool:
        return studio_id in self._policies
