"""
Pending Proposal Store — remembers which proposals were offered in a conversation.

Updated by: the Tool Dispatcher when it issues proposals
Queried by: approve / deny requests that arrive on a later turn

Behavioral Contract:
- Proposals are scoped to a session (one conversation) and kept in issue order.
- Entries older than the TTL are dropped on access; issuing sweeps every session.
- ``claim`` removes the proposal it returns, so each proposal is acted on at most once.
"""

import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from studio_agent.models.proposal import ProposedAction
from studio_agent.proposals.lookup import find_proposal_by_id

logger = logging.getLogger(__name__)


class ProposalStore:
    """
    In-memory, session-scoped cache of issued proposals.
    Production would back this with the session store.
    """

    def __init__(
        self,
        ttl_seconds: float = 900,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        # session_id -> [(issued_at, proposal), ...]
        self._sessions: Dict[str, List[Tuple[float, ProposedAction]]] = {}

    def issue(self, session_id: str, proposals: Sequence[ProposedAction]) -> None:
        """Remember proposals offered to a session."""
        now = self._clock()
        with self._lock:
            self._sweep_locked()
            entries = self._sessions.setdefault(session_id, [])
            entries.extend((now, p) for p in proposals)
        logger.debug("Issued %d proposal(s) to session %s", len(proposals), session_id)

    def _purge_locked(self, session_id: str) -> List[Tuple[float, ProposedAction]]:
        entries = self._sessions.get(session_id, [])
        cutoff = self._clock() - self.ttl_seconds
        live = [(t, p) for t, p in entries if t >= cutoff]
        expired = len(entries) - len(live)
        if expired:
            logger.info("Expired %d proposal(s) in session %s", expired, session_id)
        if live:
            self._sessions[session_id] = live
        else:
            self._sessions.pop(session_id, None)
        return live

    def _sweep_locked(self) -> None:
        for session_id in list(self._sessions):
            self._purge_locked(session_id)

    def pending(self, session_id: str) -> List[ProposedAction]:
        """Live proposals for a session, in issue order."""
        with self._lock:
            return [p for _, p in self._purge_locked(session_id)]

    def get(self, session_id: str, proposal_id: str) -> Optional[ProposedAction]:
        """Look up a live proposal without consuming it."""
        return find_proposal_by_id(self.pending(session_id), proposal_id)

    def claim(self, session_id: str, proposal_id: str) -> Optional[ProposedAction]:
        """Remove and return a live proposal. None if unknown, expired or already claimed."""
        with self._lock:
            live = self._purge_locked(session_id)
            proposal = find_proposal_by_id([p for _, p in live], proposal_id)
            if proposal is None:
                return None
            remaining = [(t, p) for t, p in live if p is not proposal]
            if remaining:
                self._sessions[session_id] = remaining
            else:
                self._sessions.pop(session_id, None)
            return proposal

    def discard(self, session_id: str, proposal_id: str) -> bool:
        """Drop a proposal. Returns False when it was not pending."""
        return self.claim(session_id, proposal_id) is not None

    def clear(self, session_id: str) -> None:
        """Forget every proposal issued to a session."""
        with self._lock:
            self._sessions.pop(session_id, None)

    def sessions(self) -> List[str]:
        """Sessions that still hold live proposals."""
        with self._lock:
            self._sweep_locked()
            return list(self._sessions)
