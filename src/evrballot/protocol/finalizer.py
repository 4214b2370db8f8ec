"""
evrballot/protocol/finalizer.py

Finalization of closed proposals.

Once the voting window has elapsed the administrator can finalize a
proposal, which snapshots its tally and emits it to the audit log. Results
are one entry per option that received at least one vote, ordered by
option index.

Quorum is reported, not enforced: a proposal whose total weight is below
its quorum still finalizes, with quorum_reached=False, and downstream
consumers decide what that means. There is no stored "finalized" flag, so
finalizing again recomputes and re-emits the same snapshot.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import List, Optional

from ..clock import Clock, SystemClock
from ..errors import VotingStillActive
from ..events import EventLog, PROPOSAL_FINALIZED_TOPIC
from ..ownership import Ownership
from .proposals import ProposalStatus, ProposalStore

logger = logging.getLogger("evrballot.protocol.finalizer")


@dataclass(frozen=True)
class OptionResult:
    """Accumulated weight for one option."""
    option: int
    weight: int


@dataclass(frozen=True)
class FinalizationResult:
    """Snapshot of a closed proposal's tally."""
    proposal_id: str
    org_id: str
    results: List[OptionResult] = field(default_factory=list)
    total_votes: int = 0
    quorum: int = 0
    quorum_reached: bool = False
    voter_count: int = 0
    finalized_at: int = 0

    @property
    def weights(self) -> List[int]:
        """Accumulated weights in option order."""
        return [r.weight for r in self.results]

    def weight_for(self, option: int) -> int:
        for r in self.results:
            if r.option == option:
                return r.weight
        return 0

    def to_dict(self) -> dict:
        return {
            "proposal_id": self.proposal_id,
            "org_id": self.org_id,
            "results": [{"option": r.option, "weight": r.weight} for r in self.results],
            "total_votes": self.total_votes,
            "quorum": self.quorum,
            "quorum_reached": self.quorum_reached,
            "voter_count": self.voter_count,
            "finalized_at": self.finalized_at,
        }


class Finalizer:
    """
    Emits results for proposals whose window has closed.

    Usage:
        finalizer = Finalizer(store, ownership, events, clock)
        result = finalizer.finalize(admin, "prop-1")
        result.weights
    """

    def __init__(
        self,
        store: ProposalStore,
        ownership: Ownership,
        events: EventLog,
        clock: Optional[Clock] = None,
    ):
        self._store = store
        self._ownership = ownership
        self._events = events
        self._clock = clock or SystemClock()
        self._finalizations = 0
        self._lock = threading.Lock()

    def finalize(self, caller: str, proposal_id: str) -> FinalizationResult:
        """
        Finalize a proposal.

        Raises:
            Unauthorized: Caller is not the administrator
            UnknownProposal: No such proposal
            VotingStillActive: The window has not ended (now <= end)
        """
        self._ownership.require(caller)
        proposal = self._store.fetch(proposal_id)

        now = self._clock.now()
        if proposal.status(now) is not ProposalStatus.CLOSED:
            raise VotingStillActive(
                f"Proposal {proposal_id} voting ends at {proposal.end}, now {now}"
            )

        with proposal.lock:
            result = FinalizationResult(
                proposal_id=proposal.proposal_id,
                org_id=proposal.org_id,
                results=[
                    OptionResult(option=option, weight=weight)
                    for option, weight in sorted(proposal.option_weights.items())
                ],
                total_votes=proposal.total_votes,
                quorum=proposal.quorum,
                quorum_reached=proposal.total_votes >= proposal.quorum,
                voter_count=len(proposal.voters),
                finalized_at=now,
            )

        if not result.quorum_reached:
            logger.warning(
                f"Proposal {proposal_id} finalized below quorum: "
                f"{result.total_votes} < {result.quorum}"
            )
        logger.info(f"Finalized proposal {proposal_id}: {result.weights} (total={result.total_votes})")

        self._events.emit(PROPOSAL_FINALIZED_TOPIC, result.to_dict(), timestamp=now)
        with self._lock:
            self._finalizations += 1
        return result

    @property
    def finalizations(self) -> int:
        """Number of successful finalize calls (repeats included)."""
        return self._finalizations
