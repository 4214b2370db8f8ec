"""
evrballot/protocol/proposals.py

Proposal store.

Proposals are opened by the administrator under a registered organization
and hold the voting window, the quorum target and the running tally. The
tally (per-option weights and the set of signers who already voted) is
accumulation-only state: it is mutated by the ballot engine and never
exposed through read methods.

Proposal status is not stored. It is a pure function of the current time
and the window bounds:

    PENDING   now < start
    OPEN      start <= now <= end
    CLOSED    now > end
"""

import hashlib
import logging
import threading
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Dict, List, Optional, Set

from ..clock import Clock, SystemClock
from ..errors import AlreadyExists, AlreadyVoted, InvalidWindow, UnknownOrganization, UnknownProposal
from ..events import EventLog, PROPOSAL_CREATED_TOPIC
from ..ownership import Ownership
from .registry import OrganizationRegistry

logger = logging.getLogger("evrballot.protocol.proposals")


class ProposalStatus(Enum):
    """Status of a proposal at a given time."""
    PENDING = "pending"               # Voting not started
    OPEN = "open"                     # Accepting votes
    CLOSED = "closed"                 # Window elapsed, ready to finalize


def proposal_status(now: int, start: int, end: int) -> ProposalStatus:
    """Derive status from the current time and window bounds."""
    if now < start:
        return ProposalStatus.PENDING
    if now > end:
        return ProposalStatus.CLOSED
    return ProposalStatus.OPEN


def generate_id(*parts: object) -> str:
    """
    Deterministic identifier from arbitrary parts.

    Proposal IDs are global across organizations, so callers that derive
    them should include the organization ID among the parts.
    """
    content = ":".join(str(p) for p in parts)
    return hashlib.sha256(content.encode()).hexdigest()


@dataclass
class Proposal:
    """A proposal record with its tally. Internal to the engine."""
    proposal_id: str
    org_id: str
    description: str
    start: int
    end: int
    quorum: int
    total_votes: int = 0
    voters: Set[str] = field(default_factory=set)
    option_weights: Dict[int, int] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def status(self, now: int) -> ProposalStatus:
        return proposal_status(now, self.start, self.end)

    def summary(self) -> "ProposalSummary":
        return ProposalSummary(
            proposal_id=self.proposal_id,
            org_id=self.org_id,
            description=self.description,
            start=self.start,
            end=self.end,
            quorum=self.quorum,
            total_votes=self.total_votes,
        )


@dataclass(frozen=True)
class ProposalSummary:
    """Public view of a proposal. Carries no voter or per-option data."""
    proposal_id: str
    org_id: str
    description: str
    start: int
    end: int
    quorum: int
    total_votes: int

    def to_dict(self) -> dict:
        return asdict(self)


class ProposalStore:
    """
    Keyed store of proposals, unique across all organizations.

    Usage:
        store = ProposalStore(registry, ownership, events)
        store.open(admin, "org-1", "prop-1", "Raise quorum", start=100, end=200, quorum=10)
        store.get("prop-1").total_votes
    """

    def __init__(
        self,
        registry: OrganizationRegistry,
        ownership: Ownership,
        events: EventLog,
        clock: Optional[Clock] = None,
    ):
        self._registry = registry
        self._ownership = ownership
        self._events = events
        self._clock = clock or SystemClock()
        self._proposals: Dict[str, Proposal] = {}
        self._lock = threading.Lock()

    # ========================================================================
    # ADMINISTRATION
    # ========================================================================

    def open(
        self,
        caller: str,
        org_id: str,
        proposal_id: str,
        description: str,
        start: int,
        end: int,
        quorum: int,
    ) -> ProposalSummary:
        """
        Open a new proposal under an organization.

        Raises:
            Unauthorized: Caller is not the administrator
            UnknownOrganization: org_id is not registered
            InvalidWindow: start >= end
            AlreadyExists: proposal_id is taken (by any organization)
        """
        self._ownership.require(caller)

        if not self._registry.exists(org_id):
            raise UnknownOrganization(f"Organization not found: {org_id}")
        if start >= end:
            raise InvalidWindow(f"Start {start} must be before end {end}")

        now = self._clock.now()
        with self._lock:
            if proposal_id in self._proposals:
                raise AlreadyExists(f"Proposal already exists: {proposal_id}")
            proposal = Proposal(
                proposal_id=proposal_id,
                org_id=org_id,
                description=description,
                start=start,
                end=end,
                quorum=quorum,
            )
            self._proposals[proposal_id] = proposal

        summary = proposal.summary()
        logger.info(f"Opened proposal {proposal_id} under {org_id}: [{start}, {end}] quorum={quorum}")
        self._events.emit(PROPOSAL_CREATED_TOPIC, summary.to_dict(), timestamp=now)
        return summary

    # ========================================================================
    # ENGINE ACCESS
    # ========================================================================

    def fetch(self, proposal_id: str) -> Proposal:
        """
        Get the full record for engine components.

        Raises:
            UnknownProposal: No such proposal
        """
        proposal = self._proposals.get(proposal_id)
        if proposal is None:
            raise UnknownProposal(f"Proposal not found: {proposal_id}")
        return proposal

    def record_vote(self, proposal_id: str, signer: str, option: int, weight: int) -> Proposal:
        """
        Apply a verified vote to the tally.

        The ballot engine calls this while holding the proposal's lock.
        Membership is checked again here: two submissions for the same
        signer may both have passed verification.

        Raises:
            UnknownProposal: No such proposal
            AlreadyVoted: signer is already in the voter set
        """
        proposal = self.fetch(proposal_id)
        if signer in proposal.voters:
            raise AlreadyVoted(f"{signer} already voted on {proposal_id}")

        proposal.voters.add(signer)
        proposal.option_weights[option] = proposal.option_weights.get(option, 0) + weight
        proposal.total_votes += weight
        return proposal

    # ========================================================================
    # QUERY METHODS
    # ========================================================================

    def get(self, proposal_id: str) -> ProposalSummary:
        """
        Get the public summary of a proposal.

        Raises:
            UnknownProposal: No such proposal
        """
        return self.fetch(proposal_id).summary()

    def status(self, proposal_id: str, now: Optional[int] = None) -> ProposalStatus:
        """Status of a proposal at `now` (defaults to the store clock)."""
        proposal = self.fetch(proposal_id)
        return proposal.status(self._clock.now() if now is None else now)

    def list_proposals(self, org_id: Optional[str] = None) -> List[ProposalSummary]:
        """Summaries of all proposals, optionally for one organization."""
        return [
            p.summary() for p in self._proposals.values()
            if org_id is None or p.org_id == org_id
        ]

    def __contains__(self, proposal_id: str) -> bool:
        return proposal_id in self._proposals

    def __len__(self) -> int:
        return len(self._proposals)
