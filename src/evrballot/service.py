"""
evrballot/service.py

BallotService wires one administrator role, one clock and one event log to
the registry, proposal store, ballot engine and finalizer.

Usage:
    from evrballot import BallotService, ManualClock

    clock = ManualClock(100)
    service = BallotService(admin="EAdmin...", clock=clock)

    service.register_organization("EAdmin...", "org-1", "EController...", "Org", "", "")
    service.open_proposal("EAdmin...", "org-1", "prop-1", "Raise quorum", 100, 200, 10)

    service.submit_vote("prop-1", 1, 5, wallet.address, wallet.sign_vote("prop-1", 1, 5))

    clock.set(250)
    result = service.finalize("EAdmin...", "prop-1")
"""

import logging
from typing import List, Optional, Union

from .clock import BlockTimeClock, Clock, SystemClock
from .config import ClockSource, EngineConfig
from .electrumx import ElectrumXClient
from .events import EventLog
from .ownership import Ownership
from .protocol.ballot import BallotEngine, VoteReceipt, VoteSubmission
from .protocol.finalizer import FinalizationResult, Finalizer
from .protocol.proposals import ProposalStatus, ProposalStore, ProposalSummary
from .protocol.registry import Organization, OrganizationRegistry

logger = logging.getLogger("evrballot.service")


class BallotService:
    """Single entry point for the administrative, public and read surfaces."""

    def __init__(self, admin: str, clock: Optional[Clock] = None):
        self.clock = clock or SystemClock()
        self.events = EventLog()
        self.ownership = Ownership(admin, self.events, self.clock)
        self.registry = OrganizationRegistry(self.ownership, self.events, self.clock)
        self.proposals = ProposalStore(self.registry, self.ownership, self.events, self.clock)
        self.engine = BallotEngine(self.proposals, self.events, self.clock)
        self.finalizer = Finalizer(self.proposals, self.ownership, self.events, self.clock)
        logger.info(f"Ballot service started (admin={admin}, clock={type(self.clock).__name__})")

    @classmethod
    def from_config(cls, config: EngineConfig) -> "BallotService":
        if config.clock is ClockSource.BLOCK:
            clock: Clock = BlockTimeClock(ElectrumXClient.from_config(config.electrumx))
        else:
            clock = SystemClock()
        return cls(admin=config.admin, clock=clock)

    # ========================================================================
    # ADMINISTRATIVE SURFACE
    # ========================================================================

    def register_organization(
        self,
        caller: str,
        org_id: str,
        controller: str,
        name: str,
        description: str = "",
        metadata_ref: str = "",
    ) -> Organization:
        return self.registry.register(caller, org_id, controller, name, description, metadata_ref)

    def open_proposal(
        self,
        caller: str,
        org_id: str,
        proposal_id: str,
        description: str,
        start: int,
        end: int,
        quorum: int,
    ) -> ProposalSummary:
        return self.proposals.open(caller, org_id, proposal_id, description, start, end, quorum)

    def transfer_ownership(self, caller: str, new_owner: str) -> None:
        self.ownership.transfer(caller, new_owner)

    def finalize(self, caller: str, proposal_id: str) -> FinalizationResult:
        return self.finalizer.finalize(caller, proposal_id)

    # ========================================================================
    # PUBLIC SURFACE
    # ========================================================================

    def submit_vote(
        self,
        proposal_id: str,
        option: int,
        weight: int,
        claimed_signer: str,
        signature: Union[bytes, str],
    ) -> VoteReceipt:
        return self.engine.submit_vote(proposal_id, option, weight, claimed_signer, signature)

    def submit(self, submission: VoteSubmission) -> VoteReceipt:
        return self.engine.submit(submission)

    # ========================================================================
    # READ SURFACE
    # ========================================================================

    def get_organization(self, org_id: str) -> Optional[Organization]:
        return self.registry.lookup(org_id)

    def get_proposal(self, proposal_id: str) -> ProposalSummary:
        return self.proposals.get(proposal_id)

    def get_proposal_status(self, proposal_id: str) -> ProposalStatus:
        return self.proposals.status(proposal_id)

    def list_proposals(self, org_id: Optional[str] = None) -> List[ProposalSummary]:
        return self.proposals.list_proposals(org_id)

    def get_stats(self) -> dict:
        now = self.clock.now()
        summaries = self.proposals.list_proposals()
        status_counts = {status.value: 0 for status in ProposalStatus}
        for summary in summaries:
            status_counts[self.proposals.status(summary.proposal_id, now).value] += 1

        return {
            "owner": self.ownership.owner,
            "organizations": len(self.registry),
            "proposals": len(summaries),
            "proposals_by_status": status_counts,
            "votes": self.engine.get_stats(),
            "finalizations": self.finalizer.finalizations,
            "events": len(self.events),
        }
