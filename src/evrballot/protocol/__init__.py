"""
evrballot/protocol/

Organization registry, proposal store, ballot engine and finalizer.
"""

from .registry import Organization, OrganizationRegistry
from .proposals import (
    Proposal,
    ProposalStatus,
    ProposalStore,
    ProposalSummary,
    generate_id,
    proposal_status,
)
from .ballot import BallotEngine, VoteReceipt, VoteSubmission
from .finalizer import FinalizationResult, Finalizer, OptionResult

__all__ = [
    "Organization",
    "OrganizationRegistry",
    "Proposal",
    "ProposalStatus",
    "ProposalStore",
    "ProposalSummary",
    "generate_id",
    "proposal_status",
    "BallotEngine",
    "VoteReceipt",
    "VoteSubmission",
    "FinalizationResult",
    "Finalizer",
    "OptionResult",
]
