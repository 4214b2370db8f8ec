"""
evrballot - Off-chain signed ballot tally engine for Evrmore identities

Organizations are registered by an administrator, proposals are opened
under them with a voting window and quorum, and anyone holding an Evrmore
key can submit a signed, weighted vote without making an on-chain
transaction. After the window closes the administrator finalizes the
proposal and the tally is emitted to the audit log.

Usage:
    from evrballot import BallotService, EvrmoreWallet

    service = BallotService(admin=admin_address)
    service.register_organization(admin_address, "org-1", controller, "Satori DAO")
    service.open_proposal(admin_address, "org-1", "prop-1", "Raise relay bonus",
                          start=now, end=now + 86400, quorum=1000)

    voter = EvrmoreWallet.from_entropy(entropy)
    service.submit_vote("prop-1", 1, 250, voter.address,
                        voter.sign_vote("prop-1", 1, 250))

Metrics Usage:
    from evrballot.metrics import MetricsCollector

    prometheus_output = MetricsCollector(service).collect()
"""

from .clock import BlockTimeClock, Clock, ManualClock, SystemClock
from .config import ClockSource, ElectrumXConfig, EngineConfig
from .errors import (
    AlreadyExists,
    AlreadyVoted,
    BallotError,
    InvalidIdentity,
    InvalidSignature,
    InvalidVote,
    InvalidWindow,
    MalformedSignature,
    NotFound,
    Unauthorized,
    UnknownOrganization,
    UnknownProposal,
    VotingNotActive,
    VotingStillActive,
)
from .events import EventLog, EventRecord
from .ownership import Ownership
from .protocol import (
    BallotEngine,
    FinalizationResult,
    Finalizer,
    OptionResult,
    Organization,
    OrganizationRegistry,
    ProposalStatus,
    ProposalStore,
    ProposalSummary,
    VoteReceipt,
    VoteSubmission,
    generate_id,
)
from .service import BallotService
from .signing import EvrmoreWallet, recover_signer, vote_message

__version__ = "0.1.0"

__all__ = [
    "BallotService",
    "BallotEngine",
    "Finalizer",
    "OrganizationRegistry",
    "ProposalStore",
    "Organization",
    "ProposalStatus",
    "ProposalSummary",
    "VoteSubmission",
    "VoteReceipt",
    "FinalizationResult",
    "OptionResult",
    "generate_id",
    "Ownership",
    "EventLog",
    "EventRecord",
    "Clock",
    "SystemClock",
    "ManualClock",
    "BlockTimeClock",
    "EngineConfig",
    "ElectrumXConfig",
    "ClockSource",
    "EvrmoreWallet",
    "recover_signer",
    "vote_message",
    # Errors
    "BallotError",
    "Unauthorized",
    "InvalidIdentity",
    "NotFound",
    "UnknownOrganization",
    "UnknownProposal",
    "AlreadyExists",
    "InvalidWindow",
    "VotingNotActive",
    "VotingStillActive",
    "AlreadyVoted",
    "InvalidVote",
    "InvalidSignature",
    "MalformedSignature",
]
