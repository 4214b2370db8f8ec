"""
evrballot/protocol/ballot.py

Ballot engine: accepts off-chain signed votes.

A vote is a claim by a signer that they endorse (proposal, option, weight).
The engine guarantees the claim is authentic and counted at most once. It
does not check that the weight reflects any real entitlement such as a
token balance; whoever hands the voter a weight to sign owns that check.

Submission flow:
1. Fetch proposal                         -> UnknownProposal
2. Voting window contains now             -> VotingNotActive
3. Claimed signer has not voted yet       -> AlreadyVoted
4. Option and weight are non-negative     -> InvalidVote
5. Recovered signer == claimed signer     -> InvalidSignature / MalformedSignature
6. Record vote atomically, then emit event

The clock is read once, before anything is committed. Signature recovery
runs outside the proposal lock so submissions from different signers verify
in parallel; the record step re-checks membership under the lock.

Usage:
    engine = BallotEngine(store, events, clock)
    signature = wallet.sign_vote("prop-1", option=1, weight=5)
    engine.submit_vote("prop-1", 1, 5, wallet.address, signature)
"""

import logging
import threading
from collections import Counter
from dataclasses import dataclass, asdict
from typing import Callable, Optional, Union

from ..clock import Clock, SystemClock
from ..errors import (
    AlreadyVoted,
    BallotError,
    InvalidSignature,
    InvalidVote,
    VotingNotActive,
)
from ..events import EventLog, VOTE_RECORDED_TOPIC
from ..signing import recover_signer, signature_fingerprint, vote_message
from .proposals import ProposalStatus, ProposalStore

logger = logging.getLogger("evrballot.protocol.ballot")


@dataclass
class VoteSubmission:
    """A signed vote as received from a voter. Never stored."""
    proposal_id: str
    option: int
    weight: int
    signer: str                       # Claimed Evrmore address
    signature: str                    # Base64 compact signature

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "VoteSubmission":
        signature = data['signature']
        if isinstance(signature, bytes):
            signature = signature.decode('utf-8')
        return cls(
            proposal_id=data['proposal_id'],
            option=data['option'],
            weight=data['weight'],
            signer=data['signer'],
            signature=signature,
        )

    def get_signing_message(self) -> str:
        return vote_message(self.signer, self.proposal_id, self.option, self.weight)


@dataclass(frozen=True)
class VoteReceipt:
    """Confirmation of a recorded vote."""
    proposal_id: str
    signer: str
    option: int
    weight: int
    recorded_at: int
    event_sequence: int

    def to_dict(self) -> dict:
        return asdict(self)


class BallotEngine:
    """
    The only component that mutates vote state.

    Args:
        store: Proposal store holding the tallies
        events: Audit log receiving vote_recorded events
        clock: Time source used to evaluate the voting window
        verifier: Signer recovery function (message, signature) -> address
    """

    def __init__(
        self,
        store: ProposalStore,
        events: EventLog,
        clock: Optional[Clock] = None,
        verifier: Callable[[str, Union[bytes, str]], str] = recover_signer,
    ):
        self._store = store
        self._events = events
        self._clock = clock or SystemClock()
        self._verifier = verifier
        self._accepted = 0
        self._rejected: Counter = Counter()
        self._stats_lock = threading.Lock()

    def submit_vote(
        self,
        proposal_id: str,
        option: int,
        weight: int,
        claimed_signer: str,
        signature: Union[bytes, str],
    ) -> VoteReceipt:
        """
        Submit a signed vote.

        Returns:
            VoteReceipt for the recorded vote

        Raises:
            UnknownProposal, VotingNotActive, AlreadyVoted, InvalidVote,
            InvalidSignature, MalformedSignature
        """
        try:
            receipt = self._submit(proposal_id, option, weight, claimed_signer, signature)
        except BallotError as e:
            with self._stats_lock:
                self._rejected[type(e).__name__] += 1
            logger.warning(f"Rejected vote from {claimed_signer} on {proposal_id}: {type(e).__name__}: {e}")
            raise

        with self._stats_lock:
            self._accepted += 1
        return receipt

    def submit(self, submission: VoteSubmission) -> VoteReceipt:
        """Submit a VoteSubmission (e.g. decoded from an API payload)."""
        return self.submit_vote(
            submission.proposal_id,
            submission.option,
            submission.weight,
            submission.signer,
            submission.signature,
        )

    def _submit(
        self,
        proposal_id: str,
        option: int,
        weight: int,
        claimed_signer: str,
        signature: Union[bytes, str],
    ) -> VoteReceipt:
        proposal = self._store.fetch(proposal_id)

        now = self._clock.now()
        status = proposal.status(now)
        if status is not ProposalStatus.OPEN:
            raise VotingNotActive(
                f"Proposal {proposal_id} is {status.value} at {now} "
                f"(window [{proposal.start}, {proposal.end}])"
            )

        with proposal.lock:
            if claimed_signer in proposal.voters:
                raise AlreadyVoted(f"{claimed_signer} already voted on {proposal_id}")

        _validate_amount("option", option)
        _validate_amount("weight", weight)

        message = vote_message(claimed_signer, proposal_id, option, weight)
        recovered = self._verifier(message, signature)
        if recovered != claimed_signer:
            raise InvalidSignature(
                f"Signature {signature_fingerprint(signature)} recovers to {recovered}, "
                f"not {claimed_signer}"
            )

        with proposal.lock:
            self._store.record_vote(proposal_id, claimed_signer, option, weight)

        # Subscribers run outside the proposal lock and may submit again
        record = self._events.emit(VOTE_RECORDED_TOPIC, {
            "signer": claimed_signer,
            "proposal_id": proposal_id,
            "option": option,
            "weight": weight,
        }, timestamp=now)

        logger.info(f"Recorded vote on {proposal_id}: {claimed_signer} option={option} weight={weight}")
        return VoteReceipt(
            proposal_id=proposal_id,
            signer=claimed_signer,
            option=option,
            weight=weight,
            recorded_at=now,
            event_sequence=record.sequence,
        )

    def get_stats(self) -> dict:
        """Accepted and rejected submission counts (rejections by error kind)."""
        with self._stats_lock:
            return {
                "accepted": self._accepted,
                "rejected": dict(self._rejected),
            }


def _validate_amount(name: str, value: int) -> None:
    # bool is an int subclass but never a meaningful option or weight
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidVote(f"{name} must be a non-negative integer, got {value!r}")
