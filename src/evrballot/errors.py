"""
evrballot/errors.py

Exception taxonomy for the ballot engine.

Every rejected operation raises one of these. Failures are synchronous and
leave all state unchanged, so callers can assert on the exact precondition
that was violated and resubmit corrected input.
"""


class BallotError(Exception):
    """Base class for all ballot engine failures."""
    pass


class Unauthorized(BallotError):
    """Caller does not hold the administrator role."""
    pass


class InvalidIdentity(BallotError):
    """An identity argument is the null identity."""
    pass


class NotFound(BallotError):
    """A referenced record does not exist."""
    pass


class UnknownOrganization(NotFound):
    pass


class UnknownProposal(NotFound):
    pass


class AlreadyExists(BallotError):
    """An identifier is already registered."""
    pass


class InvalidWindow(BallotError):
    """Proposal start is not strictly before its end."""
    pass


class VotingNotActive(BallotError):
    """Vote submitted outside of [start, end]."""
    pass


class VotingStillActive(BallotError):
    """Finalization requested before the voting window ended."""
    pass


class AlreadyVoted(BallotError):
    """The signer already has a recorded vote on this proposal."""
    pass


class InvalidVote(BallotError):
    """Option or weight is not a non-negative integer."""
    pass


class InvalidSignature(BallotError):
    """Recovered signer does not match the claimed signer."""
    pass


class MalformedSignature(BallotError):
    """Signature could not be decoded into a recoverable form."""
    pass
