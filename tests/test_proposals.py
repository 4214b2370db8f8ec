"""
Tests for evrballot/protocol/proposals.py

Tests proposal creation, derived status and tally accumulation.
"""

import pytest

from evrballot.clock import ManualClock
from evrballot.errors import (
    AlreadyExists,
    AlreadyVoted,
    InvalidWindow,
    Unauthorized,
    UnknownOrganization,
    UnknownProposal,
)
from evrballot.events import EventLog, PROPOSAL_CREATED_TOPIC
from evrballot.ownership import Ownership
from evrballot.protocol.proposals import (
    ProposalStatus,
    ProposalStore,
    ProposalSummary,
    generate_id,
    proposal_status,
)
from evrballot.protocol.registry import OrganizationRegistry


# ============================================================================
# TEST DATA
# ============================================================================

ADMIN = "EAdminAddressXXXXXXXXXXXXXXXXXXXXX"
CONTROLLER = "EControllerXXXXXXXXXXXXXXXXXXXXXXX"


def create_store(now: int = 50):
    clock = ManualClock(now)
    events = EventLog()
    ownership = Ownership(ADMIN, events, clock)
    registry = OrganizationRegistry(ownership, events, clock)
    registry.register(ADMIN, "O1", CONTROLLER, "Org One")
    registry.register(ADMIN, "O2", CONTROLLER, "Org Two")
    store = ProposalStore(registry, ownership, events, clock)
    return store, events, clock


# ============================================================================
# STATUS TESTS
# ============================================================================

class TestProposalStatus:
    """Status is a pure function of (now, start, end)."""

    def test_pending(self):
        assert proposal_status(99, 100, 200) is ProposalStatus.PENDING

    def test_open_inclusive_bounds(self):
        assert proposal_status(100, 100, 200) is ProposalStatus.OPEN
        assert proposal_status(150, 100, 200) is ProposalStatus.OPEN
        assert proposal_status(200, 100, 200) is ProposalStatus.OPEN

    def test_closed(self):
        assert proposal_status(201, 100, 200) is ProposalStatus.CLOSED

    def test_store_status_follows_clock(self):
        """The same proposal is observed in each state as time moves."""
        store, _, clock = create_store(now=50)
        store.open(ADMIN, "O1", "P1", "desc", 100, 200, 10)

        assert store.status("P1") is ProposalStatus.PENDING
        clock.set(150)
        assert store.status("P1") is ProposalStatus.OPEN
        clock.set(250)
        assert store.status("P1") is ProposalStatus.CLOSED
        assert store.status("P1", now=100) is ProposalStatus.OPEN


# ============================================================================
# OPEN TESTS
# ============================================================================

class TestOpen:
    """Tests for ProposalStore.open."""

    def test_open(self):
        store, events, _ = create_store()
        summary = store.open(ADMIN, "O1", "P1", "Raise quorum", 100, 200, 10)

        assert isinstance(summary, ProposalSummary)
        assert summary.total_votes == 0
        assert summary.quorum == 10
        assert "P1" in store

        records = events.events(PROPOSAL_CREATED_TOPIC)
        assert len(records) == 1
        assert records[0].payload["proposal_id"] == "P1"
        assert records[0].payload["org_id"] == "O1"

    def test_unknown_organization(self):
        store, events, _ = create_store()
        with pytest.raises(UnknownOrganization):
            store.open(ADMIN, "nope", "P1", "desc", 100, 200, 10)
        assert len(store) == 0
        assert events.events(PROPOSAL_CREATED_TOPIC) == []

    @pytest.mark.parametrize("start,end", [(200, 200), (201, 200)])
    def test_invalid_window(self, start, end):
        store, _, _ = create_store()
        with pytest.raises(InvalidWindow):
            store.open(ADMIN, "O1", "P1", "desc", start, end, 10)
        assert "P1" not in store

    def test_duplicate_same_organization(self):
        store, _, _ = create_store()
        store.open(ADMIN, "O1", "P1", "first", 100, 200, 10)
        with pytest.raises(AlreadyExists):
            store.open(ADMIN, "O1", "P1", "second", 100, 300, 10)
        assert store.get("P1").description == "first"

    def test_duplicate_across_organizations(self):
        """Proposal IDs are global, not scoped per organization."""
        store, _, _ = create_store()
        store.open(ADMIN, "O1", "P1", "first", 100, 200, 10)
        with pytest.raises(AlreadyExists):
            store.open(ADMIN, "O2", "P1", "other org", 100, 200, 10)
        assert store.get("P1").org_id == "O1"

    def test_non_admin(self):
        store, _, _ = create_store()
        with pytest.raises(Unauthorized):
            store.open(CONTROLLER, "O1", "P1", "desc", 100, 200, 10)


# ============================================================================
# TALLY TESTS
# ============================================================================

class TestRecordVote:
    """Tests for ProposalStore.record_vote."""

    def test_accumulates(self):
        store, _, _ = create_store()
        store.open(ADMIN, "O1", "P1", "desc", 100, 200, 10)

        store.record_vote("P1", "EVoterA", 1, 5)
        store.record_vote("P1", "EVoterB", 1, 3)
        proposal = store.record_vote("P1", "EVoterC", 0, 7)

        assert proposal.option_weights == {1: 8, 0: 7}
        assert proposal.total_votes == 15
        assert proposal.total_votes == sum(proposal.option_weights.values())
        assert proposal.voters == {"EVoterA", "EVoterB", "EVoterC"}

    def test_repeat_signer_rejected(self):
        store, _, _ = create_store()
        store.open(ADMIN, "O1", "P1", "desc", 100, 200, 10)
        store.record_vote("P1", "EVoterA", 1, 5)

        with pytest.raises(AlreadyVoted):
            store.record_vote("P1", "EVoterA", 2, 9)

        proposal = store.fetch("P1")
        assert proposal.option_weights == {1: 5}
        assert proposal.total_votes == 5

    def test_unknown_proposal(self):
        store, _, _ = create_store()
        with pytest.raises(UnknownProposal):
            store.record_vote("missing", "EVoterA", 1, 5)


# ============================================================================
# QUERY TESTS
# ============================================================================

class TestQueries:
    """Tests for read methods."""

    def test_get_unknown(self):
        store, _, _ = create_store()
        with pytest.raises(UnknownProposal):
            store.get("missing")

    def test_summary_hides_tally_internals(self):
        store, _, _ = create_store()
        store.open(ADMIN, "O1", "P1", "desc", 100, 200, 10)
        store.record_vote("P1", "EVoterA", 1, 5)

        data = store.get("P1").to_dict()
        assert data["total_votes"] == 5
        assert "voters" not in data
        assert "option_weights" not in data

    def test_list_by_organization(self):
        store, _, _ = create_store()
        store.open(ADMIN, "O1", "P1", "desc", 100, 200, 10)
        store.open(ADMIN, "O2", "P2", "desc", 100, 200, 10)

        assert len(store.list_proposals()) == 2
        assert [s.proposal_id for s in store.list_proposals("O2")] == ["P2"]

    def test_generate_id(self):
        assert generate_id("O1", "title", 100) == generate_id("O1", "title", 100)
        assert generate_id("O1", "title", 100) != generate_id("O2", "title", 100)
        assert len(generate_id("x")) == 64
