"""
Tests for evrballot/service.py

End-to-end flows through BallotService with real Evrmore signatures.
"""

import pytest

from evrballot import (
    AlreadyVoted,
    BallotService,
    ClockSource,
    EngineConfig,
    EvrmoreWallet,
    ManualClock,
    ProposalStatus,
    Unauthorized,
    VotingNotActive,
)
from evrballot.clock import BlockTimeClock, SystemClock
from evrballot.electrumx import ElectrumXError
from evrballot.events import (
    ORGANIZATION_REGISTERED_TOPIC,
    PROPOSAL_CREATED_TOPIC,
    PROPOSAL_FINALIZED_TOPIC,
    VOTE_RECORDED_TOPIC,
)


# ============================================================================
# TEST DATA
# ============================================================================

WALLET_A = EvrmoreWallet.from_entropy(bytes.fromhex("aa" * 32))
WALLET_B = EvrmoreWallet.from_entropy(bytes.fromhex("bb" * 32))
WALLET_C = EvrmoreWallet.from_entropy(bytes.fromhex("cc" * 32))
ADMIN = EvrmoreWallet.from_entropy(bytes.fromhex("dd" * 32)).address


class ReadLimitedClock(ManualClock):
    """ManualClock that raises once its read budget is spent."""

    def __init__(self, start: int = 0):
        super().__init__(start)
        self.reads_left = None

    def now(self) -> int:
        if self.reads_left is not None:
            if self.reads_left <= 0:
                raise ElectrumXError("No ElectrumX server reachable")
            self.reads_left -= 1
        return super().now()


# ============================================================================
# SCENARIO TESTS
# ============================================================================

class TestScenario:
    """The O1/P1 walkthrough."""

    def test_full_flow(self):
        clock = ManualClock(50)
        service = BallotService(admin=ADMIN, clock=clock)

        service.register_organization(ADMIN, "O1", WALLET_A.address, "Org One", "", "QmMeta")
        service.open_proposal(ADMIN, "O1", "P1", "Proposal one", 100, 200, 10)
        assert service.get_proposal_status("P1") is ProposalStatus.PENDING

        # B votes (option=1, weight=5) at 150
        clock.set(150)
        service.submit_vote("P1", 1, 5, WALLET_B.address, WALLET_B.sign_vote("P1", 1, 5))
        assert service.proposals.fetch("P1").option_weights == {1: 5}
        assert service.get_proposal("P1").total_votes == 5

        # B again at 160 with any payload
        clock.set(160)
        with pytest.raises(AlreadyVoted):
            service.submit_vote("P1", 0, 1, WALLET_B.address, WALLET_B.sign_vote("P1", 0, 1))

        # C after end
        clock.set(250)
        with pytest.raises(VotingNotActive):
            service.submit_vote("P1", 1, 3, WALLET_C.address, WALLET_C.sign_vote("P1", 1, 3))

        # Finalize at 250
        result = service.finalize(ADMIN, "P1")
        assert result.weight_for(1) == 5
        assert result.total_votes == 5
        assert result.quorum_reached is False

        topics = [r.topic for r in service.events.events()]
        assert topics == [
            ORGANIZATION_REGISTERED_TOPIC,
            PROPOSAL_CREATED_TOPIC,
            VOTE_RECORDED_TOPIC,
            PROPOSAL_FINALIZED_TOPIC,
        ]

    def test_organization_controller_is_not_admin(self):
        """Permission to open proposals belongs to the administrator only."""
        service = BallotService(admin=ADMIN, clock=ManualClock(0))
        service.register_organization(ADMIN, "O1", WALLET_A.address, "Org One")
        with pytest.raises(Unauthorized):
            service.open_proposal(WALLET_A.address, "O1", "P1", "desc", 100, 200, 1)

    def test_transferred_admin(self):
        clock = ManualClock(0)
        service = BallotService(admin=ADMIN, clock=clock)
        service.transfer_ownership(ADMIN, WALLET_A.address)

        with pytest.raises(Unauthorized):
            service.register_organization(ADMIN, "O1", WALLET_A.address, "Org One")
        service.register_organization(WALLET_A.address, "O1", WALLET_A.address, "Org One")
        service.open_proposal(WALLET_A.address, "O1", "P1", "desc", 10, 20, 1)

        clock.set(30)
        with pytest.raises(Unauthorized):
            service.finalize(ADMIN, "P1")
        assert service.finalize(WALLET_A.address, "P1").results == []

    def test_read_surface(self):
        service = BallotService(admin=ADMIN, clock=ManualClock(0))
        service.register_organization(ADMIN, "O1", WALLET_A.address, "Org One")
        service.open_proposal(ADMIN, "O1", "P1", "desc", 10, 20, 1)

        assert service.get_organization("O1").name == "Org One"
        assert service.get_organization("O2") is None
        assert [p.proposal_id for p in service.list_proposals("O1")] == ["P1"]

    def test_stats(self):
        clock = ManualClock(150)
        service = BallotService(admin=ADMIN, clock=clock)
        service.register_organization(ADMIN, "O1", WALLET_A.address, "Org One")
        service.open_proposal(ADMIN, "O1", "P1", "desc", 100, 200, 1)
        service.open_proposal(ADMIN, "O1", "P2", "desc", 300, 400, 1)
        service.submit_vote("P1", 1, 5, WALLET_B.address, WALLET_B.sign_vote("P1", 1, 5))

        stats = service.get_stats()
        assert stats["owner"] == ADMIN
        assert stats["organizations"] == 1
        assert stats["proposals"] == 2
        assert stats["proposals_by_status"] == {"pending": 1, "open": 1, "closed": 0}
        assert stats["votes"]["accepted"] == 1
        assert stats["finalizations"] == 0


    def test_each_operation_reads_clock_once(self):
        """Every mutation reads the time once and stamps its event with it."""
        clock = ReadLimitedClock(50)
        service = BallotService(admin=ADMIN, clock=clock)

        clock.reads_left = 1
        service.register_organization(ADMIN, "O1", WALLET_A.address, "Org One")
        clock.reads_left = 1
        service.open_proposal(ADMIN, "O1", "P1", "desc", 100, 200, 1)
        clock.set(150)
        clock.reads_left = 1
        receipt = service.submit_vote("P1", 1, 5, WALLET_B.address, WALLET_B.sign_vote("P1", 1, 5))
        clock.set(250)
        clock.reads_left = 1
        service.finalize(ADMIN, "P1")
        clock.reads_left = 1
        service.transfer_ownership(ADMIN, WALLET_A.address)

        assert [r.timestamp for r in service.events.events()] == [50, 50, 150, 250, 250]
        assert receipt.recorded_at == 150

    def test_unreachable_clock_leaves_state_unchanged(self):
        clock = ReadLimitedClock(150)
        service = BallotService(admin=ADMIN, clock=clock)
        service.register_organization(ADMIN, "O1", WALLET_A.address, "Org One")
        service.open_proposal(ADMIN, "O1", "P1", "desc", 100, 200, 1)
        events_before = len(service.events)

        clock.reads_left = 0
        with pytest.raises(ElectrumXError):
            service.submit_vote("P1", 1, 5, WALLET_B.address, WALLET_B.sign_vote("P1", 1, 5))
        with pytest.raises(ElectrumXError):
            service.open_proposal(ADMIN, "O1", "P2", "desc", 100, 200, 1)

        assert service.get_proposal("P1").total_votes == 0
        assert "P2" not in service.proposals
        assert len(service.events) == events_before

        clock.reads_left = None
        service.submit_vote("P1", 1, 5, WALLET_B.address, WALLET_B.sign_vote("P1", 1, 5))
        assert service.get_proposal("P1").total_votes == 5

class TestFromConfig:
    """Building a service from EngineConfig."""

    def test_system_clock(self):
        service = BallotService.from_config(EngineConfig(admin=ADMIN))
        assert isinstance(service.clock, SystemClock)
        assert service.ownership.owner == ADMIN

    def test_block_clock(self):
        config = EngineConfig(admin=ADMIN, clock=ClockSource.BLOCK)
        service = BallotService.from_config(config)
        assert isinstance(service.clock, BlockTimeClock)
