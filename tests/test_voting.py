"""Tests for point-allocation voting and the admin weight window."""

import pytest
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from yieldchef.config.loader import load_config
from yieldchef.engine.schedule import EPOCH_DURATION, SCALING_FACTOR
from yieldchef.errors import (
    InsufficientFunds,
    InvalidAddress,
    InvalidAmount,
    InvalidPool,
    SystemPaused,
    Unauthorized,
    VotingActive,
    VotingAlreadyEnabled,
    VotingNotEnabled,
)
from yieldchef.simulation.factory import OWNER, build_system

SF = SCALING_FACTOR
BASE = 100 * SF
ALICE = "user_00"
BOB = "user_01"


@pytest.fixture
def system():
    """Voting enabled; every account holds 100 points."""
    return build_system(load_config(), num_accounts=2)


@pytest.fixture
def admin_system():
    """Voting not yet enabled."""
    config = load_config()
    config.simulation.enable_voting = False
    return build_system(config, num_accounts=2)


class TestAllocatePoints:

    @pytest.mark.parametrize("sequence", [[65, 0, 8, 100], [100, 0], [30, 60, 10]])
    def test_allocation_tracks_percentage(self, system, sequence):
        chef = system.chef
        for pctg in sequence:
            chef.allocate_points(0, ALICE, pctg)
            allocated = chef.position(0, ALICE).allocated_points
            assert allocated == BASE * pctg // 100
            assert chef.pool(0).allocation_points - BASE == allocated
            assert chef.total_allocation_points - BASE == allocated
            assert chef.user_allocated_points(ALICE) == allocated

    def test_zero_weight_pool_receives_points(self, system):
        chef = system.chef
        change = chef.allocate_points(1, ALICE, 30)
        assert change.previous == 0
        assert change.allocated == 30 * SF
        assert chef.pool(1).allocation_points == 30 * SF
        assert chef.total_allocation_points == BASE + 30 * SF

    def test_cannot_allocate_more_than_balance(self, system):
        chef = system.chef
        chef.allocate_points(0, ALICE, 50)

        with pytest.raises(InsufficientFunds) as excinfo:
            chef.allocate_points(1, ALICE, 51)
        assert excinfo.value.available == 100 * SF
        assert excinfo.value.required == 101 * SF

        assert chef.pool(1).allocation_points == 0
        assert chef.user_allocated_points(ALICE) == 50 * SF

    def test_moving_points_between_pools(self, system):
        chef = system.chef
        chef.allocate_points(0, ALICE, 50)
        chef.allocate_points(1, ALICE, 50)
        chef.allocate_points(0, ALICE, 20)
        chef.allocate_points(1, ALICE, 80)
        assert chef.user_allocated_points(ALICE) == 100 * SF
        assert chef.total_allocation_points == BASE + 100 * SF

    def test_same_percentage_is_idempotent(self, system):
        chef = system.chef
        chef.allocate_points(0, ALICE, 40)
        change = chef.allocate_points(0, ALICE, 40)
        assert change.delta == 0
        assert chef.total_allocation_points == BASE + 40 * SF
        assert len(chef.events.of_type("points_allocated")) == 1

    @pytest.mark.parametrize("pctg", [101, -1, 50.5, True])
    def test_invalid_percentage(self, system, pctg):
        with pytest.raises(InvalidAmount):
            system.chef.allocate_points(0, ALICE, pctg)

    def test_unknown_pool(self, system):
        with pytest.raises(InvalidPool):
            system.chef.allocate_points(9, ALICE, 10)

    def test_accounts_are_independent(self, system):
        chef = system.chef
        chef.allocate_points(0, ALICE, 100)
        chef.allocate_points(0, BOB, 100)
        assert chef.pool(0).allocation_points == BASE + 200 * SF
        assert chef.user_allocated_points(BOB) == 100 * SF

    def test_release_after_points_moved_away(self, system):
        chef = system.chef
        chef.allocate_points(0, ALICE, 60)
        system.points.transfer(ALICE, BOB, 50 * SF)
        chef.allocate_points(0, ALICE, 0)
        assert chef.user_allocated_points(ALICE) == 0
        assert chef.pool(0).allocation_points == BASE


class TestResetAllocations:

    def test_reset_releases_every_pool(self, system):
        chef = system.chef
        chef.allocate_points(0, ALICE, 30)
        chef.allocate_points(1, ALICE, 40)

        assert chef.reset_allocations(ALICE) == 70 * SF

        assert chef.user_allocated_points(ALICE) == 0
        assert chef.position(0, ALICE).allocated_points == 0
        assert chef.position(1, ALICE).allocated_points == 0
        assert chef.pool(0).allocation_points == BASE
        assert chef.pool(1).allocation_points == 0
        assert chef.total_allocation_points == BASE

    def test_reset_without_allocations(self, system):
        assert system.chef.reset_allocations(ALICE) == 0
        assert system.chef.events.of_type("allocations_reset") == []

    def test_reset_is_gated(self, system):
        system.chef.pause(caller=OWNER)
        with pytest.raises(SystemPaused):
            system.chef.reset_allocations(ALICE)


class TestVotingAdmin:

    def test_allocation_needs_voting(self, admin_system):
        with pytest.raises(VotingNotEnabled):
            admin_system.chef.allocate_points(0, ALICE, 10)

    def test_percentage_checked_before_voting_state(self, admin_system):
        with pytest.raises(InvalidAmount):
            admin_system.chef.allocate_points(0, ALICE, 101)

    def test_enable_voting_once(self, admin_system):
        chef = admin_system.chef
        chef.enable_voting(admin_system.points, caller=OWNER)
        with pytest.raises(VotingAlreadyEnabled):
            chef.enable_voting(admin_system.points, caller=OWNER)

    def test_enable_voting_needs_points_asset(self, admin_system):
        with pytest.raises(InvalidAddress):
            admin_system.chef.enable_voting(None, caller=OWNER)

    def test_only_owner_enables_voting(self, admin_system):
        with pytest.raises(Unauthorized):
            admin_system.chef.enable_voting(admin_system.points, caller=ALICE)

    def test_nudge_pool_before_voting(self, admin_system):
        chef = admin_system.chef
        chef.nudge_pool(1, 50 * SF, caller=OWNER)
        assert chef.pool(1).allocation_points == 50 * SF
        assert chef.total_allocation_points == BASE + 50 * SF

        chef.nudge_pool(0, 0, caller=OWNER)
        assert chef.total_allocation_points == 50 * SF

    def test_nudge_pool_rejects_negative(self, admin_system):
        with pytest.raises(InvalidAmount):
            admin_system.chef.nudge_pool(0, -1, caller=OWNER)

    def test_nudges_closed_once_voting_enabled(self, system):
        with pytest.raises(VotingActive):
            system.chef.nudge_pool(0, 10 * SF, caller=OWNER)
        with pytest.raises(VotingActive):
            system.chef.nudge_tail_reward_rate(SF // 10, caller=OWNER)

    @pytest.mark.parametrize("rate", [0, SCALING_FACTOR, -1])
    def test_tail_rate_bounds(self, admin_system, rate):
        with pytest.raises(InvalidAmount):
            admin_system.chef.nudge_tail_reward_rate(rate, caller=OWNER)

    def test_nudge_tail_rate(self, admin_system):
        chef = admin_system.chef
        chef.nudge_tail_reward_rate(SF // 10, caller=OWNER)
        assert chef.schedule.tail_reward_rate == SF // 10

        admin_system.clock.advance(10 * EPOCH_DURATION)
        assert chef.get_reward_rate() == SF // 10
