"""Allocation voting - depositors steer native emission with their point balance.

An account may commit up to 100% of its external point balance, split
across pools. Each change is one signed delta applied identically to the
account's position, the account total, the pool weight and the global
total. Callers must sync every pool before calling in here, since the
global total is the denominator of every pool's emission share.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..errors import (
    InsufficientFunds,
    InvalidAddress,
    InvalidAmount,
    VotingActive,
    VotingAlreadyEnabled,
    VotingNotEnabled,
)
from .pools import PoolRewardLedger
from .positions import UserPositionLedger

logger = logging.getLogger(__name__)

MAX_PERCENTAGE = 100


@dataclass(frozen=True)
class AllocationChange:
    """Result of one allocate call."""
    pool_id: int
    previous: int
    allocated: int

    @property
    def delta(self) -> int:
        return self.allocated - self.previous


class AllocationVoting:
    """Point-allocation voting over a pool ledger and a position ledger."""

    def __init__(self, pools: PoolRewardLedger, positions: UserPositionLedger):
        self.pools = pools
        self.positions = positions
        self.points_asset = None

    @property
    def enabled(self) -> bool:
        return self.points_asset is not None

    def enable(self, points_asset) -> None:
        if self.enabled:
            raise VotingAlreadyEnabled()
        if points_asset is None:
            raise InvalidAddress("points asset must not be None")
        self.points_asset = points_asset
        logger.info("Voting enabled with points asset %r", points_asset)

    def require_admin_window(self) -> None:
        """Direct weight overrides are only allowed before voting starts."""
        if self.enabled:
            raise VotingActive()

    def allocate(self, pool_id: int, account: str, pctg: int) -> AllocationChange:
        """
        Commit `pctg` percent of the account's points to a pool.

        Args:
            pool_id: Target pool
            account: Voting account
            pctg: Integer percentage in [0, 100]

        Returns:
            AllocationChange with previous and new allocation

        Raises:
            InvalidAmount: pctg outside [0, 100]
            VotingNotEnabled: no points asset configured
            InsufficientFunds: allocations across pools would exceed the balance
        """
        if isinstance(pctg, bool) or not isinstance(pctg, int) or not 0 <= pctg <= MAX_PERCENTAGE:
            raise InvalidAmount(pctg)
        if not self.enabled:
            raise VotingNotEnabled()
        pool = self.pools.get(pool_id)

        total_points = self.points_asset.balance_of(account)
        new_allocation = total_points * pctg // MAX_PERCENTAGE
        position = self.positions.get(pool_id, account)
        previous = position.allocated_points
        diff = new_allocation - previous

        required = self.positions.allocated_points_of(account) + diff
        if total_points < required:
            raise InsufficientFunds(available=total_points, required=required)

        if (
            required < 0
            or pool.allocation_points + diff < 0
            or self.pools.total_allocation_points + diff < 0
        ):
            raise InvalidAmount(diff)

        if diff:
            self.positions.apply_allocation_delta(account, position, diff)
            self.pools.apply_allocation_delta(pool_id, diff)
        return AllocationChange(pool_id=pool_id, previous=previous, allocated=new_allocation)

    def reset(self, account: str) -> List[Tuple[int, int]]:
        """Withdraw every allocation of `account`; return (pool_id, released) pairs."""
        released = []
        for pool_id, position in self.positions.of_account(account):
            points = position.allocated_points
            if points == 0:
                continue
            self.positions.apply_allocation_delta(account, position, -points)
            self.pools.apply_allocation_delta(pool_id, -points)
            released.append((pool_id, points))
        return released

    def nudge_pool(self, pool_id: int, allocation_points: int) -> int:
        """Admin override of a pool's weight; returns the previous weight."""
        self.require_admin_window()
        if allocation_points < 0:
            raise InvalidAmount(allocation_points)
        previous = self.pools.get(pool_id).allocation_points
        self.pools.set_allocation_points(pool_id, allocation_points)
        return previous

    def points_balance(self, account: str) -> Optional[int]:
        if not self.enabled:
            return None
        return self.points_asset.balance_of(account)
