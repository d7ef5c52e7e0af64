"""Pool reward ledger - per-pool accumulators and the sync algorithm.

Key Concepts:
- Pools live in an append-only list; the index is the stable pool id
- acc_reward_per_share[role] grows by reward * SCALING_FACTOR // supply
- Native reward share: rate * elapsed * allocation_points // total_allocation_points
- Emission during zero-supply or zero-weight windows is forfeited, not banked
"""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, List, NamedTuple, Optional

from ..errors import InvalidAmount, InvalidPool
from .schedule import SCALING_FACTOR, EpochRewardSchedule

logger = logging.getLogger(__name__)


class TokenRole(IntEnum):
    """Reward streams tracked per pool; values index the per-role lists."""
    NATIVE = 0
    ADAPTER = 1


ROLES = tuple(TokenRole)


class Accrual(NamedTuple):
    """Reward added to a pool's accumulators by one sync."""
    native: int = 0
    adapter: int = 0


def role_zeros() -> List[int]:
    return [0] * len(ROLES)


@dataclass
class Pool:
    """One farming market."""
    lp_asset: Any
    adapter_reward_asset: Any = None
    adapter: Any = None
    supply: int = 0
    last_update_time: int = 0
    allocation_points: int = 0
    acc_reward_per_share: List[int] = field(default_factory=role_zeros)

    @property
    def has_adapter(self) -> bool:
        return self.adapter is not None


class PoolRewardLedger:
    """Owns the pool arena, accumulators and total allocation weight."""

    def __init__(self, schedule: EpochRewardSchedule):
        self.schedule = schedule
        self.pools: List[Pool] = []
        self.total_allocation_points = 0

    def __len__(self) -> int:
        return len(self.pools)

    def get(self, pool_id: int) -> Pool:
        if not isinstance(pool_id, int) or not 0 <= pool_id < len(self.pools):
            raise InvalidPool(pool_id)
        return self.pools[pool_id]

    def add(
        self,
        lp_asset,
        adapter_reward_asset,
        adapter,
        allocation_points: int,
        now: int,
    ) -> int:
        """Append a pool with zero supply and accumulators; return its id."""
        if allocation_points < 0:
            raise InvalidAmount(allocation_points)
        self.pools.append(Pool(
            lp_asset=lp_asset,
            adapter_reward_asset=adapter_reward_asset,
            adapter=adapter,
            last_update_time=now,
            allocation_points=allocation_points,
        ))
        self.total_allocation_points += allocation_points
        return len(self.pools) - 1

    def set_allocation_points(self, pool_id: int, points: int) -> int:
        """Override a pool's weight, keeping the global total consistent."""
        return self.apply_allocation_delta(pool_id, points - self.get(pool_id).allocation_points)

    def apply_allocation_delta(self, pool_id: int, delta: int) -> int:
        pool = self.get(pool_id)
        new_points = pool.allocation_points + delta
        new_total = self.total_allocation_points + delta
        if new_points < 0 or new_total < 0:
            raise InvalidAmount(delta)
        pool.allocation_points = new_points
        self.total_allocation_points = new_total
        return new_points

    def _accrues(self, pool: Pool, now: int) -> bool:
        return (
            now > pool.last_update_time
            and pool.supply > 0
            and pool.allocation_points > 0
            and self.schedule.started(now)
        )

    def native_reward(self, pool: Pool, now: int) -> int:
        """Native emission owed to `pool` for the interval ending at `now`."""
        if not self._accrues(pool, now):
            return 0
        # No emission is owed for time before the schedule started.
        elapsed = now - max(pool.last_update_time, self.schedule.start_timestamp)
        return (
            self.schedule.rate(now) * elapsed * pool.allocation_points
            // self.total_allocation_points
        )

    def sync_one(self, pool_id: int, now: int) -> Accrual:
        """
        Bring one pool's accumulators up to `now`.

        Calls the pool's adapter (if any) to pull its reward since the last
        update. The caller is responsible for having the escrow mint the
        returned native amount.

        Args:
            pool_id: Pool to sync
            now: Current timestamp

        Returns:
            Accrual with the native and adapter reward credited
        """
        pool = self.get(pool_id)
        if not self._accrues(pool, now):
            pool.last_update_time = max(pool.last_update_time, now)
            return Accrual()

        native = self.native_reward(pool, now)
        if native > 0:
            pool.acc_reward_per_share[TokenRole.NATIVE] += native * SCALING_FACTOR // pool.supply

        adapter_reward = 0
        if pool.has_adapter:
            adapter_reward = pool.adapter.update_adapter()
            if adapter_reward < 0:
                raise InvalidAmount(adapter_reward)
            if adapter_reward > 0:
                pool.acc_reward_per_share[TokenRole.ADAPTER] += (
                    adapter_reward * SCALING_FACTOR // pool.supply
                )

        pool.last_update_time = now
        logger.debug(
            "Synced pool %d at %d: native=%d adapter=%d", pool_id, now, native, adapter_reward
        )
        return Accrual(native=native, adapter=adapter_reward)

    def sync_all(self, now: int) -> List[Accrual]:
        """Sync every pool in ascending id order."""
        return [self.sync_one(pool_id, now) for pool_id in range(len(self.pools))]

    def projected_acc(self, pool_id: int, role: TokenRole, now: int,
                      adapter_pending: Optional[int] = None) -> int:
        """
        Accumulator value as if the pool were synced at `now`, without mutating it.

        Args:
            pool_id: Pool to project
            role: Token role
            now: Current timestamp
            adapter_pending: Adapter reward estimate (ADAPTER role only)

        Returns:
            Projected acc_reward_per_share for the role
        """
        pool = self.get(pool_id)
        acc = pool.acc_reward_per_share[role]
        if not self._accrues(pool, now):
            return acc
        if role is TokenRole.NATIVE:
            reward = self.native_reward(pool, now)
        else:
            reward = adapter_pending or 0
        return acc + reward * SCALING_FACTOR // pool.supply
