"""Reward ledger facade - the public entry points of the farm.

Every mutating entry point:
1. rejects re-entry and (unless exempt) the paused mode,
2. runs inside one Environment transaction; its events reach the log
   only once that transaction commits,
3. syncs the affected pool(s) before touching balances or weights,
4. records escrow, token and adapter calls in a CallQueue that only runs
   after the operation's own bookkeeping is complete.
"""

import functools
import logging
from dataclasses import replace
from enum import Enum
from typing import List, Optional

from ..errors import (
    InsufficientFunds,
    InvalidAddress,
    InvalidAmount,
    ReentrantCall,
    StartTimeAlreadySet,
    StartTimeNotSet,
    SystemPaused,
    Unauthorized,
)
from .events import Event, EventLog
from .pools import Accrual, Pool, PoolRewardLedger, TokenRole
from .positions import Payout, UserPosition, UserPositionLedger, accrued, check_amount
from .runtime import CallQueue, Environment
from .schedule import SCALING_FACTOR, EpochRewardSchedule
from .voting import AllocationChange, AllocationVoting

logger = logging.getLogger(__name__)


class Mode(Enum):
    ACTIVE = "active"
    PAUSED = "paused"


def entrypoint(gated: bool = True):
    """Wrap a mutating method in the reentrancy guard, pause gate and transaction."""
    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(self, *args, **kwargs):
            if self._entered:
                raise ReentrantCall(fn.__name__)
            if gated and self.mode is Mode.PAUSED:
                raise SystemPaused(fn.__name__)
            self._entered = True
            self._pending_events = []
            try:
                with self.env.transaction():
                    calls = CallQueue()
                    self._calls = calls
                    result = fn(self, *args, **kwargs)
                    calls.flush()
                for event in self._pending_events:
                    self.events.add(event)
                return result
            finally:
                self._calls = None
                self._pending_events = []
                self._entered = False
        return wrapper
    return decorator


class YieldChef:
    """Multi-pool farm with decaying native emission, adapter rewards and point voting."""

    # Committed events are appended after the transaction, never rolled back.
    untracked_attrs = ("events", "_pending_events")

    def __init__(
        self,
        env: Environment,
        rewarder,
        native_token,
        owner: str,
        start_timestamp: Optional[int] = None,
        schedule: Optional[EpochRewardSchedule] = None,
        address: str = "chef",
        event_log_size: Optional[int] = 10_000,
    ):
        """
        Initialize the ledger.

        Args:
            env: Execution environment (clock and transactions)
            rewarder: RewarderEscrow that mints and pays rewards
            native_token: Token the rewarder mints as native emission
            owner: Admin account
            start_timestamp: Emission start; may be set once later if None
            schedule: Emission schedule (defaults to the standard decay)
            address: Account the ledger holds deposits under
            event_log_size: Maximum events retained
        """
        schedule = schedule or EpochRewardSchedule()
        if start_timestamp is not None:
            schedule = replace(schedule, start_timestamp=start_timestamp)

        self.env = env
        self.rewarder = rewarder
        self.native_token = native_token
        self.owner = owner
        self.address = address
        self.mode = Mode.ACTIVE
        self.pools = PoolRewardLedger(schedule)
        self.positions = UserPositionLedger()
        self.voting = AllocationVoting(self.pools, self.positions)
        self.events = EventLog(maxlen=event_log_size)
        self._entered = False
        self._calls: Optional[CallQueue] = None
        self._pending_events: List[Event] = []

        env.register(self)
        env.register(rewarder)
        env.register(native_token)

    @classmethod
    def from_config(cls, env: Environment, config, rewarder, native_token, owner: str, **kwargs):
        """Create a ledger whose schedule comes from `config.emission`."""
        schedule = config.emission.build_schedule()
        return cls(env, rewarder, native_token, owner, schedule=schedule, **kwargs)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @property
    def schedule(self) -> EpochRewardSchedule:
        return self.pools.schedule

    def _require_owner(self, caller: str) -> None:
        if caller != self.owner:
            raise Unauthorized(f"{caller} is not the owner")

    def _emit(self, now: int, event_type: str, account: Optional[str] = None,
              pool_id: Optional[int] = None, amount: Optional[int] = None, **meta) -> None:
        self._pending_events.append(Event(
            timestamp=now, event_type=event_type, account=account,
            pool_id=pool_id, amount=amount, meta=meta,
        ))

    def _record_accrual(self, accrual: Accrual) -> None:
        if accrual.native > 0:
            self._calls.defer(self.rewarder.mint, self.native_token, accrual.native, caller=self.address)

    def _sync_pool(self, pool_id: int, now: int) -> Accrual:
        accrual = self.pools.sync_one(pool_id, now)
        self._record_accrual(accrual)
        return accrual

    def _sync_all(self, now: int) -> List[Accrual]:
        accruals = self.pools.sync_all(now)
        for accrual in accruals:
            self._record_accrual(accrual)
        return accruals

    def _pay(self, pool: Pool, account: str, payout: Payout) -> None:
        if payout.native > 0:
            self._calls.defer(
                self.rewarder.transfer_to, self.native_token, account, payout.native, caller=self.address
            )
        if payout.adapter > 0:
            self._calls.defer(
                self.rewarder.transfer_to, pool.adapter_reward_asset, account, payout.adapter,
                caller=self.address,
            )

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    @entrypoint(gated=False)
    def add_pool(self, lp_asset, adapter_reward_asset, adapter, base_allocation_points: int,
                 caller: str) -> int:
        """
        Append a pool after syncing every existing one.

        Args:
            lp_asset: Deposit token
            adapter_reward_asset: Adapter reward token (None for single-token pools)
            adapter: AdapterBridge or None
            base_allocation_points: Initial weight
            caller: Must be the owner

        Returns:
            New pool id
        """
        self._require_owner(caller)
        if lp_asset is None:
            raise InvalidAddress("lp asset must not be None")
        if adapter is not None:
            if adapter_reward_asset is None:
                raise InvalidAddress("adapter pools need an adapter reward asset")
            if adapter.asset is not lp_asset:
                raise InvalidAddress("adapter does not wrap the pool's lp asset")
            self.env.register(adapter)
        self.env.register(lp_asset)

        now = self.env.now()
        self._sync_all(now)
        pool_id = self.pools.add(lp_asset, adapter_reward_asset, adapter, base_allocation_points, now)
        self._emit(now, "pool_added", pool_id=pool_id, amount=base_allocation_points,
                   adapter=adapter is not None)
        logger.info("Added pool %d (allocation points %d, adapter=%s)",
                    pool_id, base_allocation_points, adapter is not None)
        return pool_id

    @entrypoint(gated=False)
    def enable_voting(self, points_asset, caller: str) -> None:
        self._require_owner(caller)
        self.voting.enable(points_asset)
        if points_asset is not None:
            self.env.register(points_asset)
        self._emit(self.env.now(), "voting_enabled")

    @entrypoint(gated=False)
    def nudge_pool(self, pool_id: int, allocation_points: int, caller: str) -> None:
        """Admin override of a pool's weight (before voting only)."""
        self._require_owner(caller)
        self.voting.require_admin_window()
        now = self.env.now()
        self._sync_all(now)
        previous = self.voting.nudge_pool(pool_id, allocation_points)
        self._emit(now, "pool_nudged", pool_id=pool_id, amount=allocation_points, previous=previous)
        logger.info("Pool %d allocation points %d -> %d", pool_id, previous, allocation_points)

    @entrypoint(gated=False)
    def nudge_tail_reward_rate(self, rate: int, caller: str) -> None:
        """Admin override of the post-decay rate (before voting only)."""
        self._require_owner(caller)
        self.voting.require_admin_window()
        if not 0 < rate < SCALING_FACTOR:
            raise InvalidAmount(rate)
        now = self.env.now()
        self._sync_all(now)
        self.pools.schedule = replace(self.pools.schedule, tail_reward_rate=rate)
        self._emit(now, "tail_rate_nudged", amount=rate)
        logger.info("Tail reward rate set to %d", rate)

    @entrypoint(gated=False)
    def set_start_timestamp(self, timestamp: int, caller: str) -> None:
        self._require_owner(caller)
        if self.schedule.start_timestamp is not None:
            raise StartTimeAlreadySet()
        if timestamp < 0:
            raise InvalidAmount(timestamp)
        now = self.env.now()
        self._sync_all(now)
        self.pools.schedule = replace(self.pools.schedule, start_timestamp=timestamp)
        self._emit(now, "start_set", amount=timestamp)
        logger.info("Emission start set to %d", timestamp)

    @entrypoint(gated=False)
    def pause(self, caller: str) -> None:
        self._require_owner(caller)
        self.mode = Mode.PAUSED
        self._emit(self.env.now(), "paused")
        logger.info("Ledger paused")

    @entrypoint(gated=False)
    def unpause(self, caller: str) -> None:
        self._require_owner(caller)
        self.mode = Mode.ACTIVE
        self._emit(self.env.now(), "unpaused")
        logger.info("Ledger unpaused")

    # ------------------------------------------------------------------
    # Accrual
    # ------------------------------------------------------------------

    @entrypoint()
    def update_pool(self, pool_id: int) -> Accrual:
        return self._sync_pool(pool_id, self.env.now())

    @entrypoint()
    def mass_update_pools(self) -> List[Accrual]:
        return self._sync_all(self.env.now())

    # ------------------------------------------------------------------
    # Positions
    # ------------------------------------------------------------------

    @entrypoint()
    def deposit(self, pool_id: int, account: str, amount: int) -> Payout:
        """
        Deposit `amount` of the pool's asset for `account`.

        Pending reward on an existing position is paid out first. The
        account must have approved the ledger for `amount`.

        Returns:
            Payout of reward settled before the deposit
        """
        pool = self.pools.get(pool_id)
        check_amount(amount)
        available = pool.lp_asset.balance_of(account)
        if amount > available:
            raise InsufficientFunds(available=available, required=amount)

        now = self.env.now()
        self._sync_pool(pool_id, now)
        position = self.positions.get(pool_id, account)
        payout = Payout()
        if position.amount > 0:
            payout = self.positions.settle(pool, position)
            self._pay(pool, account, payout)
        self.positions.record_deposit(pool, position, amount)

        if pool.has_adapter:
            self._calls.defer(pool.lp_asset.transfer_from, self.address, account, pool.adapter.address, amount)
            self._calls.defer(pool.adapter.deposit, amount, account)
        else:
            self._calls.defer(pool.lp_asset.transfer_from, self.address, account, self.address, amount)

        self._emit(now, "deposit", account=account, pool_id=pool_id, amount=amount)
        logger.debug("Deposit pool=%d account=%s amount=%d", pool_id, account, amount)
        return payout

    @entrypoint()
    def withdraw(self, pool_id: int, account: str, amount: int) -> Payout:
        """Withdraw `amount` of the account's deposit, paying pending reward."""
        pool = self.pools.get(pool_id)
        position = self.positions.peek(pool_id, account)
        self.positions.check_withdraw(position, amount)

        now = self.env.now()
        self._sync_pool(pool_id, now)
        position = self.positions.get(pool_id, account)
        payout = self.positions.settle(pool, position)
        self._pay(pool, account, payout)
        self.positions.record_withdraw(pool, position, amount)

        if pool.has_adapter:
            self._calls.defer(pool.adapter.withdraw, amount, account)
        else:
            self._calls.defer(pool.lp_asset.transfer, self.address, account, amount)

        self._emit(now, "withdraw", account=account, pool_id=pool_id, amount=amount)
        logger.debug("Withdraw pool=%d account=%s amount=%d", pool_id, account, amount)
        return payout

    @entrypoint(gated=False)
    def emergency_withdraw(self, pool_id: int, account: str) -> int:
        """Return the whole deposit without syncing or paying reward."""
        pool = self.pools.get(pool_id)
        position = self.positions.get(pool_id, account)
        amount = self.positions.record_emergency_withdraw(pool, position)

        if amount > 0:
            if pool.has_adapter:
                self._calls.defer(pool.adapter.emergency_withdraw, amount, account)
            else:
                self._calls.defer(pool.lp_asset.transfer, self.address, account, amount)

        self._emit(self.env.now(), "emergency_withdraw", account=account, pool_id=pool_id, amount=amount)
        logger.info("Emergency withdraw pool=%d account=%s amount=%d", pool_id, account, amount)
        return amount

    @entrypoint()
    def get_reward(self, pool_id: int, account: str) -> Payout:
        """Claim every pending reward of the account in one pool."""
        pool = self.pools.get(pool_id)
        now = self.env.now()
        self._sync_pool(pool_id, now)
        position = self.positions.get(pool_id, account)
        payout = self.positions.settle(pool, position)
        self._pay(pool, account, payout)
        if payout.total:
            self._emit(now, "reward_paid", account=account, pool_id=pool_id, amount=payout.native,
                       adapter_amount=payout.adapter)
        return payout

    # ------------------------------------------------------------------
    # Voting
    # ------------------------------------------------------------------

    @entrypoint()
    def allocate_points(self, pool_id: int, account: str, pctg: int) -> AllocationChange:
        """Commit `pctg` percent of the account's points to a pool."""
        now = self.env.now()
        self._sync_all(now)
        change = self.voting.allocate(pool_id, account, pctg)
        if change.delta:
            self._emit(now, "points_allocated", account=account, pool_id=pool_id,
                       amount=change.allocated, delta=change.delta)
        return change

    @entrypoint()
    def reset_allocations(self, account: str) -> int:
        """Release every allocation of `account`; return the points released."""
        now = self.env.now()
        self._sync_all(now)
        released = self.voting.reset(account)
        total = sum(points for _, points in released)
        if released:
            self._emit(now, "allocations_reset", account=account, amount=total,
                       pools=[pool_id for pool_id, _ in released])
        return total

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def pools_length(self) -> int:
        return len(self.pools)

    @property
    def total_allocation_points(self) -> int:
        return self.pools.total_allocation_points

    def user_allocated_points(self, account: str) -> int:
        return self.positions.allocated_points_of(account)

    def pool(self, pool_id: int) -> Pool:
        """Copy of a pool's state."""
        pool = self.pools.get(pool_id)
        return replace(pool, acc_reward_per_share=list(pool.acc_reward_per_share))

    def position(self, pool_id: int, account: str) -> UserPosition:
        """Copy of a position's state (zero if it never existed)."""
        self.pools.get(pool_id)
        position = self.positions.peek(pool_id, account)
        return replace(position, reward_debt=list(position.reward_debt))

    def _pending(self, pool_id: int, account: str, role: TokenRole, adapter_pending: int = 0) -> int:
        now = self.env.now()
        position = self.positions.peek(pool_id, account)
        acc = self.pools.projected_acc(pool_id, role, now, adapter_pending=adapter_pending)
        return max(accrued(position.amount, acc) - position.reward_debt[role], 0)

    def pending_reward(self, pool_id: int, account: str) -> int:
        """Native reward the account could claim now."""
        return self._pending(pool_id, account, TokenRole.NATIVE)

    def pending_adapter_reward(self, pool_id: int, account: str) -> int:
        """Adapter reward the account could claim now (estimate from the adapter)."""
        pool = self.pools.get(pool_id)
        adapter_pending = pool.adapter.get_acc_reward() if pool.has_adapter else 0
        return self._pending(pool_id, account, TokenRole.ADAPTER, adapter_pending)

    def get_reward_rate(self) -> int:
        """Current native emission rate (0 before launch)."""
        if self.schedule.start_timestamp is None:
            raise StartTimeNotSet()
        now = self.env.now()
        if not self.schedule.started(now):
            return 0
        return self.schedule.rate(now)

    def get_adapter_reward_rate(self, pool_id: int) -> int:
        pool = self.pools.get(pool_id)
        if not pool.has_adapter:
            return 0
        return pool.adapter.get_reward_rate()
