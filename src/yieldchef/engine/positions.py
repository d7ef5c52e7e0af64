"""User position ledger - deposited amounts, reward debts and allocated points.

Reward debt semantics:
    debt[role] = amount * acc_reward_per_share[role] // SCALING_FACTOR
taken at every balance change, so pending = accrued - debt is exactly the
reward earned since the last change and is never paid twice.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, NamedTuple, Tuple

from ..errors import InsufficientFunds, InvalidAmount
from .pools import ROLES, Pool, TokenRole, role_zeros
from .schedule import SCALING_FACTOR


class Payout(NamedTuple):
    """Reward released to an account by one settlement."""
    native: int = 0
    adapter: int = 0

    @property
    def total(self) -> int:
        return self.native + self.adapter


@dataclass
class UserPosition:
    """One account's stake in one pool."""
    amount: int = 0
    allocated_points: int = 0
    reward_debt: List[int] = field(default_factory=role_zeros)


def accrued(amount: int, acc: int) -> int:
    return amount * acc // SCALING_FACTOR


def check_amount(amount) -> None:
    """Deposit and withdraw amounts are positive fixed point integers."""
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount(amount)


class UserPositionLedger:
    """Owns positions keyed by (pool id, account) plus per-account allocation totals."""

    def __init__(self):
        self.positions: Dict[Tuple[int, str], UserPosition] = {}
        self.user_allocated_points: Dict[str, int] = {}

    def get(self, pool_id: int, account: str) -> UserPosition:
        """Return the stored position, creating a zero row on first use."""
        key = (pool_id, account)
        if key not in self.positions:
            self.positions[key] = UserPosition()
        return self.positions[key]

    def peek(self, pool_id: int, account: str) -> UserPosition:
        """Return the position without creating it (read-only paths)."""
        return self.positions.get((pool_id, account)) or UserPosition()

    def allocated_points_of(self, account: str) -> int:
        return self.user_allocated_points.get(account, 0)

    def items(self) -> Iterator[Tuple[Tuple[int, str], UserPosition]]:
        return iter(sorted(self.positions.items()))

    def in_pool(self, pool_id: int) -> List[Tuple[str, UserPosition]]:
        return [(account, pos) for (pid, account), pos in self.items() if pid == pool_id]

    def of_account(self, account: str) -> List[Tuple[int, UserPosition]]:
        return [(pid, pos) for (pid, acct), pos in self.items() if acct == account]

    @staticmethod
    def pending(pool: Pool, position: UserPosition, role: TokenRole) -> int:
        owed = accrued(position.amount, pool.acc_reward_per_share[role]) - position.reward_debt[role]
        return max(owed, 0)

    def settle(self, pool: Pool, position: UserPosition) -> Payout:
        """
        Mark every pending reward of the position as paid.

        The pool must already be synced. The caller pays the returned
        amounts out of escrow.

        Returns:
            Payout per token role
        """
        paid = role_zeros()
        for role in ROLES:
            owed = accrued(position.amount, pool.acc_reward_per_share[role])
            pending = owed - position.reward_debt[role]
            if pending > 0:
                position.reward_debt[role] = owed
                paid[role] = pending
        return Payout(*paid)

    def record_deposit(self, pool: Pool, position: UserPosition, amount: int) -> None:
        """Price the new share in at the current accumulators."""
        check_amount(amount)
        for role in ROLES:
            position.reward_debt[role] += accrued(amount, pool.acc_reward_per_share[role])
        position.amount += amount
        pool.supply += amount

    def record_withdraw(self, pool: Pool, position: UserPosition, amount: int) -> None:
        self.check_withdraw(position, amount)
        roles = ROLES if pool.has_adapter else (TokenRole.NATIVE,)
        for role in roles:
            debit = accrued(amount, pool.acc_reward_per_share[role])
            position.reward_debt[role] -= debit
        position.amount -= amount
        pool.supply -= amount

    def record_emergency_withdraw(self, pool: Pool, position: UserPosition) -> int:
        """Zero the position, forfeiting pending reward; return the released amount."""
        amount = position.amount
        if amount > pool.supply:
            raise InsufficientFunds(available=pool.supply, required=amount)
        position.amount = 0
        position.reward_debt = role_zeros()
        pool.supply -= amount
        return amount

    @staticmethod
    def check_withdraw(position: UserPosition, amount: int) -> None:
        check_amount(amount)
        if amount > position.amount:
            raise InsufficientFunds(available=position.amount, required=amount)

    def apply_allocation_delta(self, account: str, position: UserPosition, delta: int) -> None:
        new_user_total = self.allocated_points_of(account) + delta
        new_position = position.allocated_points + delta
        if new_user_total < 0 or new_position < 0:
            raise InvalidAmount(delta)
        self.user_allocated_points[account] = new_user_total
        position.allocated_points = new_position
