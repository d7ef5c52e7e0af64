"""External farm - a single-pool staking target that adapters bridge into.

Rewards accrue at `reward_per_second` shared pro rata across stakers and
are minted in the farm's reward token when harvested.
"""

import logging
from dataclasses import dataclass
from typing import Dict

from ..engine.schedule import SCALING_FACTOR
from ..errors import InsufficientFunds, InvalidAmount

logger = logging.getLogger(__name__)


@dataclass
class FarmStake:
    """A staker's position in the farm."""
    amount: int = 0
    reward_debt: int = 0
    unclaimed: int = 0


class ExternalFarm:
    """MasterChef-style farm with one pool and a flat reward rate."""

    def __init__(
        self,
        env,
        stake_asset,
        reward_token,
        reward_per_second: int,
        address: str = "farm",
    ):
        """
        Initialize farm.

        Args:
            env: Environment (clock and journaling)
            stake_asset: Token staked into the farm
            reward_token: Token minted as reward (the farm must be a minter)
            reward_per_second: Fixed point reward emitted per second
            address: Account the farm holds staked assets under
        """
        if reward_per_second < 0:
            raise InvalidAmount(reward_per_second)
        self.env = env
        self.stake_asset = stake_asset
        self.reward_token = reward_token
        self.reward_per_second = reward_per_second
        self.address = address
        self.acc_reward_per_share = 0
        self.last_reward_time = env.now()
        self.total_staked = 0
        self.stakes: Dict[str, FarmStake] = {}
        env.register(self)

    def _stake(self, account: str) -> FarmStake:
        if account not in self.stakes:
            self.stakes[account] = FarmStake()
        return self.stakes[account]

    def _projected_acc(self, now: int) -> int:
        if now <= self.last_reward_time or self.total_staked == 0:
            return self.acc_reward_per_share
        reward = self.reward_per_second * (now - self.last_reward_time)
        return self.acc_reward_per_share + reward * SCALING_FACTOR // self.total_staked

    def update(self) -> None:
        now = self.env.now()
        self.acc_reward_per_share = self._projected_acc(now)
        self.last_reward_time = max(self.last_reward_time, now)

    def _roll(self, stake: FarmStake) -> None:
        owed = stake.amount * self.acc_reward_per_share // SCALING_FACTOR
        stake.unclaimed += owed - stake.reward_debt
        stake.reward_debt = owed

    def pending(self, account: str) -> int:
        stake = self.stakes.get(account)
        if stake is None:
            return 0
        acc = self._projected_acc(self.env.now())
        return stake.unclaimed + stake.amount * acc // SCALING_FACTOR - stake.reward_debt

    def reward_rate_for(self, account: str) -> int:
        """Share of `reward_per_second` currently earned by `account`."""
        stake = self.stakes.get(account)
        if stake is None or self.total_staked == 0:
            return 0
        return self.reward_per_second * stake.amount // self.total_staked

    def deposit(self, account: str, amount: int) -> None:
        if amount <= 0:
            raise InvalidAmount(amount)
        self.update()
        stake = self._stake(account)
        self._roll(stake)
        self.stake_asset.transfer(account, self.address, amount)
        stake.amount += amount
        stake.reward_debt = stake.amount * self.acc_reward_per_share // SCALING_FACTOR
        self.total_staked += amount

    def withdraw(self, account: str, amount: int) -> None:
        stake = self._stake(account)
        if amount <= 0:
            raise InvalidAmount(amount)
        if amount > stake.amount:
            raise InsufficientFunds(available=stake.amount, required=amount)
        self.update()
        self._roll(stake)
        stake.amount -= amount
        stake.reward_debt = stake.amount * self.acc_reward_per_share // SCALING_FACTOR
        self.total_staked -= amount
        self.stake_asset.transfer(self.address, account, amount)

    def harvest(self, account: str) -> int:
        """Mint all accrued reward to `account`; return the amount."""
        self.update()
        stake = self._stake(account)
        self._roll(stake)
        paid, stake.unclaimed = stake.unclaimed, 0
        if paid > 0:
            self.reward_token.mint(account, paid, caller=self.address)
            logger.debug("Farm %s harvested %d for %s", self.address, paid, account)
        return paid
